# RUTA: ccamem/database/schema.py
"""
Definición del esquema para los dos motores soportados.
Se ejecuta con el comando `flask init-db`.
"""

import logging

logger = logging.getLogger(__name__)

TABLAS = [
    'usuarios', 'areas', 'fondos', 'secciones', 'series', 'subseries',
    'expedientes', 'documentos', 'historial_cambios', 'logs_auditoria',
    'configuracion_sistema', 'configuracion_notificaciones', 'configuracion_respaldos',
]

SQLITE_SCHEMA = """
CREATE TABLE IF NOT EXISTS areas (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    codigo TEXT NOT NULL UNIQUE,
    nombre TEXT NOT NULL,
    descripcion TEXT,
    orden INTEGER NOT NULL DEFAULT 0,
    activo INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS usuarios (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    nombre TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    password TEXT NOT NULL,
    rol TEXT NOT NULL CHECK (rol IN ('admin', 'usuario', 'consulta')),
    area TEXT REFERENCES areas(codigo),
    activo INTEGER NOT NULL DEFAULT 1,
    ultimo_acceso TEXT,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS fondos (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    codigo TEXT NOT NULL UNIQUE,
    nombre TEXT NOT NULL,
    descripcion TEXT,
    activo INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS secciones (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    codigo TEXT NOT NULL UNIQUE,
    nombre TEXT NOT NULL,
    descripcion TEXT,
    fondo_id INTEGER NOT NULL REFERENCES fondos(id),
    orden INTEGER NOT NULL DEFAULT 0,
    activo INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS series (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    codigo TEXT NOT NULL UNIQUE,
    nombre TEXT NOT NULL,
    descripcion TEXT,
    seccion_id INTEGER NOT NULL REFERENCES secciones(id),
    orden INTEGER NOT NULL DEFAULT 0,
    activo INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS subseries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    codigo TEXT NOT NULL UNIQUE,
    nombre TEXT NOT NULL,
    descripcion TEXT,
    serie_id INTEGER NOT NULL REFERENCES series(id),
    orden INTEGER NOT NULL DEFAULT 0,
    activo INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS expedientes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    numero_expediente TEXT NOT NULL UNIQUE,
    nombre TEXT NOT NULL,
    asunto TEXT,
    area_id INTEGER REFERENCES areas(id),
    fondo_id INTEGER REFERENCES fondos(id),
    seccion_id INTEGER REFERENCES secciones(id),
    serie_id INTEGER REFERENCES series(id),
    subserie_id INTEGER REFERENCES subseries(id),
    numero_legajos INTEGER NOT NULL DEFAULT 1,
    total_hojas INTEGER NOT NULL DEFAULT 0,
    fecha_apertura TEXT NOT NULL,
    fecha_cierre TEXT,
    valor_administrativo INTEGER NOT NULL DEFAULT 0,
    valor_juridico INTEGER NOT NULL DEFAULT 0,
    valor_fiscal INTEGER NOT NULL DEFAULT 0,
    valor_contable INTEGER NOT NULL DEFAULT 0,
    archivo_tramite INTEGER NOT NULL DEFAULT 2,
    archivo_concentracion INTEGER NOT NULL DEFAULT 5,
    destino_final TEXT NOT NULL DEFAULT 'conservacion',
    clasificacion_informacion TEXT NOT NULL DEFAULT 'publica',
    ubicacion_fisica TEXT,
    observaciones TEXT,
    estado TEXT NOT NULL DEFAULT 'activo' CHECK (estado IN ('activo', 'cerrado', 'transferido', 'baja')),
    created_by INTEGER REFERENCES usuarios(id),
    updated_by INTEGER REFERENCES usuarios(id),
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS ix_expedientes_estado ON expedientes(estado);
CREATE INDEX IF NOT EXISTS ix_expedientes_area ON expedientes(area_id);

CREATE TABLE IF NOT EXISTS documentos (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    expediente_id INTEGER NOT NULL REFERENCES expedientes(id),
    nombre TEXT NOT NULL,
    descripcion TEXT,
    tipo_documento TEXT,
    fecha_documento TEXT,
    archivo_digital TEXT NOT NULL UNIQUE,
    nombre_original TEXT,
    mime_type TEXT,
    tamano_bytes INTEGER,
    numero_hojas INTEGER NOT NULL DEFAULT 1,
    orden INTEGER NOT NULL DEFAULT 1,
    created_by INTEGER REFERENCES usuarios(id),
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS historial_cambios (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tabla_afectada TEXT NOT NULL,
    registro_id INTEGER NOT NULL,
    usuario_id INTEGER REFERENCES usuarios(id),
    tipo_cambio TEXT NOT NULL CHECK (tipo_cambio IN ('creacion', 'modificacion', 'eliminacion')),
    campo_modificado TEXT,
    valor_anterior TEXT,
    valor_nuevo TEXT,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS ix_historial_registro ON historial_cambios(tabla_afectada, registro_id);

CREATE TABLE IF NOT EXISTS logs_auditoria (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    usuario_id INTEGER,
    usuario_email TEXT,
    usuario_nombre TEXT,
    accion TEXT NOT NULL,
    modulo TEXT NOT NULL,
    descripcion TEXT,
    datos_anteriores TEXT,
    datos_nuevos TEXT,
    ip_address TEXT,
    resultado TEXT NOT NULL DEFAULT 'exitoso',
    mensaje_error TEXT,
    duracion_ms INTEGER,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS ix_logs_fecha ON logs_auditoria(created_at);

CREATE TABLE IF NOT EXISTS configuracion_sistema (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    clave TEXT NOT NULL UNIQUE,
    valor TEXT,
    tipo TEXT NOT NULL DEFAULT 'texto',
    categoria TEXT NOT NULL DEFAULT 'general',
    descripcion TEXT,
    editable INTEGER NOT NULL DEFAULT 1,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS configuracion_notificaciones (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tipo_notificacion TEXT NOT NULL UNIQUE,
    activa INTEGER NOT NULL DEFAULT 1,
    enviar_email INTEGER NOT NULL DEFAULT 0,
    enviar_sistema INTEGER NOT NULL DEFAULT 1,
    asunto_email TEXT,
    roles_destino TEXT,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS configuracion_respaldos (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    nombre TEXT NOT NULL,
    tipo TEXT NOT NULL,
    frecuencia TEXT NOT NULL CHECK (frecuencia IN ('diario', 'semanal', 'mensual')),
    hora_ejecucion TEXT,
    dia_semana INTEGER,
    dia_mes INTEGER,
    activo INTEGER NOT NULL DEFAULT 1,
    ultima_ejecucion TEXT,
    proximo_ejecucion TEXT,
    incluir_documentos INTEGER NOT NULL DEFAULT 1,
    incluir_base_datos INTEGER NOT NULL DEFAULT 1,
    ruta_destino TEXT,
    retener_dias INTEGER NOT NULL DEFAULT 30,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

# SQL Server no acepta varias sentencias CREATE con GO desde pyodbc, se ejecutan una por una.
SQLSERVER_SCHEMA = [
    """IF OBJECT_ID('areas', 'U') IS NULL CREATE TABLE areas (
        id INT IDENTITY(1,1) PRIMARY KEY,
        codigo NVARCHAR(20) NOT NULL UNIQUE,
        nombre NVARCHAR(200) NOT NULL,
        descripcion NVARCHAR(500) NULL,
        orden INT NOT NULL DEFAULT 0,
        activo BIT NOT NULL DEFAULT 1,
        created_at DATETIME2 NOT NULL DEFAULT SYSDATETIME()
    )""",
    """IF OBJECT_ID('usuarios', 'U') IS NULL CREATE TABLE usuarios (
        id INT IDENTITY(1,1) PRIMARY KEY,
        nombre NVARCHAR(200) NOT NULL,
        email NVARCHAR(200) NOT NULL UNIQUE,
        password NVARCHAR(200) NOT NULL,
        rol NVARCHAR(20) NOT NULL CHECK (rol IN ('admin', 'usuario', 'consulta')),
        area NVARCHAR(20) NULL REFERENCES areas(codigo),
        activo BIT NOT NULL DEFAULT 1,
        ultimo_acceso DATETIME2 NULL,
        created_at DATETIME2 NOT NULL DEFAULT SYSDATETIME(),
        updated_at DATETIME2 NOT NULL DEFAULT SYSDATETIME()
    )""",
    """IF OBJECT_ID('fondos', 'U') IS NULL CREATE TABLE fondos (
        id INT IDENTITY(1,1) PRIMARY KEY,
        codigo NVARCHAR(20) NOT NULL UNIQUE,
        nombre NVARCHAR(300) NOT NULL,
        descripcion NVARCHAR(500) NULL,
        activo BIT NOT NULL DEFAULT 1
    )""",
    """IF OBJECT_ID('secciones', 'U') IS NULL CREATE TABLE secciones (
        id INT IDENTITY(1,1) PRIMARY KEY,
        codigo NVARCHAR(20) NOT NULL UNIQUE,
        nombre NVARCHAR(300) NOT NULL,
        descripcion NVARCHAR(500) NULL,
        fondo_id INT NOT NULL REFERENCES fondos(id),
        orden INT NOT NULL DEFAULT 0,
        activo BIT NOT NULL DEFAULT 1
    )""",
    """IF OBJECT_ID('series', 'U') IS NULL CREATE TABLE series (
        id INT IDENTITY(1,1) PRIMARY KEY,
        codigo NVARCHAR(20) NOT NULL UNIQUE,
        nombre NVARCHAR(300) NOT NULL,
        descripcion NVARCHAR(500) NULL,
        seccion_id INT NOT NULL REFERENCES secciones(id),
        orden INT NOT NULL DEFAULT 0,
        activo BIT NOT NULL DEFAULT 1
    )""",
    """IF OBJECT_ID('subseries', 'U') IS NULL CREATE TABLE subseries (
        id INT IDENTITY(1,1) PRIMARY KEY,
        codigo NVARCHAR(20) NOT NULL UNIQUE,
        nombre NVARCHAR(300) NOT NULL,
        descripcion NVARCHAR(500) NULL,
        serie_id INT NOT NULL REFERENCES series(id),
        orden INT NOT NULL DEFAULT 0,
        activo BIT NOT NULL DEFAULT 1
    )""",
    """IF OBJECT_ID('expedientes', 'U') IS NULL CREATE TABLE expedientes (
        id INT IDENTITY(1,1) PRIMARY KEY,
        numero_expediente NVARCHAR(100) NOT NULL UNIQUE,
        nombre NVARCHAR(500) NOT NULL,
        asunto NVARCHAR(MAX) NULL,
        area_id INT NULL REFERENCES areas(id),
        fondo_id INT NULL REFERENCES fondos(id),
        seccion_id INT NULL REFERENCES secciones(id),
        serie_id INT NULL REFERENCES series(id),
        subserie_id INT NULL REFERENCES subseries(id),
        numero_legajos INT NOT NULL DEFAULT 1,
        total_hojas INT NOT NULL DEFAULT 0,
        fecha_apertura DATE NOT NULL,
        fecha_cierre DATE NULL,
        valor_administrativo BIT NOT NULL DEFAULT 0,
        valor_juridico BIT NOT NULL DEFAULT 0,
        valor_fiscal BIT NOT NULL DEFAULT 0,
        valor_contable BIT NOT NULL DEFAULT 0,
        archivo_tramite INT NOT NULL DEFAULT 2,
        archivo_concentracion INT NOT NULL DEFAULT 5,
        destino_final NVARCHAR(30) NOT NULL DEFAULT 'conservacion',
        clasificacion_informacion NVARCHAR(30) NOT NULL DEFAULT 'publica',
        ubicacion_fisica NVARCHAR(300) NULL,
        observaciones NVARCHAR(MAX) NULL,
        estado NVARCHAR(20) NOT NULL DEFAULT 'activo' CHECK (estado IN ('activo', 'cerrado', 'transferido', 'baja')),
        created_by INT NULL REFERENCES usuarios(id),
        updated_by INT NULL REFERENCES usuarios(id),
        created_at DATETIME2 NOT NULL DEFAULT SYSDATETIME(),
        updated_at DATETIME2 NOT NULL DEFAULT SYSDATETIME()
    )""",
    """IF OBJECT_ID('documentos', 'U') IS NULL CREATE TABLE documentos (
        id INT IDENTITY(1,1) PRIMARY KEY,
        expediente_id INT NOT NULL REFERENCES expedientes(id),
        nombre NVARCHAR(300) NOT NULL,
        descripcion NVARCHAR(MAX) NULL,
        tipo_documento NVARCHAR(100) NULL,
        fecha_documento DATE NULL,
        archivo_digital NVARCHAR(300) NOT NULL UNIQUE,
        nombre_original NVARCHAR(300) NULL,
        mime_type NVARCHAR(150) NULL,
        tamano_bytes BIGINT NULL,
        numero_hojas INT NOT NULL DEFAULT 1,
        orden INT NOT NULL DEFAULT 1,
        created_by INT NULL REFERENCES usuarios(id),
        created_at DATETIME2 NOT NULL DEFAULT SYSDATETIME()
    )""",
    """IF OBJECT_ID('historial_cambios', 'U') IS NULL CREATE TABLE historial_cambios (
        id INT IDENTITY(1,1) PRIMARY KEY,
        tabla_afectada NVARCHAR(100) NOT NULL,
        registro_id INT NOT NULL,
        usuario_id INT NULL REFERENCES usuarios(id),
        tipo_cambio NVARCHAR(20) NOT NULL CHECK (tipo_cambio IN ('creacion', 'modificacion', 'eliminacion')),
        campo_modificado NVARCHAR(100) NULL,
        valor_anterior NVARCHAR(MAX) NULL,
        valor_nuevo NVARCHAR(MAX) NULL,
        created_at DATETIME2 NOT NULL DEFAULT SYSDATETIME()
    )""",
    """IF OBJECT_ID('logs_auditoria', 'U') IS NULL CREATE TABLE logs_auditoria (
        id INT IDENTITY(1,1) PRIMARY KEY,
        usuario_id INT NULL,
        usuario_email NVARCHAR(200) NULL,
        usuario_nombre NVARCHAR(200) NULL,
        accion NVARCHAR(100) NOT NULL,
        modulo NVARCHAR(100) NOT NULL,
        descripcion NVARCHAR(MAX) NULL,
        datos_anteriores NVARCHAR(MAX) NULL,
        datos_nuevos NVARCHAR(MAX) NULL,
        ip_address NVARCHAR(64) NULL,
        resultado NVARCHAR(20) NOT NULL DEFAULT 'exitoso',
        mensaje_error NVARCHAR(MAX) NULL,
        duracion_ms INT NULL,
        created_at DATETIME2 NOT NULL DEFAULT SYSDATETIME()
    )""",
    """IF OBJECT_ID('configuracion_sistema', 'U') IS NULL CREATE TABLE configuracion_sistema (
        id INT IDENTITY(1,1) PRIMARY KEY,
        clave NVARCHAR(100) NOT NULL UNIQUE,
        valor NVARCHAR(MAX) NULL,
        tipo NVARCHAR(20) NOT NULL DEFAULT 'texto',
        categoria NVARCHAR(50) NOT NULL DEFAULT 'general',
        descripcion NVARCHAR(500) NULL,
        editable BIT NOT NULL DEFAULT 1,
        updated_at DATETIME2 NOT NULL DEFAULT SYSDATETIME()
    )""",
    """IF OBJECT_ID('configuracion_notificaciones', 'U') IS NULL CREATE TABLE configuracion_notificaciones (
        id INT IDENTITY(1,1) PRIMARY KEY,
        tipo_notificacion NVARCHAR(100) NOT NULL UNIQUE,
        activa BIT NOT NULL DEFAULT 1,
        enviar_email BIT NOT NULL DEFAULT 0,
        enviar_sistema BIT NOT NULL DEFAULT 1,
        asunto_email NVARCHAR(300) NULL,
        roles_destino NVARCHAR(200) NULL,
        updated_at DATETIME2 NOT NULL DEFAULT SYSDATETIME()
    )""",
    """IF OBJECT_ID('configuracion_respaldos', 'U') IS NULL CREATE TABLE configuracion_respaldos (
        id INT IDENTITY(1,1) PRIMARY KEY,
        nombre NVARCHAR(200) NOT NULL,
        tipo NVARCHAR(50) NOT NULL,
        frecuencia NVARCHAR(20) NOT NULL CHECK (frecuencia IN ('diario', 'semanal', 'mensual')),
        hora_ejecucion NVARCHAR(5) NULL,
        dia_semana INT NULL,
        dia_mes INT NULL,
        activo BIT NOT NULL DEFAULT 1,
        ultima_ejecucion DATETIME2 NULL,
        proximo_ejecucion DATETIME2 NULL,
        incluir_documentos BIT NOT NULL DEFAULT 1,
        incluir_base_datos BIT NOT NULL DEFAULT 1,
        ruta_destino NVARCHAR(500) NULL,
        retener_dias INT NOT NULL DEFAULT 30,
        created_at DATETIME2 NOT NULL DEFAULT SYSDATETIME()
    )""",
]


def crear_esquema(conn, dialecto):
    """Crea todas las tablas si no existen."""
    cursor = conn.cursor()
    try:
        if dialecto.nombre == 'sqlite':
            conn.executescript(SQLITE_SCHEMA)
        else:
            for sentencia in SQLSERVER_SCHEMA:
                cursor.execute(sentencia)
        conn.commit()
        logger.info(f"Esquema creado/verificado ({len(TABLAS)} tablas)")
    except Exception:
        conn.rollback()
        raise
    finally:
        cursor.close()
