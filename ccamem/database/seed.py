# RUTA: ccamem/database/seed.py
"""
Datos iniciales: usuario administrador, áreas, cuadro de clasificación
archivística, configuración por defecto y un expediente de ejemplo.
Es idempotente: omite los registros cuyo código ya existe.
"""

import logging

from ccamem.core.security import generate_password_hash
from ccamem.utils.fechas import ahora

logger = logging.getLogger(__name__)

ADMIN_EMAIL = 'admin@ccamem.gob.mx'
ADMIN_PASSWORD = 'admin123'

AREAS = [
    ('DG', 'Dirección General', 'Dirección General de la CCAMEM'),
    ('UA', 'Unidad de Apoyo Administrativo', 'Área administrativa y de recursos'),
    ('UM', 'Unidad Médica', 'Área de dictámenes médicos'),
    ('UJ', 'Unidad Jurídica', 'Área legal y jurídica'),
    ('SISTEMAS', 'Sistemas', 'Área de tecnologías de la información'),
]

FONDO = ('CCAMEM', 'Comisión de Conciliación y Arbitraje Médico del Estado de México', 'Fondo documental de la CCAMEM')

SECCIONES = [
    ('1S', 'Recepción y seguimiento de quejas sobre prestación de servicios de salud', 'Gestión de quejas médicas'),
    ('2S', 'Atención de inconformidades y solución de conflictos', 'Resolución de conflictos médicos'),
    ('3S', 'Programa operativo anual e información estadística', 'Planeación y estadísticas'),
    ('4S', 'Dictámenes técnico-médico institucionales', 'Dictámenes médicos especializados'),
    ('1C', 'Administración del capital humano, recursos materiales y financieros', 'Gestión administrativa'),
    ('2C', 'Control y evaluación', 'Auditoría y control interno'),
    ('3C', 'Gestión documental y administración de archivos', 'Gestión de archivos institucionales'),
    ('4C', 'Planeación y coordinación de actividades de la persona titular', 'Actividades de dirección'),
    ('5C', 'Transparencia, acceso a la información y protección de datos personales', 'Transparencia y datos personales'),
]

SERIES = {
    '1S': [
        ('1S.1', 'Asesoría y orientación a usuarios y prestadores de servicios sobre sus derechos y obligaciones'),
        ('1S.2', 'Resolución de inconformidades entre usuarios y prestadores de servicios de salud'),
        ('1S.3', 'Quejas derivadas de la prestación de los servicios de salud'),
        ('1S.4', 'Pláticas, conferencias y otros mecanismos de comunicación'),
    ],
    '2S': [
        ('2S.1', 'Solicitud de datos y documentos para la atención de los asuntos'),
        ('2S.2', 'Promoción de juicios'),
        ('2S.3', 'Asesoría y representación en asuntos jurídicos y administrativos'),
        ('2S.4', 'Desempeño de las y los consultores jurídicos'),
        ('2S.5', 'Certificación de documentos'),
        ('2S.6', 'Igualdad de género'),
        ('2S.7', 'Coordinación de Sesiones de Consejo'),
        ('2S.8', 'Actualizaciones al ordenamiento institucional'),
        ('2S.9', 'Comité de Mejora Regulatoria'),
        ('2S.10', 'Informe de rendición de cuentas'),
    ],
}

SUBSERIES = {
    '1S.3': [
        ('1S.3.1', 'Quejas'),
        ('1S.3.2', 'Asesorías'),
        ('1S.3.3', 'Orientaciones'),
        ('1S.3.4', 'Gestiones inmediatas'),
    ],
}

# (clave, valor, tipo, categoria, descripcion, editable)
CONFIGURACION_SISTEMA = [
    ('institucion_nombre', 'Comisión de Conciliación y Arbitraje Médico del Estado de México', 'texto', 'general', 'Nombre de la institución', 1),
    ('institucion_siglas', 'CCAMEM', 'texto', 'general', 'Siglas de la institución', 0),
    ('expedientes_por_pagina', '20', 'numero', 'general', 'Expedientes por página en los listados', 1),
    ('archivo_tramite_default', '2', 'numero', 'archivo', 'Años en archivo de trámite por defecto', 1),
    ('archivo_concentracion_default', '5', 'numero', 'archivo', 'Años en archivo de concentración por defecto', 1),
    ('uploads_max_mb', '10', 'numero', 'archivo', 'Tamaño máximo por archivo (MB)', 0),
    ('auditoria_retencion_dias', '90', 'numero', 'seguridad', 'Días que se conservan los logs de auditoría', 1),
    ('sesion_expiracion_horas', '24', 'numero', 'seguridad', 'Vigencia del token de sesión', 0),
    ('notificaciones_activas', 'true', 'booleano', 'notificaciones', 'Habilita el envío de notificaciones', 1),
    ('email_from', 'archivo@ccamem.gob.mx', 'texto', 'email', 'Remitente de los correos del sistema', 1),
    ('email_from_name', 'Archivo CCAMEM', 'texto', 'email', 'Nombre del remitente', 1),
    ('reportes_pie_firmas', '["RESPONSABLE DEL ARCHIVO", "TITULAR DE LA UNIDAD ADMINISTRATIVA"]', 'json', 'reportes', 'Firmas del inventario general', 1),
]

# (tipo_notificacion, activa, enviar_email, enviar_sistema, asunto_email, roles_destino)
NOTIFICACIONES = [
    ('expediente_creado', 1, 0, 1, 'Nuevo expediente registrado', 'admin'),
    ('expediente_baja', 1, 1, 1, 'Expediente dado de baja', 'admin'),
    ('documento_subido', 1, 0, 1, 'Nuevo documento digitalizado', 'admin,usuario'),
    ('respaldo_completado', 1, 1, 1, 'Respaldo completado', 'admin'),
    ('respaldo_error', 1, 1, 1, 'Error en respaldo', 'admin'),
]


def _id_por_codigo(cursor, tabla, codigo):
    cursor.execute(f"SELECT id FROM {tabla} WHERE codigo = ?", (codigo,))
    fila = cursor.fetchone()
    return fila[0] if fila else None


def _insertar_si_no_existe(cursor, tabla, codigo, columnas, valores):
    existente = _id_por_codigo(cursor, tabla, codigo)
    if existente:
        return existente
    marcadores = ', '.join('?' for _ in columnas)
    cursor.execute(f"INSERT INTO {tabla} ({', '.join(columnas)}) VALUES ({marcadores})", tuple(valores))
    return _id_por_codigo(cursor, tabla, codigo)


def seed_database(conn, admin_email=ADMIN_EMAIL, admin_password=ADMIN_PASSWORD):
    """Pobla la base de datos en una sola transacción."""
    cursor = conn.cursor()
    marca = ahora()
    try:
        for orden, (codigo, nombre, descripcion) in enumerate(AREAS, start=1):
            _insertar_si_no_existe(cursor, 'areas', codigo,
                                   ['codigo', 'nombre', 'descripcion', 'orden', 'activo', 'created_at'],
                                   [codigo, nombre, descripcion, orden, 1, marca])

        cursor.execute("SELECT id FROM usuarios WHERE LOWER(email) = LOWER(?)", (admin_email,))
        fila = cursor.fetchone()
        if fila:
            admin_id = fila[0]
        else:
            cursor.execute(
                "INSERT INTO usuarios (nombre, email, password, rol, area, activo, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                ('Administrador', admin_email.lower(), generate_password_hash(admin_password), 'admin', 'SISTEMAS', 1, marca, marca)
            )
            cursor.execute("SELECT id FROM usuarios WHERE email = ?", (admin_email.lower(),))
            admin_id = cursor.fetchone()[0]

        fondo_id = _insertar_si_no_existe(cursor, 'fondos', FONDO[0],
                                          ['codigo', 'nombre', 'descripcion', 'activo'], [*FONDO, 1])

        for orden, (codigo, nombre, descripcion) in enumerate(SECCIONES, start=1):
            _insertar_si_no_existe(cursor, 'secciones', codigo,
                                   ['codigo', 'nombre', 'descripcion', 'fondo_id', 'orden', 'activo'],
                                   [codigo, nombre, descripcion, fondo_id, orden, 1])

        for codigo_seccion, series in SERIES.items():
            seccion_id = _id_por_codigo(cursor, 'secciones', codigo_seccion)
            for orden, (codigo, nombre) in enumerate(series, start=1):
                _insertar_si_no_existe(cursor, 'series', codigo,
                                       ['codigo', 'nombre', 'seccion_id', 'orden', 'activo'],
                                       [codigo, nombre, seccion_id, orden, 1])

        for codigo_serie, subseries in SUBSERIES.items():
            serie_id = _id_por_codigo(cursor, 'series', codigo_serie)
            for orden, (codigo, nombre) in enumerate(subseries, start=1):
                _insertar_si_no_existe(cursor, 'subseries', codigo,
                                       ['codigo', 'nombre', 'serie_id', 'orden', 'activo'],
                                       [codigo, nombre, serie_id, orden, 1])

        for clave, valor, tipo, categoria, descripcion, editable in CONFIGURACION_SISTEMA:
            cursor.execute("SELECT COUNT(*) FROM configuracion_sistema WHERE clave = ?", (clave,))
            if cursor.fetchone()[0] == 0:
                cursor.execute(
                    "INSERT INTO configuracion_sistema (clave, valor, tipo, categoria, descripcion, editable, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (clave, valor, tipo, categoria, descripcion, editable, marca)
                )

        for tipo, activa, enviar_email, enviar_sistema, asunto, roles in NOTIFICACIONES:
            cursor.execute("SELECT COUNT(*) FROM configuracion_notificaciones WHERE tipo_notificacion = ?", (tipo,))
            if cursor.fetchone()[0] == 0:
                cursor.execute(
                    "INSERT INTO configuracion_notificaciones "
                    "(tipo_notificacion, activa, enviar_email, enviar_sistema, asunto_email, roles_destino, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (tipo, activa, enviar_email, enviar_sistema, asunto, roles, marca)
                )

        cursor.execute("SELECT COUNT(*) FROM expedientes WHERE numero_expediente = ?", ('CCAMEM/001/2025',))
        if cursor.fetchone()[0] == 0:
            cursor.execute(
                """
                INSERT INTO expedientes (
                    numero_expediente, nombre, asunto, area_id, fondo_id, seccion_id, serie_id, subserie_id,
                    numero_legajos, total_hojas, fecha_apertura, valor_administrativo, valor_juridico,
                    archivo_tramite, archivo_concentracion, destino_final, clasificacion_informacion,
                    estado, created_by, updated_by, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    'CCAMEM/001/2025', 'Expediente de prueba - Queja médica',
                    'Queja por mala atención médica en hospital general',
                    _id_por_codigo(cursor, 'areas', 'UJ'), fondo_id,
                    _id_por_codigo(cursor, 'secciones', '1S'), _id_por_codigo(cursor, 'series', '1S.3'),
                    _id_por_codigo(cursor, 'subseries', '1S.3.1'),
                    1, 50, '2025-01-15', 1, 1, 2, 5, 'conservacion', 'publica',
                    'activo', admin_id, admin_id, marca, marca
                )
            )

        conn.commit()
        logger.info("Datos iniciales cargados correctamente")
        return admin_id
    except Exception:
        conn.rollback()
        raise
    finally:
        cursor.close()
