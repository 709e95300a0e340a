# RUTA: ccamem/infrastructure/persistence/expediente_repository.py

import logging
from datetime import date, timedelta

from ccamem.core.errors import ErrorDuplicado, ErrorNoEncontrado, ErrorValidacion
from ccamem.database.connector import get_db_read, get_db_write, get_dialecto
from ccamem.domain.models.catalogos import ESTADO_BAJA
from ccamem.domain.repositories.i_expediente_repository import IDocumentoRepository, IExpedienteRepository
from ccamem.infrastructure.persistence.consultas import (
    FiltroConsulta, _row_to_dict, _rows_to_dicts, calcular_diferencias, consulta_limitada, desde, hasta,
    igual, paginar, registrar_historial, texto_libre,
)
from ccamem.utils.fechas import ahora

logger = logging.getLogger(__name__)

CAMPOS_EXPEDIENTE = (
    'numero_expediente', 'nombre', 'asunto', 'area_id', 'fondo_id', 'seccion_id', 'serie_id',
    'subserie_id', 'numero_legajos', 'total_hojas', 'fecha_apertura', 'fecha_cierre',
    'valor_administrativo', 'valor_juridico', 'valor_fiscal', 'valor_contable', 'archivo_tramite',
    'archivo_concentracion', 'destino_final', 'clasificacion_informacion', 'ubicacion_fisica',
    'observaciones', 'estado',
)

CAMPOS_BOOLEANOS = ('valor_administrativo', 'valor_juridico', 'valor_fiscal', 'valor_contable')

# campo -> (tabla, mensaje si no existe)
REFERENCIAS_CATALOGO = {
    'area_id': ('areas', 'El área especificada no existe'),
    'fondo_id': ('fondos', 'El fondo especificado no existe'),
    'seccion_id': ('secciones', 'La sección especificada no existe'),
    'serie_id': ('series', 'La serie especificada no existe'),
    'subserie_id': ('subseries', 'La subserie especificada no existe'),
}

EXPEDIENTE_SELECT = """
    SELECT e.*,
           a.codigo AS area_codigo, a.nombre AS area_nombre,
           f.codigo AS fondo_codigo, f.nombre AS fondo_nombre,
           s.codigo AS seccion_codigo, s.nombre AS seccion_nombre,
           se.codigo AS serie_codigo, se.nombre AS serie_nombre,
           ss.codigo AS subserie_codigo, ss.nombre AS subserie_nombre,
           u.nombre AS creado_por_nombre
"""

EXPEDIENTE_FROM = """
    FROM expedientes e
    LEFT JOIN areas a ON e.area_id = a.id
    LEFT JOIN fondos f ON e.fondo_id = f.id
    LEFT JOIN secciones s ON e.seccion_id = s.id
    LEFT JOIN series se ON e.serie_id = se.id
    LEFT JOIN subseries ss ON e.subserie_id = ss.id
    LEFT JOIN usuarios u ON e.created_by = u.id
"""

ORDEN_EXPEDIENTES = "e.created_at DESC, e.id DESC"


def _normalizar(expediente):
    if expediente:
        for campo in CAMPOS_BOOLEANOS:
            if campo in expediente:
                expediente[campo] = bool(expediente[campo])
    return expediente


class SqlServerExpedienteRepository(IExpedienteRepository):

    filtro = FiltroConsulta(
        area_id=igual('e.area_id', int),
        estado=igual('e.estado'),
        fondo_id=igual('e.fondo_id', int),
        seccion_id=igual('e.seccion_id', int),
        serie_id=igual('e.serie_id', int),
        fecha_inicio=desde('e.fecha_apertura'),
        fecha_fin=hasta('e.fecha_apertura'),
        busqueda=texto_libre('e.numero_expediente', 'e.nombre', 'e.asunto'),
    )

    def _condiciones_base(self, filtros):
        # Los expedientes dados de baja solo aparecen si se piden explícitamente por estado
        if filtros and filtros.get('estado'):
            return []
        return [f"e.estado <> '{ESTADO_BAJA}'"]

    def get_all_paginated(self, filtros, page, limit):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            where, params = self.filtro.construir(filtros, self._condiciones_base(filtros))
            pagina = paginar(cursor, get_dialecto(), EXPEDIENTE_SELECT, f"{EXPEDIENTE_FROM}{where}", params,
                             ORDEN_EXPEDIENTES, page, limit)
            pagina.items = [_normalizar(item) for item in pagina.items]
            return pagina
        finally:
            cursor.close()
            conn.close()

    def get_for_report(self, filtros, limite):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            where, params = self.filtro.construir(filtros, self._condiciones_base(filtros))
            filas = consulta_limitada(cursor, get_dialecto(), f"{EXPEDIENTE_SELECT} {EXPEDIENTE_FROM}{where}",
                                      params, ORDEN_EXPEDIENTES, limite)
            return [_normalizar(fila) for fila in filas]
        finally:
            cursor.close()
            conn.close()

    def get_inventario(self, year):
        """Expedientes abiertos en el año indicado, sin los dados de baja, por sección, serie y número."""
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            cursor.execute(
                f"{EXPEDIENTE_SELECT} {EXPEDIENTE_FROM} "
                "WHERE e.estado <> ? AND e.fecha_apertura >= ? AND e.fecha_apertura <= ? "
                "ORDER BY s.codigo, se.codigo, e.numero_expediente",
                (ESTADO_BAJA, f"{year}-01-01", f"{year}-12-31")
            )
            return [_normalizar(fila) for fila in _rows_to_dicts(cursor, cursor.fetchall())]
        finally:
            cursor.close()
            conn.close()

    def get_para_siser(self, filtros, limite):
        """Expedientes activos que se envían al portal SISER."""
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            filtro_siser = FiltroConsulta(area_id=igual('e.area_id', int), fecha_inicio=desde('e.fecha_apertura'))
            where, params = filtro_siser.construir(filtros, ["e.estado = 'activo'"])
            return consulta_limitada(
                cursor, get_dialecto(),
                "SELECT e.id, e.numero_expediente, e.nombre, e.numero_legajos, e.total_hojas, "
                f"e.fecha_apertura, e.fecha_cierre FROM expedientes e{where}",
                params, ORDEN_EXPEDIENTES, limite
            )
        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, expediente_id):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            cursor.execute(f"{EXPEDIENTE_SELECT} {EXPEDIENTE_FROM} WHERE e.id = ?", (expediente_id,))
            return _normalizar(_row_to_dict(cursor, cursor.fetchone()))
        finally:
            cursor.close()
            conn.close()

    def _validar_referencias(self, cursor, datos):
        for campo, (tabla, mensaje) in REFERENCIAS_CATALOGO.items():
            valor = datos.get(campo)
            if valor is None:
                continue
            cursor.execute(f"SELECT COUNT(*) FROM {tabla} WHERE id = ?", (valor,))
            if cursor.fetchone()[0] == 0:
                raise ErrorValidacion(mensaje, {campo: [mensaje]})

    def _numero_en_uso(self, cursor, numero, excluir_id=None):
        if excluir_id is None:
            cursor.execute("SELECT COUNT(*) FROM expedientes WHERE numero_expediente = ?", (numero,))
        else:
            cursor.execute("SELECT COUNT(*) FROM expedientes WHERE numero_expediente = ? AND id <> ?",
                           (numero, excluir_id))
        return cursor.fetchone()[0] > 0

    def create(self, datos, usuario_id):
        conn = get_db_write()
        cursor = conn.cursor()
        try:
            if self._numero_en_uso(cursor, datos['numero_expediente']):
                raise ErrorDuplicado('Ya existe un expediente con ese número')
            self._validar_referencias(cursor, datos)

            columnas = [c for c in CAMPOS_EXPEDIENTE if datos.get(c) is not None]
            valores = [datos[c] for c in columnas]
            marca = ahora()
            columnas += ['created_by', 'updated_by', 'created_at', 'updated_at']
            valores += [usuario_id, usuario_id, marca, marca]
            marcadores = ', '.join('?' for _ in columnas)
            cursor.execute(f"INSERT INTO expedientes ({', '.join(columnas)}) VALUES ({marcadores})", tuple(valores))
            new_id = get_dialecto().ultimo_id(cursor)

            registrar_historial(cursor, 'expedientes', new_id, usuario_id, 'creacion',
                                'numero_expediente', None, datos['numero_expediente'])
            conn.commit()
            logger.info(f"Expediente creado: {datos['numero_expediente']} (ID: {new_id})")
            return new_id
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def update(self, expediente_id, cambios, usuario_id):
        """Actualiza solo los campos que cambian; una fila de historial por campo."""
        conn = get_db_write()
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT * FROM expedientes WHERE id = ?", (expediente_id,))
            anterior = _row_to_dict(cursor, cursor.fetchone())
            if not anterior:
                raise ErrorNoEncontrado('Expediente no encontrado')

            nuevo_numero = cambios.get('numero_expediente')
            if nuevo_numero and nuevo_numero != anterior['numero_expediente']:
                if self._numero_en_uso(cursor, nuevo_numero, excluir_id=expediente_id):
                    raise ErrorDuplicado('Ya existe un expediente con ese número')
            self._validar_referencias(cursor, cambios)

            diferencias = calcular_diferencias(anterior, cambios)
            if not diferencias:
                return []

            asignaciones = ', '.join(f"{campo} = ?" for campo, _, _ in diferencias)
            valores = [nuevo for _, _, nuevo in diferencias]
            cursor.execute(f"UPDATE expedientes SET {asignaciones}, updated_by = ?, updated_at = ? WHERE id = ?",
                           tuple(valores + [usuario_id, ahora(), expediente_id]))
            for campo, previo, nuevo in diferencias:
                registrar_historial(cursor, 'expedientes', expediente_id, usuario_id, 'modificacion', campo, previo, nuevo)
            conn.commit()
            return [campo for campo, _, _ in diferencias]
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def soft_delete(self, expediente_id, usuario_id):
        conn = get_db_write()
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT estado FROM expedientes WHERE id = ?", (expediente_id,))
            fila = cursor.fetchone()
            if not fila:
                raise ErrorNoEncontrado('Expediente no encontrado')
            if fila[0] == ESTADO_BAJA:
                raise ErrorValidacion('El expediente ya está dado de baja')

            cursor.execute("UPDATE expedientes SET estado = ?, updated_by = ?, updated_at = ? WHERE id = ?",
                           (ESTADO_BAJA, usuario_id, ahora(), expediente_id))
            registrar_historial(cursor, 'expedientes', expediente_id, usuario_id, 'eliminacion', 'estado', fila[0], ESTADO_BAJA)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def get_estadisticas(self):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            hace_30_dias = (date.today() - timedelta(days=30)).isoformat()
            cursor.execute("""
                SELECT
                    COUNT(*) AS total,
                    SUM(CASE WHEN estado = 'activo' THEN 1 ELSE 0 END) AS activos,
                    SUM(CASE WHEN estado = 'cerrado' THEN 1 ELSE 0 END) AS cerrados,
                    SUM(CASE WHEN estado = 'transferido' THEN 1 ELSE 0 END) AS transferidos,
                    SUM(CASE WHEN estado = 'baja' THEN 1 ELSE 0 END) AS bajas,
                    SUM(CASE WHEN estado <> 'baja' THEN total_hojas ELSE 0 END) AS total_hojas,
                    SUM(CASE WHEN estado <> 'baja' THEN numero_legajos ELSE 0 END) AS total_legajos,
                    SUM(CASE WHEN fecha_apertura >= ? THEN 1 ELSE 0 END) AS ultimos_30_dias
                FROM expedientes
            """, (hace_30_dias,))
            resumen = {k: int(v or 0) for k, v in _row_to_dict(cursor, cursor.fetchone()).items()}

            cursor.execute("""
                SELECT COALESCE(a.nombre, 'Sin área') AS area, COUNT(e.id) AS total
                FROM expedientes e
                LEFT JOIN areas a ON e.area_id = a.id
                WHERE e.estado <> 'baja'
                GROUP BY a.nombre
                ORDER BY total DESC
            """)
            resumen['por_area'] = _rows_to_dicts(cursor, cursor.fetchall())
            return resumen
        finally:
            cursor.close()
            conn.close()


class SqlServerDocumentoRepository(IDocumentoRepository):

    DOCUMENTO_SELECT = """
        SELECT d.id, d.expediente_id, d.nombre, d.descripcion, d.tipo_documento, d.fecha_documento,
               d.archivo_digital, d.nombre_original, d.mime_type, d.tamano_bytes, d.numero_hojas,
               d.orden, d.created_by, u.nombre AS subido_por_nombre, d.created_at
        FROM documentos d
        LEFT JOIN usuarios u ON d.created_by = u.id
    """

    def create(self, expediente_id, datos, usuario_id):
        """
        Inserta el documento y suma sus hojas al expediente en la misma transacción.
        Lanza ErrorNoEncontrado si el expediente no existe.
        """
        conn = get_db_write()
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT total_hojas FROM expedientes WHERE id = ?", (expediente_id,))
            fila = cursor.fetchone()
            if not fila:
                raise ErrorNoEncontrado('Expediente no encontrado')
            hojas_anteriores = fila[0] or 0

            cursor.execute("SELECT COALESCE(MAX(orden), 0) FROM documentos WHERE expediente_id = ?", (expediente_id,))
            orden = (cursor.fetchone()[0] or 0) + 1
            numero_hojas = datos.get('numero_hojas') or 1

            cursor.execute(
                """
                INSERT INTO documentos
                    (expediente_id, nombre, descripcion, tipo_documento, fecha_documento, archivo_digital,
                     nombre_original, mime_type, tamano_bytes, numero_hojas, orden, created_by, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (expediente_id, datos['nombre'], datos.get('descripcion'), datos.get('tipo_documento'),
                 datos.get('fecha_documento'), datos['archivo_digital'], datos.get('nombre_original'),
                 datos.get('mime_type'), datos.get('tamano_bytes'), numero_hojas, orden, usuario_id, ahora())
            )
            documento_id = get_dialecto().ultimo_id(cursor)

            cursor.execute("UPDATE expedientes SET total_hojas = total_hojas + ?, updated_by = ?, updated_at = ? WHERE id = ?",
                           (numero_hojas, usuario_id, ahora(), expediente_id))
            registrar_historial(cursor, 'documentos', documento_id, usuario_id, 'creacion',
                                'archivo_digital', None, datos['archivo_digital'])
            registrar_historial(cursor, 'expedientes', expediente_id, usuario_id, 'modificacion',
                                'total_hojas', hojas_anteriores, hojas_anteriores + numero_hojas)

            cursor.execute(f"{self.DOCUMENTO_SELECT} WHERE d.id = ?", (documento_id,))
            documento = _row_to_dict(cursor, cursor.fetchone())
            conn.commit()
            return documento
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, documento_id):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            cursor.execute(f"{self.DOCUMENTO_SELECT} WHERE d.id = ?", (documento_id,))
            return _row_to_dict(cursor, cursor.fetchone())
        finally:
            cursor.close()
            conn.close()

    def find_by_expediente(self, expediente_id):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            cursor.execute(f"{self.DOCUMENTO_SELECT} WHERE d.expediente_id = ? ORDER BY d.orden, d.id", (expediente_id,))
            return _rows_to_dicts(cursor, cursor.fetchall())
        finally:
            cursor.close()
            conn.close()

    def delete(self, documento_id, usuario_id):
        """Borra la fila y descuenta las hojas del expediente. Devuelve el documento eliminado."""
        conn = get_db_write()
        cursor = conn.cursor()
        try:
            cursor.execute(f"{self.DOCUMENTO_SELECT} WHERE d.id = ?", (documento_id,))
            documento = _row_to_dict(cursor, cursor.fetchone())
            if not documento:
                raise ErrorNoEncontrado('Documento no encontrado')

            cursor.execute("SELECT total_hojas FROM expedientes WHERE id = ?", (documento['expediente_id'],))
            hojas_anteriores = cursor.fetchone()[0] or 0
            hojas_nuevas = max(hojas_anteriores - (documento['numero_hojas'] or 0), 0)

            cursor.execute("DELETE FROM documentos WHERE id = ?", (documento_id,))
            cursor.execute("UPDATE expedientes SET total_hojas = ?, updated_by = ?, updated_at = ? WHERE id = ?",
                           (hojas_nuevas, usuario_id, ahora(), documento['expediente_id']))
            registrar_historial(cursor, 'documentos', documento_id, usuario_id, 'eliminacion',
                                'archivo_digital', documento['archivo_digital'], None)
            registrar_historial(cursor, 'expedientes', documento['expediente_id'], usuario_id, 'modificacion',
                                'total_hojas', hojas_anteriores, hojas_nuevas)
            conn.commit()
            return documento
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()
