# RUTA: ccamem/infrastructure/persistence/catalogo_repository.py
# Cuadro general de clasificación archivística: fondo > sección > serie > subserie.

from ccamem.database.connector import get_db_read
from ccamem.infrastructure.persistence.consultas import _rows_to_dicts, texto_libre


class SqlServerCatalogoRepository:

    def _listar(self, sql, params=()):
        conn = get_db_read()
        cursor = conn.cursor()
        try:
            cursor.execute(sql, params)
            return _rows_to_dicts(cursor, cursor.fetchall())
        finally:
            cursor.close()
            conn.close()

    def get_areas(self):
        return self._listar("SELECT id, codigo, nombre, descripcion FROM areas WHERE activo = 1 ORDER BY orden, nombre")

    def get_fondos(self):
        return self._listar("SELECT id, codigo, nombre, descripcion FROM fondos WHERE activo = 1 ORDER BY codigo")

    def get_secciones(self, fondo_id=None):
        sql = "SELECT id, codigo, nombre, descripcion, fondo_id FROM secciones WHERE activo = 1"
        if fondo_id is not None:
            return self._listar(f"{sql} AND fondo_id = ? ORDER BY orden, codigo", (fondo_id,))
        return self._listar(f"{sql} ORDER BY orden, codigo")

    def get_series(self, seccion_id=None):
        sql = "SELECT id, codigo, nombre, descripcion, seccion_id FROM series WHERE activo = 1"
        if seccion_id is not None:
            return self._listar(f"{sql} AND seccion_id = ? ORDER BY orden, codigo", (seccion_id,))
        return self._listar(f"{sql} ORDER BY orden, codigo")

    def get_subseries(self, serie_id=None):
        sql = "SELECT id, codigo, nombre, descripcion, serie_id FROM subseries WHERE activo = 1"
        if serie_id is not None:
            return self._listar(f"{sql} AND serie_id = ? ORDER BY orden, codigo", (serie_id,))
        return self._listar(f"{sql} ORDER BY orden, codigo")

    def buscar(self, termino):
        """Busca por código o nombre en secciones, series y subseries; cada fila indica su tipo."""
        condicion, params = texto_libre('codigo', 'nombre')(termino)
        sql = f"""
            SELECT 'seccion' AS tipo, id, codigo, nombre FROM secciones
             WHERE activo = 1 AND {condicion}
            UNION ALL
            SELECT 'serie' AS tipo, id, codigo, nombre FROM series
             WHERE activo = 1 AND {condicion}
            UNION ALL
            SELECT 'subserie' AS tipo, id, codigo, nombre FROM subseries
             WHERE activo = 1 AND {condicion}
            ORDER BY codigo
        """
        return self._listar(sql, tuple(params) * 3)
