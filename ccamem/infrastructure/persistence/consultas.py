# RUTA: ccamem/infrastructure/persistence/consultas.py
"""
Utilidades compartidas por los repositorios:

- conversión de filas a diccionarios,
- filtros dinámicos: cada clave de filtro se asocia a una función que produce
  el predicado SQL y sus parámetros; el predicado solo se agrega si el filtro
  viene informado,
- paginación COUNT + SELECT paginado,
- escritura del historial de cambios dentro de la transacción en curso.
"""

import json
import logging

from ccamem.core.errors import ErrorValidacion
from ccamem.utils.fechas import a_iso, ahora
from ccamem.utils.pagination import SimplePagination

logger = logging.getLogger(__name__)


def _row_to_dict(cursor, row):
    # Función de utilidad para convertir una fila del cursor a un diccionario
    if not row or not cursor.description:
        return None
    return {col[0]: a_iso(row[idx]) for idx, col in enumerate(cursor.description)}


def _rows_to_dicts(cursor, rows):
    return [_row_to_dict(cursor, row) for row in rows]


# ------------------------------------------------------------------
# Predicados
# ------------------------------------------------------------------

def igual(columna, convertir=None):
    def predicado(valor):
        return f"{columna} = ?", [convertir(valor) if convertir else valor]
    return predicado


def desde(columna):
    return lambda valor: (f"{columna} >= ?", [valor])


def hasta(columna):
    return lambda valor: (f"{columna} <= ?", [valor])


def hasta_fin_de_dia(columna):
    # Para columnas timestamp: 'YYYY-MM-DD' debe incluir todo el día
    def predicado(valor):
        texto = str(valor)
        return f"{columna} <= ?", [texto + ' 23:59:59' if len(texto) == 10 else texto]
    return predicado


def escapar_like(texto):
    # '[' también es comodín en SQL Server
    for caracter in ('\\', '%', '_', '['):
        texto = texto.replace(caracter, '\\' + caracter)
    return texto


def texto_libre(*columnas):
    """Coincidencia de subcadena sin distinguir mayúsculas en cualquiera de las columnas."""
    def predicado(valor):
        patron = f"%{escapar_like(str(valor).strip().lower())}%"
        condiciones = ' OR '.join(f"LOWER({c}) LIKE ? ESCAPE '\\'" for c in columnas)
        return f"({condiciones})", [patron] * len(columnas)
    return predicado


def bandera(columna):
    def predicado(valor):
        activo = str(valor).lower() in ('true', '1', 'si', 'sí')
        return f"{columna} = ?", [1 if activo else 0]
    return predicado


class FiltroConsulta:
    """
    Mapea nombres de filtro a predicados.

        filtro = FiltroConsulta(estado=igual('e.estado'), busqueda=texto_libre('e.nombre'))
        where, params = filtro.construir({'estado': 'activo'})
    """

    def __init__(self, **predicados):
        self._predicados = predicados

    def construir(self, filtros, condiciones_fijas=None):
        clausulas = list(condiciones_fijas or [])
        params = []
        filtros = filtros or {}
        for clave, predicado in self._predicados.items():
            valor = filtros.get(clave)
            if valor is None or (isinstance(valor, str) and valor.strip() == ''):
                continue
            try:
                sql, valores = predicado(valor)
            except (TypeError, ValueError):
                raise ErrorValidacion(f"El filtro {clave} debe ser numérico")
            clausulas.append(sql)
            params.extend(valores)
        where = f" WHERE {' AND '.join(clausulas)}" if clausulas else ''
        return where, params


def paginar(cursor, dialecto, select_sql, from_sql, params, order_by, page, limit):
    """Ejecuta el COUNT y la consulta paginada sobre el mismo FROM/WHERE."""
    cursor.execute(f"SELECT COUNT(*) {from_sql}", tuple(params))
    total = cursor.fetchone()[0] or 0

    offset = (page - 1) * limit
    sql, params_paginados = dialecto.paginar(f"{select_sql} {from_sql} ORDER BY {order_by}", params, limit, offset)
    cursor.execute(sql, tuple(params_paginados))
    items = _rows_to_dicts(cursor, cursor.fetchall())
    return SimplePagination(items, page, limit, total)


def consulta_limitada(cursor, dialecto, sql, params, order_by, limite):
    """SELECT con ORDER BY y tope de filas, sin conteo."""
    sql_final, params_finales = dialecto.paginar(f"{sql} ORDER BY {order_by}", params, limite, 0)
    cursor.execute(sql_final, tuple(params_finales))
    return _rows_to_dicts(cursor, cursor.fetchall())


# ------------------------------------------------------------------
# Historial de cambios
# ------------------------------------------------------------------

def _texto(valor):
    if valor is None:
        return None
    if isinstance(valor, (dict, list)):
        return json.dumps(valor, ensure_ascii=False, default=str)
    if isinstance(valor, bool):
        return 'true' if valor else 'false'
    return str(a_iso(valor))


def registrar_historial(cursor, tabla, registro_id, usuario_id, tipo_cambio,
                        campo=None, valor_anterior=None, valor_nuevo=None):
    """
    Inserta una fila en historial_cambios usando el cursor de la transacción
    en curso. Si falla, la excepción se propaga y la transacción se revierte.
    """
    cursor.execute(
        """
        INSERT INTO historial_cambios
            (tabla_afectada, registro_id, usuario_id, tipo_cambio, campo_modificado,
             valor_anterior, valor_nuevo, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (tabla, registro_id, usuario_id, tipo_cambio, campo,
         _texto(valor_anterior), _texto(valor_nuevo), ahora())
    )


def _normalizar_para_comparar(valor):
    if valor is None or valor == '':
        return None
    if isinstance(valor, bool):
        return str(int(valor))
    return str(a_iso(valor))


def calcular_diferencias(anterior, nuevos):
    """
    Compara la fila previa con los campos enviados.
    Devuelve [(campo, valor_anterior, valor_nuevo)] solo para los que cambian.
    """
    diferencias = []
    for campo, valor in nuevos.items():
        previo = anterior.get(campo)
        if _normalizar_para_comparar(previo) != _normalizar_para_comparar(valor):
            diferencias.append((campo, previo, valor))
    return diferencias


def registrar_log_auditoria(cursor, accion, modulo, descripcion=None, usuario=None,
                            datos_anteriores=None, datos_nuevos=None, ip_address=None,
                            resultado='exitoso', mensaje_error=None, duracion_ms=None):
    """Inserta una fila en logs_auditoria con el cursor recibido."""
    cursor.execute(
        """
        INSERT INTO logs_auditoria
            (usuario_id, usuario_email, usuario_nombre, accion, modulo, descripcion,
             datos_anteriores, datos_nuevos, ip_address, resultado, mensaje_error,
             duracion_ms, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            getattr(usuario, 'id', None), getattr(usuario, 'email', None), getattr(usuario, 'nombre', None),
            accion, modulo, descripcion, _texto(datos_anteriores), _texto(datos_nuevos),
            ip_address, resultado, mensaje_error, duracion_ms, ahora(),
        )
    )
