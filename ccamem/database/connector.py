# RUTA: ccamem/database/connector.py
"""
Fábrica de conexiones a la base de datos.

La fábrica se construye una vez en create_app() y se guarda en
app.config['DB_CONNECTION_FACTORY']; los repositorios piden conexiones con
get_db_read()/get_db_write() y las cierran al terminar. Así la conexión es una
dependencia inyectada y no un pool global del proceso.
"""

import logging
import sqlite3

import pyodbc
from flask import current_app

logger = logging.getLogger(__name__)


class SqlServerDialecto:
    nombre = 'sqlserver'

    def paginar(self, sql, params, limit, offset):
        # SQL Server exige ORDER BY antes de OFFSET/FETCH
        return f"{sql} OFFSET ? ROWS FETCH NEXT ? ROWS ONLY", list(params) + [offset, limit]

    def ultimo_id(self, cursor):
        cursor.execute("SELECT CAST(@@IDENTITY AS INT)")
        return cursor.fetchone()[0]

    def version(self, cursor):
        cursor.execute("SELECT @@VERSION")
        return cursor.fetchone()[0]

    def tamano_bytes(self, cursor):
        cursor.execute("SELECT SUM(CAST(size AS BIGINT)) * 8 * 1024 FROM sys.database_files")
        fila = cursor.fetchone()
        return int(fila[0] or 0)


class SqliteDialecto:
    nombre = 'sqlite'

    def paginar(self, sql, params, limit, offset):
        return f"{sql} LIMIT ? OFFSET ?", list(params) + [limit, offset]

    def ultimo_id(self, cursor):
        return cursor.lastrowid

    def version(self, cursor):
        cursor.execute("SELECT sqlite_version()")
        return f"SQLite {cursor.fetchone()[0]}"

    def tamano_bytes(self, cursor):
        cursor.execute("PRAGMA page_count")
        paginas = cursor.fetchone()[0]
        cursor.execute("PRAGMA page_size")
        return int(paginas * cursor.fetchone()[0])


def build_connection_string(config):
    return (
        f"DRIVER={{{config['DB_DRIVER']}}};"
        f"SERVER={config['DB_SERVER']};"
        f"DATABASE={config['DB_DATABASE']};"
        f"UID={config['DB_USERNAME_WRITE']};"
        f"PWD={config['DB_PASSWORD_WRITE']};"
        "TrustServerCertificate=yes;"
    )


def _minusculas(valor):
    return valor.lower() if isinstance(valor, str) else valor


def crear_fabrica_conexiones(config):
    """Devuelve (fabrica, dialecto) según DB_ENGINE."""
    motor = config.get('DB_ENGINE', 'sqlserver')
    if motor == 'sqlite':
        ruta = config['DB_SQLITE_PATH']

        def conectar_sqlite():
            conn = sqlite3.connect(ruta, timeout=30)
            conn.execute("PRAGMA foreign_keys = ON")
            # LOWER nativo de SQLite solo convierte ASCII
            conn.create_function("LOWER", 1, _minusculas, deterministic=True)
            return conn

        return conectar_sqlite, SqliteDialecto()

    if motor == 'sqlserver':
        connection_string = build_connection_string(config)

        def conectar_sqlserver():
            return pyodbc.connect(connection_string, autocommit=False)

        return conectar_sqlserver, SqlServerDialecto()

    raise ValueError(f"Motor de base de datos no soportado: {motor}")


def init_app_db(app):
    """Registra la fábrica de conexiones y el dialecto en la configuración de la app."""
    if app.config.get('DB_CONNECTION_FACTORY') is None:
        fabrica, dialecto = crear_fabrica_conexiones(app.config)
        app.config['DB_CONNECTION_FACTORY'] = fabrica
        app.config['DB_DIALECT'] = dialecto
    if app.config.get('DB_DIALECT') is None:
        motor = app.config.get('DB_ENGINE', 'sqlserver')
        app.config['DB_DIALECT'] = SqliteDialecto() if motor == 'sqlite' else SqlServerDialecto()
    logger.info(f"Base de datos configurada con motor '{app.config['DB_DIALECT'].nombre}'")


def get_db_read():
    return current_app.config['DB_CONNECTION_FACTORY']()


def get_db_write():
    return current_app.config['DB_CONNECTION_FACTORY']()


def get_dialecto():
    return current_app.config['DB_DIALECT']
