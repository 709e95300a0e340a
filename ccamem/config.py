# RUTA: ccamem/config.py

import os
from dotenv import load_dotenv

# Hacemos la ruta al .env explícita para evitar problemas
basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, '..', '.env'))


def _bool_env(nombre, defecto='false'):
    return os.environ.get(nombre, defecto).lower() in ['true', 'on', '1']


class Config:
    """
    Clase de configuración principal. Lee valores desde variables de entorno.
    El motor de base de datos se elige con DB_ENGINE: 'sqlserver' en producción,
    'sqlite' para desarrollo local y pruebas.
    """
    # --- CONFIGURACIÓN DE SEGURIDAD DE FLASK ---
    SECRET_KEY = os.environ.get('SECRET_KEY')
    DEBUG = _bool_env('FLASK_DEBUG')

    # En producción (DEBUG=False) la SECRET_KEY es obligatoria.
    if not SECRET_KEY and not DEBUG:
        raise ValueError("CRITICAL: La variable de entorno SECRET_KEY no está configurada para el entorno de producción.")

    # --- TOKENS JWT ---
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or SECRET_KEY or 'ccamem-desarrollo'
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRATION_HOURS = int(os.environ.get('JWT_EXPIRATION_HOURS', 24))

    # --- CONFIGURACIÓN DE LA BASE DE DATOS ---
    DB_ENGINE = os.environ.get('DB_ENGINE', 'sqlserver').lower()
    DB_DRIVER = os.environ.get('DB_DRIVER', 'ODBC Driver 17 for SQL Server')
    DB_SERVER = os.environ.get('DB_SERVER')
    DB_DATABASE = os.environ.get('DB_DATABASE', 'ccamem_archivo')
    DB_USERNAME_WRITE = os.environ.get('DB_USERNAME_WRITE')
    DB_PASSWORD_WRITE = os.environ.get('DB_PASSWORD_WRITE')
    DB_SQLITE_PATH = os.environ.get('DB_SQLITE_PATH', os.path.join(basedir, '..', 'instance', 'ccamem.db'))

    if DB_ENGINE == 'sqlserver' and not all([DB_SERVER, DB_DATABASE, DB_USERNAME_WRITE, DB_PASSWORD_WRITE]):
        raise ValueError("Error de configuración: Faltan una o más variables de entorno para la base de datos.")

    # --- CONFIGURACIÓN PARA EL ENVÍO DE CORREOS ---
    MAIL_SERVER = os.environ.get('MAIL_SERVER')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 587))
    MAIL_USE_TLS = _bool_env('MAIL_USE_TLS', 'true')
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'archivo@ccamem.gob.mx')

    # --- CONFIGURACIÓN PARA LA SUBIDA DE ARCHIVOS ---
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', os.path.join(basedir, '..', 'uploads'))
    ALLOWED_MIME_TYPES = {
        'application/pdf',
        'image/jpeg',
        'image/jpg',
        'image/png',
        'application/msword',
        'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
        'application/vnd.ms-excel',
        'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    }
    MAX_FILES_PER_REQUEST = 10

    # Tamaño máximo por archivo (10 MB). La petición completa admite hasta 10 archivos.
    MAX_FILE_SIZE = 10 * 1024 * 1024
    MAX_CONTENT_LENGTH = MAX_FILES_PER_REQUEST * MAX_FILE_SIZE

    # --- RESPALDOS ---
    BACKUP_FOLDER = os.environ.get('BACKUP_FOLDER', os.path.join(basedir, '..', 'respaldos'))

    # --- SEGURIDAD HTTP ---
    CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', 'http://localhost:3000').split(',') if o.strip()]
    RATELIMIT_ENABLED = _bool_env('RATELIMIT_ENABLED', 'true')
    TALISMAN_FORCE_HTTPS = _bool_env('TALISMAN_FORCE_HTTPS')

    # La API usa tokens Bearer, no cookies de sesión
    WTF_CSRF_ENABLED = False

    # --- INTEGRACIÓN SISER ---
    SISER_URL = os.environ.get('SISER_URL', 'https://siser.secogem.gob.mx/login')
    SISER_TRAMITE_URL = os.environ.get('SISER_TRAMITE_URL', 'https://siser.secogem.gob.mx/er1301archivotramite/create')
    SISER_EMAIL = os.environ.get('SISER_EMAIL')
    SISER_PASSWORD = os.environ.get('SISER_PASSWORD')
    SISER_HEADLESS = _bool_env('SISER_HEADLESS', 'true')
    SISER_MAX_REINTENTOS = int(os.environ.get('SISER_MAX_REINTENTOS', 3))
    SISER_BACKOFF_SEGUNDOS = float(os.environ.get('SISER_BACKOFF_SEGUNDOS', 2))
    SISER_PAUSA_SEGUNDOS = float(os.environ.get('SISER_PAUSA_SEGUNDOS', 2))
