import os

# La configuración se evalúa al importar el paquete
os.environ.setdefault('SECRET_KEY', 'clave-de-pruebas')
os.environ['DB_ENGINE'] = 'sqlite'

import pytest

from ccamem import create_app
from ccamem.database.schema import crear_esquema
from ccamem.database.seed import seed_database

ADMIN_EMAIL = 'admin@x.com'
ADMIN_PASSWORD = 'admin123'


@pytest.fixture
def overrides():
    """Configuración extra por prueba; los módulos pueden redefinir este fixture."""
    return {}


@pytest.fixture
def app(tmp_path, overrides):
    config = {
        'TESTING': True,
        'DB_ENGINE': 'sqlite',
        'DB_SQLITE_PATH': str(tmp_path / 'ccamem_test.db'),
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'BACKUP_FOLDER': str(tmp_path / 'respaldos'),
        'RATELIMIT_ENABLED': False,
        'MAIL_SUPPRESS_SEND': True,
        'SISER_EMAIL': None,
        'SISER_PASSWORD': None,
        'SISER_BACKOFF_SEGUNDOS': 0,
        'SISER_PAUSA_SEGUNDOS': 0,
    }
    config.update(overrides)
    app = create_app(config)

    with app.app_context():
        conn = app.config['DB_CONNECTION_FACTORY']()
        try:
            crear_esquema(conn, app.config['DB_DIALECT'])
            seed_database(conn, ADMIN_EMAIL, ADMIN_PASSWORD)
        finally:
            conn.close()
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    """Conexión directa para verificar el estado de la base de datos."""
    conn = app.config['DB_CONNECTION_FACTORY']()
    yield conn
    conn.close()


def login(client, email, password):
    return client.post('/api/auth/login', json={'email': email, 'password': password})


def auth_headers(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_token(client):
    response = login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    assert response.status_code == 200
    return response.get_json()['token']


@pytest.fixture
def admin_headers(admin_token):
    return auth_headers(admin_token)


@pytest.fixture
def crear_usuario(client, admin_headers):
    """Crea un usuario con el rol indicado y devuelve (id, cabeceras con su token)."""
    def _crear(rol, email=None, password='secreto123'):
        email = email or f'{rol}@x.com'
        response = client.post('/api/users', headers=admin_headers, json={
            'nombre': f'Usuario {rol}', 'email': email, 'password': password, 'rol': rol, 'area': 'UJ',
        })
        assert response.status_code == 201, response.get_json()
        token = login(client, email, password).get_json()['token']
        return response.get_json()['data']['id'], auth_headers(token)
    return _crear


@pytest.fixture
def expediente_payload():
    return {
        'numero_expediente': 'CCAMEM/010/2025',
        'nombre': 'Queja por diferimiento quirúrgico',
        'asunto': 'Inconformidad por retraso en cirugía programada',
        'area_id': 1,
        'fecha_apertura': '2025-02-01',
        'numero_legajos': 2,
    }


def contar(conn, sql, params=()):
    cursor = conn.cursor()
    try:
        cursor.execute(sql, params)
        return cursor.fetchone()[0]
    finally:
        cursor.close()
