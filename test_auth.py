from types import SimpleNamespace

from ccamem.core.security import create_token, decode_token
from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, auth_headers, contar, login


def test_login_exitoso_devuelve_token_del_usuario(client, app):
    response = login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['user']['rol'] == 'admin'
    assert 'password' not in body['user']

    payload = decode_token(body['token'], app.config['JWT_SECRET_KEY'])
    assert payload['id'] == body['user']['id']
    assert payload['sub'] == str(body['user']['id'])
    assert payload['rol'] == 'admin'


def test_login_ignora_mayusculas_del_email(client):
    response = login(client, ADMIN_EMAIL.upper(), ADMIN_PASSWORD)
    assert response.status_code == 200


def test_login_password_incorrecto(client):
    response = login(client, ADMIN_EMAIL, 'otra-cosa')
    assert response.status_code == 401
    body = response.get_json()
    assert body['error'] == 'Credenciales incorrectas'
    assert 'token' not in body


def test_login_email_desconocido(client):
    response = login(client, 'nadie@x.com', 'admin123')
    assert response.status_code == 401
    assert response.get_json()['tipo'] == 'no_autenticado'


def test_login_sin_campos(client):
    response = client.post('/api/auth/login', json={'email': ADMIN_EMAIL})
    assert response.status_code == 400
    body = response.get_json()
    assert body['error'] == 'Email y contraseña son requeridos'
    assert 'password' in body['detalles']


def test_login_usuario_inactivo(client, admin_headers, crear_usuario):
    user_id, _ = crear_usuario('usuario')
    assert client.delete(f'/api/users/{user_id}', headers=admin_headers).status_code == 200

    response = login(client, 'usuario@x.com', 'secreto123')
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Usuario inactivo. Contacta al administrador.'


def test_login_actualiza_ultimo_acceso_y_audita(client, db):
    login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    assert contar(db, "SELECT COUNT(*) FROM usuarios WHERE email = ? AND ultimo_acceso IS NOT NULL", (ADMIN_EMAIL,)) == 1
    assert contar(db, "SELECT COUNT(*) FROM logs_auditoria WHERE accion = 'login'") == 1


def test_ruta_protegida_sin_token(client):
    response = client.get('/api/auth/verify')
    assert response.status_code == 401
    assert response.get_json()['tipo'] == 'no_autenticado'


def test_token_con_firma_invalida(client):
    response = client.get('/api/auth/verify', headers=auth_headers('no.es.un-token'))
    assert response.status_code == 401
    assert response.get_json()['tipo'] == 'token_invalido'


def test_token_expirado(client, app):
    usuario = SimpleNamespace(id=1, email=ADMIN_EMAIL, rol='admin')
    token = create_token(usuario, app.config['JWT_SECRET_KEY'], expiration_hours=-1)
    response = client.get('/api/auth/verify', headers=auth_headers(token))
    assert response.status_code == 401
    body = response.get_json()
    assert body['tipo'] == 'token_expirado'
    assert body['error'] == 'Token expirado'


def test_token_de_usuario_inexistente(client, app):
    usuario = SimpleNamespace(id=999, email='fantasma@x.com', rol='admin')
    token = create_token(usuario, app.config['JWT_SECRET_KEY'])
    response = client.get('/api/auth/verify', headers=auth_headers(token))
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Usuario no encontrado'


def test_token_de_usuario_desactivado_deja_de_valer(client, admin_headers, crear_usuario):
    user_id, headers = crear_usuario('usuario')
    assert client.get('/api/auth/verify', headers=headers).status_code == 200
    client.delete(f'/api/users/{user_id}', headers=admin_headers)

    response = client.get('/api/auth/verify', headers=headers)
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Usuario inactivo'


def test_verify_y_profile(client, admin_headers):
    body = client.get('/api/auth/verify', headers=admin_headers).get_json()
    assert body['valid'] is True
    assert body['user']['email'] == ADMIN_EMAIL

    perfil = client.get('/api/auth/profile', headers=admin_headers).get_json()
    assert perfil['data']['rol'] == 'admin'


def test_actualizar_perfil_registra_historial(client, admin_headers, db):
    response = client.put('/api/auth/profile', headers=admin_headers, json={'nombre': 'Admin General'})
    assert response.status_code == 200
    assert response.get_json()['data']['nombre'] == 'Admin General'
    assert contar(db, "SELECT COUNT(*) FROM historial_cambios WHERE tabla_afectada = 'usuarios' "
                      "AND tipo_cambio = 'modificacion' AND campo_modificado = 'nombre'") == 1


def test_cambiar_password(client, admin_headers, db):
    response = client.post('/api/auth/change-password', headers=admin_headers,
                           json={'password_actual': ADMIN_PASSWORD, 'password_nuevo': 'nueva-clave'})
    assert response.status_code == 200
    assert login(client, ADMIN_EMAIL, ADMIN_PASSWORD).status_code == 401
    assert login(client, ADMIN_EMAIL, 'nueva-clave').status_code == 200
    assert contar(db, "SELECT COUNT(*) FROM historial_cambios WHERE campo_modificado = 'password'") == 1


def test_cambiar_password_actual_incorrecta(client, admin_headers):
    response = client.post('/api/auth/change-password', headers=admin_headers,
                           json={'password_actual': 'mala', 'password_nuevo': 'nueva-clave'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'La contraseña actual es incorrecta'


def test_cambiar_password_demasiado_corta(client, admin_headers):
    response = client.post('/api/auth/change-password', headers=admin_headers,
                           json={'password_actual': ADMIN_PASSWORD, 'password_nuevo': '123'})
    assert response.status_code == 400


def test_logout_registra_auditoria(client, admin_headers, db):
    response = client.post('/api/auth/logout', headers=admin_headers)
    assert response.status_code == 200
    assert contar(db, "SELECT COUNT(*) FROM logs_auditoria WHERE accion = 'logout'") == 1


def test_health(client):
    assert client.get('/health').get_json()['status'] == 'ok'
