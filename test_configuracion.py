import os
import tarfile
from datetime import datetime
from unittest import mock

import pytest

from ccamem import mail
from ccamem.application.services import backup_service
from ccamem.application.services.backup_service import calcular_proxima_ejecucion
from ccamem.application.services.configuracion_service import convertir_valor
from ccamem.infrastructure.persistence import sqlserver_repository
from conftest import contar

RESPALDO = {'nombre': 'Respaldo diario', 'tipo': 'completo', 'frecuencia': 'diario', 'hora_ejecucion': '02:00'}


class HiloInmediato:
    """Sustituye a threading.Thread para ejecutar el respaldo dentro de la prueba."""

    def __init__(self, target, args=(), daemon=None):
        self._target = target
        self._args = args

    def start(self):
        self._target(*self._args)


# --- Configuración del sistema ---

def test_configuracion_agrupada_por_categoria(client, admin_headers):
    data = client.get('/api/configuracion/sistema', headers=admin_headers).get_json()['data']
    assert {'general', 'archivo', 'seguridad', 'email', 'reportes'} <= set(data)
    por_clave = {c['clave']: c for grupo in data.values() for c in grupo}
    assert por_clave['expedientes_por_pagina']['valor'] == 20
    assert por_clave['notificaciones_activas']['valor'] is True
    assert por_clave['reportes_pie_firmas']['valor'][0] == 'RESPONSABLE DEL ARCHIVO'
    assert por_clave['institucion_siglas']['editable'] is False


def test_configuracion_solo_admin(client, crear_usuario):
    _, headers = crear_usuario('usuario')
    assert client.get('/api/configuracion/sistema', headers=headers).status_code == 403


def test_actualizar_configuracion_audita(client, admin_headers, db):
    response = client.put('/api/configuracion/sistema/expedientes_por_pagina', headers=admin_headers,
                          json={'valor': 50})
    assert response.status_code == 200
    assert response.get_json()['data']['valor'] == 50
    assert contar(db, "SELECT valor FROM configuracion_sistema WHERE clave = 'expedientes_por_pagina'") == '50'
    assert contar(db, "SELECT COUNT(*) FROM logs_auditoria WHERE accion = 'actualizar_configuracion'") == 1


@pytest.mark.parametrize('clave,valor,mensaje', [
    ('expedientes_por_pagina', 'muchos', 'El valor debe ser un número'),
    ('notificaciones_activas', 'tal vez', 'El valor debe ser verdadero o falso'),
    ('reportes_pie_firmas', '[sin cerrar', 'El valor debe ser un JSON válido'),
])
def test_actualizar_configuracion_valor_invalido(client, admin_headers, clave, valor, mensaje):
    response = client.put(f'/api/configuracion/sistema/{clave}', headers=admin_headers, json={'valor': valor})
    assert response.status_code == 400
    assert response.get_json()['error'] == mensaje


def test_configuracion_no_editable(client, admin_headers):
    response = client.put('/api/configuracion/sistema/institucion_siglas', headers=admin_headers,
                          json={'valor': 'OTRA'})
    assert response.status_code == 403


def test_configuracion_inexistente(client, admin_headers):
    response = client.put('/api/configuracion/sistema/no_existe', headers=admin_headers, json={'valor': 'x'})
    assert response.status_code == 404


def test_convertir_valor():
    assert convertir_valor('2.5', 'numero') == 2.5
    assert convertir_valor('FALSE', 'booleano') is False
    assert convertir_valor('{"a": 1}', 'json') == {'a': 1}
    assert convertir_valor(None, 'texto') is None


# --- Notificaciones ---

def test_actualizar_notificacion_conserva_campos_no_enviados(client, admin_headers):
    notificaciones = client.get('/api/configuracion/notificaciones', headers=admin_headers).get_json()['data']
    baja = next(n for n in notificaciones if n['tipo_notificacion'] == 'expediente_baja')

    response = client.put(f"/api/configuracion/notificaciones/{baja['id']}", headers=admin_headers,
                          json={'enviar_email': False})
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['enviar_email'] is False
    assert data['activa'] is True
    assert data['asunto_email'] == 'Expediente dado de baja'


def test_notificacion_inexistente(client, admin_headers):
    response = client.put('/api/configuracion/notificaciones/999', headers=admin_headers, json={'activa': False})
    assert response.status_code == 404


# --- Respaldos ---

def test_configurar_respaldo(client, admin_headers, db):
    response = client.post('/api/configuracion/respaldos', headers=admin_headers, json=RESPALDO)
    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['frecuencia'] == 'diario'
    assert data['proximo_ejecucion'][11:16] == '02:00'
    assert contar(db, "SELECT COUNT(*) FROM logs_auditoria WHERE accion = 'configurar_respaldo'") == 1

    listado = client.get('/api/configuracion/respaldos', headers=admin_headers).get_json()['data']
    assert [r['nombre'] for r in listado] == ['Respaldo diario']


def test_respaldo_con_nombre_repetido(client, admin_headers):
    client.post('/api/configuracion/respaldos', headers=admin_headers, json=RESPALDO)
    response = client.post('/api/configuracion/respaldos', headers=admin_headers, json=RESPALDO)
    assert response.status_code == 400
    assert response.get_json()['tipo'] == 'duplicado'


def test_respaldo_requiere_campos(client, admin_headers):
    response = client.post('/api/configuracion/respaldos', headers=admin_headers, json={'nombre': 'Sin tipo'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Nombre, tipo y frecuencia son requeridos'


def test_respaldo_hora_invalida(client, admin_headers):
    response = client.post('/api/configuracion/respaldos', headers=admin_headers,
                           json=dict(RESPALDO, hora_ejecucion='25:00'))
    assert response.status_code == 400


def test_ejecutar_respaldo(client, admin_headers, app, db, monkeypatch):
    monkeypatch.setattr(backup_service.threading, 'Thread', HiloInmediato)
    respaldo = client.post('/api/configuracion/respaldos', headers=admin_headers, json=RESPALDO).get_json()['data']

    response = client.post(f"/api/configuracion/respaldos/{respaldo['id']}/ejecutar", headers=admin_headers)
    assert response.status_code == 202
    archivo = response.get_json()['archivo']
    assert archivo.startswith('respaldo_Respaldo_diario_')

    generados = sorted(os.listdir(app.config['BACKUP_FOLDER']))
    assert generados == [f'{archivo}.db', f'{archivo}_docs.tar.gz']
    assert contar(db, "SELECT COUNT(*) FROM logs_auditoria WHERE accion = 'respaldo_ejecutado'") == 1
    assert contar(db, "SELECT COUNT(*) FROM configuracion_respaldos WHERE ultima_ejecucion IS NOT NULL") == 1


def test_ejecutar_respaldo_inexistente(client, admin_headers):
    response = client.post('/api/configuracion/respaldos/999/ejecutar', headers=admin_headers)
    assert response.status_code == 404


def test_respaldo_no_se_guarda_si_falla_la_auditoria(client, admin_headers, db, monkeypatch):
    def auditoria_rota(*args, **kwargs):
        raise RuntimeError('logs_auditoria bloqueada')

    monkeypatch.setattr(sqlserver_repository, 'registrar_log_auditoria', auditoria_rota)
    with pytest.raises(RuntimeError):
        client.post('/api/configuracion/respaldos', headers=admin_headers, json=RESPALDO)
    assert contar(db, "SELECT COUNT(*) FROM configuracion_respaldos") == 0


def test_nombre_de_respaldo_no_sale_de_la_carpeta(client, admin_headers, app, monkeypatch):
    monkeypatch.setattr(backup_service.threading, 'Thread', HiloInmediato)
    datos = dict(RESPALDO, nombre="../../fuera 'x'", incluir_documentos=False)
    respaldo = client.post('/api/configuracion/respaldos', headers=admin_headers, json=datos).get_json()['data']

    archivo = client.post(f"/api/configuracion/respaldos/{respaldo['id']}/ejecutar",
                          headers=admin_headers).get_json()['archivo']
    assert '/' not in archivo and "'" not in archivo
    assert os.listdir(app.config['BACKUP_FOLDER']) == [f'{archivo}.db']


def test_ruta_destino_con_comillas(client, admin_headers):
    response = client.post('/api/configuracion/respaldos', headers=admin_headers,
                           json=dict(RESPALDO, ruta_destino="C:\\respaldos'; DROP DATABASE x; --"))
    assert response.status_code == 400
    assert response.get_json()['error'] == 'La ruta destino no puede contener comillas'


def test_backup_sql_server_escapa_literales(monkeypatch):
    ejecutados = []

    def run_falso(comando, **kwargs):
        ejecutados.append(comando)
        return mock.Mock(returncode=0, stderr='', stdout='')

    monkeypatch.setattr(sqlserver_repository.subprocess, 'run', run_falso)
    config = {'DB_ENGINE': 'sqlserver', 'DB_SERVER': 'srv', 'DB_DATABASE': 'ccamem]',
              'DB_USERNAME_WRITE': 'sa', 'DB_PASSWORD_WRITE': 'clave'}
    sqlserver_repository.SqlServerBackupRepository().run_db_backup(config, "C:\\resp\\o'brien.bak")

    consulta = ejecutados[0][ejecutados[0].index('-Q') + 1]
    assert consulta == "BACKUP DATABASE [ccamem]]] TO DISK = N'C:\\resp\\o''brien.bak' WITH STATS = 10;"


def test_generar_archivos_incluye_documentos(app, tmp_path):
    uploads = app.config['UPLOAD_FOLDER']
    os.makedirs(uploads, exist_ok=True)
    with open(os.path.join(uploads, 'oficio.pdf'), 'wb') as f:
        f.write(b'%PDF-1.4')

    destino = tmp_path / 'otro_destino'
    respaldo = {'incluir_base_datos': 0, 'incluir_documentos': 1, 'ruta_destino': str(destino)}
    with app.app_context():
        archivos = app.config['BACKUP_SERVICE'].generar_archivos(respaldo, 'manual')

    assert len(archivos) == 1
    with tarfile.open(archivos[0]) as tar:
        assert './oficio.pdf' in tar.getnames()


# 2025-03-10 es lunes
LUNES = datetime(2025, 3, 10, 10, 30)


@pytest.mark.parametrize('frecuencia,hora,dia_semana,dia_mes,esperado', [
    ('diario', '12:00', None, None, datetime(2025, 3, 10, 12, 0)),
    ('diario', '08:00', None, None, datetime(2025, 3, 11, 8, 0)),
    ('semanal', '08:00', 3, None, datetime(2025, 3, 12, 8, 0)),
    ('semanal', '23:00', 1, None, datetime(2025, 3, 17, 23, 0)),
    ('semanal', '08:00', 0, None, datetime(2025, 3, 16, 8, 0)),
    ('mensual', '02:00', None, 15, datetime(2025, 3, 15, 2, 0)),
    ('mensual', '02:00', None, 5, datetime(2025, 4, 5, 2, 0)),
    ('mensual', '02:00', None, 31, datetime(2025, 3, 31, 2, 0)),
])
def test_calcular_proxima_ejecucion(frecuencia, hora, dia_semana, dia_mes, esperado):
    assert calcular_proxima_ejecucion(frecuencia, hora, dia_semana, dia_mes, ahora=LUNES) == esperado


def test_proxima_ejecucion_mensual_en_mes_corto():
    ahora = datetime(2025, 1, 31, 3, 0)
    assert calcular_proxima_ejecucion('mensual', '02:00', dia_mes=31, ahora=ahora) == datetime(2025, 2, 28, 2, 0)


# --- Email e información del sistema ---

def test_probar_email(client, admin_headers):
    with mail.record_messages() as enviados:
        response = client.post('/api/configuracion/email/probar', headers=admin_headers,
                               json={'email_destino': 'pruebas@x.com'})
    assert response.status_code == 200
    assert len(enviados) == 1
    assert enviados[0].subject == 'Prueba de configuración de email - CCAMEM'
    assert enviados[0].recipients == ['pruebas@x.com']
    assert enviados[0].sender == 'Archivo CCAMEM <archivo@ccamem.gob.mx>'


def test_probar_email_destino_invalido(client, admin_headers):
    response = client.post('/api/configuracion/email/probar', headers=admin_headers,
                           json={'email_destino': 'no-es-email'})
    assert response.status_code == 400


def test_info_sistema(client, admin_headers):
    data = client.get('/api/configuracion/info-sistema', headers=admin_headers).get_json()['data']
    assert data['base_datos']['total_expedientes'] == 1
    assert data['base_datos']['motor'] == 'sqlite'
    assert data['servidor']['cpus'] >= 1
    assert data['almacenamiento']['disk_status'] in ('bueno', 'advertencia', 'crítico')


# --- Auditoría ---

def test_auditoria_en_ambas_rutas(client, admin_headers):
    for ruta in ('/api/auditoria', '/api/configuracion/auditoria'):
        body = client.get(f'{ruta}?accion=login', headers=admin_headers).get_json()
        assert body['pagination']['totalItems'] == 1
        assert body['data'][0]['usuario_email'] == 'admin@x.com'


def test_estadisticas_de_auditoria(client, admin_headers):
    data = client.get('/api/auditoria/estadisticas', headers=admin_headers).get_json()['data']
    assert data['estadisticas']['total_logs'] == 1
    assert data['estadisticas']['acciones_exitosas'] == 1
    assert data['acciones_frecuentes'] == [{'accion': 'login', 'total': 1}]


def test_limpiar_logs_antiguos(client, admin_headers, db):
    cursor = db.cursor()
    cursor.execute("INSERT INTO logs_auditoria (accion, modulo, resultado, created_at) "
                   "VALUES ('login', 'auth', 'exitoso', '2020-01-01 00:00:00')")
    db.commit()
    cursor.close()

    response = client.post('/api/auditoria/limpiar', headers=admin_headers, json={'dias': 30})
    assert response.status_code == 200
    assert response.get_json()['message'] == 'Se eliminaron 1 logs antiguos'
    assert contar(db, "SELECT COUNT(*) FROM logs_auditoria WHERE accion = 'limpiar_logs'") == 1


def test_limpiar_logs_dias_invalidos(client, admin_headers):
    response = client.post('/api/auditoria/limpiar', headers=admin_headers, json={'dias': 0})
    assert response.status_code == 400
    response = client.post('/api/auditoria/limpiar', headers=admin_headers, json={'dias': 10 ** 9})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'El número de días no puede ser mayor a 3650'


def test_historial_filtrado(client, admin_headers):
    client.put('/api/expedientes/1', headers=admin_headers, json={'observaciones': 'Revisado'})
    body = client.get('/api/auditoria/historial?tabla=expedientes&registro_id=1',
                      headers=admin_headers).get_json()
    assert body['pagination']['totalItems'] == 1
    cambio = body['data'][0]
    assert cambio['campo_modificado'] == 'observaciones'
    assert cambio['valor_nuevo'] == 'Revisado'
    assert cambio['usuario_nombre'] == 'Administrador'
