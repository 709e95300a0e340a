import io
from unittest import mock

import pytest
from openpyxl import Workbook, load_workbook
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from ccamem.infrastructure.siser import playwright_submitter
from ccamem.infrastructure.siser.base import BaseSubmitter, ErrorEnvio, RegistroSiser, SubmitResult, SubmitterNotReady

MIME_EXCEL = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


class PortalFalso(BaseSubmitter):
    """Registra los envíos en memoria y falla según se configure."""
    name = "falso"

    def __init__(self):
        self.enviados = []
        self.intentos = {}
        self.fallos_transitorios = {}
        self.rechazados = set()
        self.inesperados = {}
        self.listo = True
        self.abierto = False

    def abrir(self):
        if not self.listo:
            raise SubmitterNotReady('No se pudo iniciar sesión en SISER')
        self.abierto = True

    def cerrar(self):
        self.abierto = False

    def verificar_portal(self):
        return self.listo

    def submit(self, registro):
        self.intentos[registro.clave] = self.intentos.get(registro.clave, 0) + 1
        if registro.clave in self.inesperados:
            raise self.inesperados[registro.clave]
        if registro.clave in self.rechazados:
            raise ErrorEnvio('El portal rechazó el registro')
        if self.fallos_transitorios.get(registro.clave, 0) > 0:
            self.fallos_transitorios[registro.clave] -= 1
            raise ErrorEnvio('Tiempo de espera agotado')
        self.enviados.append(registro)
        return SubmitResult(clave=registro.clave)


@pytest.fixture
def portal():
    return PortalFalso()


@pytest.fixture
def overrides(portal):
    return {
        'SISER_EMAIL': 'archivo@x.com',
        'SISER_PASSWORD': 'secreto',
        'SISER_MAX_REINTENTOS': 3,
        'SISER_SUBMITTER_FACTORY': lambda: portal,
    }


def _excel(filas):
    wb = Workbook()
    ws = wb.active
    ws.append(['Clave', 'Nombre', 'Legajos', 'Hojas', 'Inicio', 'Fin'])
    for fila in filas:
        ws.append(list(fila))
    stream = io.BytesIO()
    wb.save(stream)
    stream.seek(0)
    return stream


def _cargar_excel(client, headers, stream, nombre='expedientes.xlsx'):
    return client.post('/api/siser/cargar-excel', headers=headers,
                       data={'archivo': (stream, nombre, MIME_EXCEL)}, content_type='multipart/form-data')


def test_estado_disponible(client, admin_headers):
    body = client.get('/api/siser/estado', headers=admin_headers).get_json()
    assert body['disponible'] is True
    assert body['configuracion']['email'] == 'archivo@x.com'


def test_estado_sin_credenciales(client, admin_headers, app, monkeypatch):
    monkeypatch.setitem(app.config, 'SISER_PASSWORD', None)
    body = client.get('/api/siser/estado', headers=admin_headers).get_json()
    assert body['disponible'] is False
    assert body['mensaje'] == 'Credenciales SISER no configuradas'


def test_siser_solo_admin(client, crear_usuario):
    _, headers = crear_usuario('usuario')
    assert client.get('/api/siser/estado', headers=headers).status_code == 403


def test_plantilla(client, admin_headers):
    response = client.get('/api/siser/plantilla', headers=admin_headers)
    assert response.status_code == 200
    assert 'plantilla_siser.xlsx' in response.headers['Content-Disposition']
    wb = load_workbook(io.BytesIO(response.data))
    assert wb.sheetnames == ['Expedientes SISER', 'Instrucciones']
    assert [c.value for c in wb['Expedientes SISER'][1]] == ['Clave', 'Nombre', 'Legajos', 'Hojas', 'Inicio', 'Fin']


def test_carga_excel_omite_filas_incompletas(client, admin_headers, portal):
    stream = _excel([
        ('CCAMEM/020/2025', 'Queja uno', 1, 30, '01/02/2025', '28/02/2025'),
        ('', 'Sin clave', 1, 10, '01/02/2025', '28/02/2025'),
        ('CCAMEM/021/2025', 'Sin fecha final', 1, 10, '01/02/2025', None),
        ('CCAMEM/022/2025', 'Queja dos', None, 'doce', '2025-03-01', '2025-03-31'),
    ])
    response = _cargar_excel(client, admin_headers, stream)
    assert response.status_code == 200
    resultados = response.get_json()['resultados']
    assert resultados['total'] == 2
    assert resultados['exitosos'] == 2

    assert [r.clave for r in portal.enviados] == ['CCAMEM/020/2025', 'CCAMEM/022/2025']
    segundo = portal.enviados[1]
    assert (segundo.legajos, segundo.hojas) == (1, 1)
    assert (segundo.fecha_inicio, segundo.fecha_fin) == ('01/03/2025', '31/03/2025')
    assert portal.abierto is False


def test_reintentos_y_fallos_por_registro(client, admin_headers, portal):
    portal.fallos_transitorios['CCAMEM/030/2025'] = 2
    portal.rechazados.add('CCAMEM/031/2025')
    stream = _excel([
        ('CCAMEM/030/2025', 'Se recupera', 1, 5, '01/01/2025', '31/01/2025'),
        ('CCAMEM/031/2025', 'Siempre falla', 1, 5, '01/01/2025', '31/01/2025'),
        ('CCAMEM/032/2025', 'Directo', 1, 5, '01/01/2025', '31/01/2025'),
    ])
    resultados = _cargar_excel(client, admin_headers, stream).get_json()['resultados']
    assert (resultados['exitosos'], resultados['fallidos'], resultados['total']) == (2, 1, 3)

    detalles = {d['clave']: d for d in resultados['detalles']}
    assert detalles['CCAMEM/030/2025']['intentos'] == 3
    assert detalles['CCAMEM/030/2025']['success'] is True
    assert detalles['CCAMEM/031/2025']['success'] is False
    assert detalles['CCAMEM/031/2025']['error'] == 'El portal rechazó el registro'
    assert portal.intentos['CCAMEM/031/2025'] == 3
    assert detalles['CCAMEM/032/2025']['intentos'] == 1


def test_error_inesperado_no_interrumpe_la_carga(client, admin_headers, portal):
    portal.inesperados['CCAMEM/041/2025'] = RuntimeError('el navegador se cerró')
    stream = _excel([
        ('CCAMEM/040/2025', 'Primero', 1, 5, '01/01/2025', '31/01/2025'),
        ('CCAMEM/041/2025', 'Falla el navegador', 1, 5, '01/01/2025', '31/01/2025'),
        ('CCAMEM/042/2025', 'Tercero', 1, 5, '01/01/2025', '31/01/2025'),
    ])
    response = _cargar_excel(client, admin_headers, stream)
    assert response.status_code == 200
    resultados = response.get_json()['resultados']
    assert (resultados['exitosos'], resultados['fallidos']) == (2, 1)

    fallido = resultados['detalles'][1]
    assert fallido['success'] is False
    assert fallido['intentos'] == 1
    assert 'el navegador se cerró' in fallido['error']
    assert [r.clave for r in portal.enviados] == ['CCAMEM/040/2025', 'CCAMEM/042/2025']


def test_excel_sin_registros_validos(client, admin_headers):
    stream = _excel([('', '', None, None, None, None)])
    response = _cargar_excel(client, admin_headers, stream)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'No se encontraron expedientes válidos en el archivo'


def test_solo_archivos_xlsx(client, admin_headers):
    response = _cargar_excel(client, admin_headers, io.BytesIO(b'\xD0\xCF\x11\xE0'), nombre='viejo.xls')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Solo se permiten archivos Excel (.xlsx)'


def test_excel_ilegible(client, admin_headers):
    response = _cargar_excel(client, admin_headers, io.BytesIO(b'no es un libro'))
    assert response.status_code == 400


def test_carga_sin_credenciales(client, admin_headers, app, monkeypatch, portal):
    monkeypatch.setitem(app.config, 'SISER_EMAIL', None)
    response = _cargar_excel(client, admin_headers, _excel([
        ('CCAMEM/020/2025', 'Queja uno', 1, 30, '01/02/2025', '28/02/2025'),
    ]))
    assert response.status_code == 503
    assert response.get_json()['tipo'] == 'servicio_externo'
    assert portal.enviados == []


def test_portal_no_disponible(client, admin_headers, portal):
    portal.listo = False
    response = client.post('/api/siser/cargar-db', headers=admin_headers)
    assert response.status_code == 503
    assert response.get_json()['error'] == 'No se pudo iniciar sesión en SISER'


def test_carga_desde_base_de_datos(client, admin_headers, expediente_payload, portal):
    client.post('/api/expedientes', headers=admin_headers, json=expediente_payload)
    response = client.post('/api/siser/cargar-db?limite=500', headers=admin_headers)
    assert response.status_code == 200
    resultados = response.get_json()['resultados']
    assert resultados['total'] == 2

    enviados = {r.clave: r for r in portal.enviados}
    semilla = enviados['CCAMEM/001/2025']
    assert semilla.id == 1
    assert (semilla.hojas, semilla.fecha_inicio, semilla.fecha_fin) == (50, '15/01/2025', '15/01/2025')


def test_carga_desde_base_de_datos_con_limite(client, admin_headers, expediente_payload, portal):
    client.post('/api/expedientes', headers=admin_headers, json=expediente_payload)
    resultados = client.post('/api/siser/cargar-db?limite=1', headers=admin_headers).get_json()['resultados']
    assert resultados['total'] == 1


def test_carga_desde_base_de_datos_sin_expedientes(client, admin_headers):
    response = client.post('/api/siser/cargar-db?area_id=3', headers=admin_headers)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'No se encontraron expedientes para cargar'


# --- Navegador ---

def _submitter_con_navegador_falso(monkeypatch):
    navegador = mock.MagicMock()
    monkeypatch.setattr(playwright_submitter, 'sync_playwright', lambda: navegador)
    config = {'SISER_URL': 'https://portal/login', 'SISER_TRAMITE_URL': 'https://portal/tramite',
              'SISER_EMAIL': 'archivo@x.com', 'SISER_PASSWORD': 'secreto'}
    submitter = playwright_submitter.SiserPlaywrightSubmitter(config)
    pagina = navegador.start.return_value.chromium.launch.return_value.new_page.return_value
    return submitter, pagina


def test_playwright_login_fallido(monkeypatch):
    submitter, pagina = _submitter_con_navegador_falso(monkeypatch)
    pagina.goto.side_effect = PlaywrightError('net::ERR_NAME_NOT_RESOLVED')
    with pytest.raises(SubmitterNotReady):
        submitter.abrir()
    assert submitter.page is None


def test_playwright_envio_con_timeout(monkeypatch):
    submitter, pagina = _submitter_con_navegador_falso(monkeypatch)
    submitter.abrir()
    pagina.wait_for_selector.side_effect = PlaywrightTimeoutError('Timeout 10000ms exceeded')
    with pytest.raises(ErrorEnvio):
        submitter.submit(RegistroSiser('CCAMEM/001/2025', 'Queja', '15/01/2025', '15/01/2025'))
    submitter.cerrar()


def test_playwright_envio_exitoso(monkeypatch):
    submitter, pagina = _submitter_con_navegador_falso(monkeypatch)
    with submitter:
        resultado = submitter.submit(RegistroSiser('CCAMEM/001/2025', 'Queja', '15/01/2025', '31/01/2025', hojas=50))
    assert resultado.clave == 'CCAMEM/001/2025'
    pagina.fill.assert_any_call('input[name="numero_documentos"]', '50')
    pagina.fill.assert_any_call('input[name="fecha_documentos_ultimo"]', '31/01/2025')
