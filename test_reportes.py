import io
import xml.etree.ElementTree as ET
from datetime import datetime

from openpyxl import load_workbook

NS = '{http://ccamem.gob.mx/archivo}'


def _dar_de_baja_nuevo(client, headers, payload):
    creado = client.post('/api/expedientes', headers=headers, json=payload).get_json()['data']
    client.delete(f"/api/expedientes/{creado['id']}", headers=headers)
    return creado


def test_reporte_excel(client, admin_headers):
    response = client.get('/api/reportes/excel', headers=admin_headers)
    assert response.status_code == 200
    assert response.mimetype == 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    hoy = datetime.now().strftime('%Y-%m-%d')
    assert f'expedientes_{hoy}.xlsx' in response.headers['Content-Disposition']

    wb = load_workbook(io.BytesIO(response.data))
    assert wb.sheetnames == ['Expedientes', 'Resumen']
    ws = wb['Expedientes']
    assert ws['A1'].value == 'No. Expediente'
    assert ws['A2'].value == 'CCAMEM/001/2025'
    assert ws.max_row == 2
    assert wb['Resumen']['B3'].value == 1


def test_reportes_excluyen_bajas(client, admin_headers, expediente_payload):
    _dar_de_baja_nuevo(client, admin_headers, expediente_payload)

    wb = load_workbook(io.BytesIO(client.get('/api/reportes/excel', headers=admin_headers).data))
    numeros = [fila[0] for fila in wb['Expedientes'].iter_rows(min_row=2, values_only=True)]
    assert numeros == ['CCAMEM/001/2025']

    wb = load_workbook(io.BytesIO(client.get('/api/reportes/excel?estado=baja', headers=admin_headers).data))
    numeros = [fila[0] for fila in wb['Expedientes'].iter_rows(min_row=2, values_only=True)]
    assert numeros == ['CCAMEM/010/2025']


def test_reporte_pdf(client, admin_headers):
    response = client.get('/api/reportes/pdf', headers=admin_headers)
    assert response.status_code == 200
    assert response.mimetype == 'application/pdf'
    assert response.data.startswith(b'%PDF')
    assert '.pdf' in response.headers['Content-Disposition']


def test_reporte_xml(client, admin_headers, expediente_payload):
    _dar_de_baja_nuevo(client, admin_headers, expediente_payload)
    response = client.get('/api/reportes/xml', headers=admin_headers)
    assert response.status_code == 200
    assert response.mimetype == 'application/xml'

    raiz = ET.fromstring(response.data)
    assert raiz.tag == f'{NS}expedientes'
    assert raiz.get('total') == '1'
    expediente = raiz.find(f'{NS}expediente')
    assert expediente.get('numero') == 'CCAMEM/001/2025'
    assert expediente.find(f'{NS}clasificacion/{NS}serie').get('codigo') == '1S.3'
    assert expediente.find(f'{NS}datos/{NS}hojas').text == '50'


def test_reporte_con_filtro_de_busqueda(client, admin_headers):
    raiz = ET.fromstring(client.get('/api/reportes/xml?busqueda=inexistente', headers=admin_headers).data)
    assert raiz.get('total') == '0'


def test_inventario_general(client, admin_headers):
    response = client.get('/api/reportes/inventario-general?year=2025', headers=admin_headers)
    assert response.status_code == 200
    assert 'inventario_general_archivo_2025.xlsx' in response.headers['Content-Disposition']

    ws = load_workbook(io.BytesIO(response.data))['INVENTARIO GENERAL']
    assert ws['A3'].value == 'AÑO 2025'
    assert ws['A5'].value == 'NO. PROGRESIVO'
    fila = [c.value for c in ws[6]]
    assert fila[0] == 1
    assert fila[1] == 'CCAMEM/001/2025'
    assert fila[4] == '1S.3.1'
    assert fila[8] == '15/01/2025'
    firmas = [c.value for c in ws[9] if c.value]
    assert firmas == ['RESPONSABLE DEL ARCHIVO', 'TITULAR DE LA UNIDAD ADMINISTRATIVA']


def test_inventario_de_un_anio_sin_expedientes(client, admin_headers):
    ws = load_workbook(io.BytesIO(
        client.get('/api/reportes/inventario-general?year=1990', headers=admin_headers).data))['INVENTARIO GENERAL']
    assert ws['A6'].value is None


def test_inventario_anio_invalido(client, admin_headers):
    response = client.get('/api/reportes/inventario-general?year=3000', headers=admin_headers)
    assert response.status_code == 400


def test_reportes_requieren_token(client):
    assert client.get('/api/reportes/excel').status_code == 401
