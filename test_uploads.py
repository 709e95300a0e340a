import io
import os

from conftest import contar

PDF = b'%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n%%EOF\n'


def _pdf(nombre='oficio.pdf', contenido=PDF):
    return io.BytesIO(contenido), nombre, 'application/pdf'


def _subir(client, headers, expediente_id=1, **form):
    data = {'archivo': form.pop('archivo', None) or _pdf()}
    data.update(form)
    return client.post(f'/api/uploads/expediente/{expediente_id}/documento', headers=headers,
                       data=data, content_type='multipart/form-data')


def test_subir_pdf_suma_hojas(client, admin_headers, app, db):
    response = _subir(client, admin_headers, nombre='Oficio de respuesta', numero_hojas='3')
    assert response.status_code == 201, response.get_json()
    data = response.get_json()['data']
    assert data['documento']['nombre'] == 'Oficio de respuesta'
    assert data['archivo']['nombre_original'] == 'oficio.pdf'
    assert os.path.exists(os.path.join(app.config['UPLOAD_FOLDER'], data['archivo']['nombre_guardado']))

    assert contar(db, "SELECT total_hojas FROM expedientes WHERE id = 1") == 53
    assert contar(db, "SELECT COUNT(*) FROM historial_cambios WHERE tabla_afectada = 'documentos' "
                      "AND tipo_cambio = 'creacion'") == 1


def test_tipo_no_permitido_no_crea_documento(client, admin_headers, db):
    archivo = (io.BytesIO(b'\x7fELF\x02\x01\x01'), 'programa', 'application/x-executable')
    response = _subir(client, admin_headers, archivo=archivo)
    assert response.status_code == 400
    assert response.get_json()['tipo'] == 'archivo_invalido'
    assert contar(db, "SELECT COUNT(*) FROM documentos") == 0


def test_extension_prohibida(client, admin_headers):
    response = _subir(client, admin_headers, archivo=_pdf('virus.exe'))
    assert response.status_code == 400


def test_contenido_que_no_corresponde_al_tipo(client, admin_headers, db):
    response = _subir(client, admin_headers, archivo=_pdf(contenido=b'MZ\x90\x00 no es un pdf'))
    assert response.status_code == 400
    assert response.get_json()['error'] == 'El contenido del archivo no corresponde a su tipo'
    assert contar(db, "SELECT COUNT(*) FROM documentos") == 0


def test_sin_archivo(client, admin_headers):
    response = client.post('/api/uploads/expediente/1/documento', headers=admin_headers,
                           data={'nombre': 'Vacío'}, content_type='multipart/form-data')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'No se proporcionó ningún archivo'


def test_expediente_inexistente_no_deja_archivo(client, admin_headers, app):
    response = _subir(client, admin_headers, expediente_id=999)
    assert response.status_code == 404
    carpeta = app.config['UPLOAD_FOLDER']
    assert not os.path.isdir(carpeta) or os.listdir(carpeta) == []


def test_listar_y_descargar(client, admin_headers):
    documento = _subir(client, admin_headers).get_json()['data']['documento']

    listado = client.get('/api/uploads/expediente/1/documentos', headers=admin_headers).get_json()
    assert [d['id'] for d in listado['data']] == [documento['id']]

    response = client.get(f"/api/uploads/documento/{documento['id']}/descargar", headers=admin_headers)
    assert response.status_code == 200
    assert response.mimetype == 'application/pdf'
    assert response.data == PDF
    assert 'oficio.pdf' in response.headers['Content-Disposition']


def test_eliminar_documento_por_quien_lo_subio(client, admin_headers, crear_usuario, app, db):
    _, headers_autor = crear_usuario('usuario', email='autor@x.com')
    _, headers_otro = crear_usuario('usuario', email='otro@x.com')
    data = _subir(client, headers_autor).get_json()['data']
    documento_id = data['documento']['id']

    response = client.delete(f'/api/uploads/documento/{documento_id}', headers=headers_otro)
    assert response.status_code == 403

    response = client.delete(f'/api/uploads/documento/{documento_id}', headers=headers_autor)
    assert response.status_code == 200
    assert contar(db, "SELECT COUNT(*) FROM documentos") == 0
    assert contar(db, "SELECT total_hojas FROM expedientes WHERE id = 1") == 50
    assert not os.path.exists(os.path.join(app.config['UPLOAD_FOLDER'], data['archivo']['nombre_guardado']))


def test_consulta_no_puede_subir(client, crear_usuario):
    _, headers = crear_usuario('consulta')
    assert _subir(client, headers).status_code == 403


def test_carga_multiple_informa_errores(client, admin_headers, db):
    response = client.post('/api/uploads/expediente/1/documentos', headers=admin_headers, data={
        'archivos': [_pdf('uno.pdf'), _pdf('dos.pdf'), (io.BytesIO(b'texto'), 'notas.sh', 'text/plain')],
    }, content_type='multipart/form-data')
    assert response.status_code == 201
    body = response.get_json()
    assert body['message'] == '2 de 3 archivos subidos exitosamente'
    assert [e['archivo'] for e in body['data']['errores']] == ['notas.sh']
    assert contar(db, "SELECT COUNT(*) FROM documentos WHERE expediente_id = 1") == 2


def test_carga_multiple_sin_archivos_validos(client, admin_headers):
    response = client.post('/api/uploads/expediente/1/documentos', headers=admin_headers, data={
        'archivos': [(io.BytesIO(b'texto'), 'notas.sh', 'text/plain')],
    }, content_type='multipart/form-data')
    assert response.status_code == 400
    assert response.get_json()['success'] is False
