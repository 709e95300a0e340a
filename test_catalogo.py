def test_catalogo_requiere_token(client):
    assert client.get('/api/catalogo/areas').status_code == 401


def test_areas_activas(client, admin_headers):
    data = client.get('/api/catalogo/areas', headers=admin_headers).get_json()['data']
    assert [a['codigo'] for a in data] == ['DG', 'UA', 'UM', 'UJ', 'SISTEMAS']


def test_series_filtradas_por_seccion(client, admin_headers):
    secciones = client.get('/api/catalogo/secciones', headers=admin_headers).get_json()['data']
    seccion_1s = next(s for s in secciones if s['codigo'] == '1S')

    series = client.get(f"/api/catalogo/series?seccion_id={seccion_1s['id']}", headers=admin_headers).get_json()['data']
    assert [s['codigo'] for s in series] == ['1S.1', '1S.2', '1S.3', '1S.4']
    assert all(s['seccion_id'] == seccion_1s['id'] for s in series)


def test_arbol_completo(client, admin_headers):
    fondos = client.get('/api/catalogo/completo', headers=admin_headers).get_json()['data']
    assert len(fondos) == 1
    fondo = fondos[0]
    assert fondo['codigo'] == 'CCAMEM'
    assert len(fondo['secciones']) == 9

    seccion_1s = next(s for s in fondo['secciones'] if s['codigo'] == '1S')
    serie_13 = next(s for s in seccion_1s['series'] if s['codigo'] == '1S.3')
    assert [s['codigo'] for s in serie_13['subseries']] == ['1S.3.1', '1S.3.2', '1S.3.3', '1S.3.4']

    seccion_3c = next(s for s in fondo['secciones'] if s['codigo'] == '3C')
    assert seccion_3c['series'] == []


def test_buscar_en_el_cuadro(client, admin_headers):
    data = client.get('/api/catalogo/buscar?q=quejas', headers=admin_headers).get_json()['data']
    tipos = {(r['tipo'], r['codigo']) for r in data}
    assert ('serie', '1S.3') in tipos
    assert ('subserie', '1S.3.1') in tipos


def test_buscar_termino_corto(client, admin_headers):
    response = client.get('/api/catalogo/buscar?q=q', headers=admin_headers)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'El término de búsqueda debe tener al menos 2 caracteres'


def test_valores_documentales(client, admin_headers):
    data = client.get('/api/catalogo/valores-documentales', headers=admin_headers).get_json()['data']
    assert {'valor': 'conservacion', 'etiqueta': 'Conservación permanente'} in data['destino_final']
    assert [e['valor'] for e in data['estados']] == ['activo', 'cerrado', 'transferido', 'baja']
