from datetime import date

import pytest
from flask import Flask

from ccamem.core.errors import ErrorValidacion
from ccamem.database.connector import init_app_db
from ccamem.infrastructure.persistence.consultas import (
    FiltroConsulta, bandera, calcular_diferencias, desde, escapar_like, hasta_fin_de_dia, igual, texto_libre,
)
from ccamem.utils.pagination import SimplePagination, parse_paginacion


def test_filtro_omite_valores_vacios():
    filtro = FiltroConsulta(estado=igual('e.estado'), area_id=igual('e.area_id', int), fecha=desde('e.fecha'))
    where, params = filtro.construir({'estado': 'activo', 'area_id': '3', 'fecha': '  '})
    assert where == " WHERE e.estado = ? AND e.area_id = ?"
    assert params == ['activo', 3]


def test_filtro_con_condiciones_fijas():
    filtro = FiltroConsulta(busqueda=texto_libre('e.nombre', 'e.asunto'))
    where, params = filtro.construir({'busqueda': ' Queja '}, ["e.estado <> 'baja'"])
    assert where == (" WHERE e.estado <> 'baja' AND "
                     "(LOWER(e.nombre) LIKE ? ESCAPE '\\' OR LOWER(e.asunto) LIKE ? ESCAPE '\\')")
    assert params == ['%queja%', '%queja%']


def test_filtro_sin_condiciones():
    assert FiltroConsulta(estado=igual('estado')).construir(None) == ('', [])


def test_predicados_de_fecha_y_bandera():
    assert hasta_fin_de_dia('created_at')('2025-03-10') == ("created_at <= ?", ['2025-03-10 23:59:59'])
    assert hasta_fin_de_dia('created_at')('2025-03-10 12:00:00')[1] == ['2025-03-10 12:00:00']
    assert bandera('activo')('true') == ("activo = ?", [1])
    assert bandera('activo')('no') == ("activo = ?", [0])


def test_calcular_diferencias():
    anterior = {'nombre': 'Queja', 'ubicacion_fisica': None, 'fecha_cierre': '2025-02-01', 'activo': 1,
                'numero_legajos': 2}
    nuevos = {'nombre': 'Queja', 'ubicacion_fisica': '', 'fecha_cierre': date(2025, 2, 1), 'activo': True,
              'numero_legajos': 3}
    assert calcular_diferencias(anterior, nuevos) == [('numero_legajos', 2, 3)]


def test_calcular_diferencias_limpiar_campo():
    assert calcular_diferencias({'observaciones': 'Revisado'}, {'observaciones': None}) == \
        [('observaciones', 'Revisado', None)]


def test_parse_paginacion():
    assert parse_paginacion({}) == (1, 20)
    assert parse_paginacion({'page': '-2', 'limit': '0'}) == (1, 1)
    assert parse_paginacion({'page': 'x', 'limit': '500'}, limite_defecto=50) == (1, 100)


def test_simple_pagination():
    pagina = SimplePagination(['a', 'b'], page=2, per_page=2, total=5)
    assert pagina.to_dict() == {
        'page': 2, 'limit': 2, 'totalItems': 5, 'totalPages': 3, 'hasNextPage': True, 'hasPrevPage': True,
    }
    assert SimplePagination([], 1, 10, 0).to_dict()['totalPages'] == 0


def test_filtro_numerico_invalido():
    filtro = FiltroConsulta(area_id=igual('e.area_id', int))
    with pytest.raises(ErrorValidacion) as error:
        filtro.construir({'area_id': 'abc'})
    assert str(error.value) == 'El filtro area_id debe ser numérico'


def test_texto_libre_escapa_comodines():
    assert escapar_like('100%_[a]\\') == '100\\%\\_\\[a]\\\\'
    _, params = texto_libre('nombre')('50%')
    assert params == ['%50\\%%']


def test_fabrica_inyectada_sin_dialecto():
    app = Flask(__name__)
    app.config.update(DB_ENGINE='sqlite', DB_CONNECTION_FACTORY=lambda: None)
    init_app_db(app)
    assert app.config['DB_DIALECT'].nombre == 'sqlite'
