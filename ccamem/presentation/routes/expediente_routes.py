# RUTA: ccamem/presentation/routes/expediente_routes.py

from flask import Blueprint, current_app, g, jsonify, request

from ccamem.application.forms import (
    ALIAS_EXPEDIENTE, ExpedienteForm, ExpedienteUpdateForm, aplicar_alias, datos_presentes, form_desde_json,
)
from ccamem.decorators import role_required, token_required
from ccamem.utils.pagination import parse_paginacion

expediente_bp = Blueprint('expedientes', __name__, url_prefix='/api/expedientes')

FILTROS_EXPEDIENTES = ('area_id', 'estado', 'fondo_id', 'seccion_id', 'serie_id',
                       'fecha_inicio', 'fecha_fin', 'busqueda')


def filtros_expedientes(args):
    """Filtros de expedientes compartidos por el listado y los reportes."""
    return {k: args.get(k) for k in FILTROS_EXPEDIENTES}


def _expediente_service():
    return current_app.config['EXPEDIENTE_SERVICE']


@expediente_bp.route('', methods=['GET'])
@token_required
def listar_expedientes():
    page, limit = parse_paginacion(request.args, limite_defecto=20)
    pagina = _expediente_service().listar(filtros_expedientes(request.args), page, limit)
    return jsonify({'success': True, 'data': pagina.items, 'pagination': pagina.to_dict()})


@expediente_bp.route('/estadisticas', methods=['GET'])
@token_required
def estadisticas():
    return jsonify({'success': True, 'data': _expediente_service().estadisticas()})


@expediente_bp.route('/<int:expediente_id>', methods=['GET'])
@token_required
def obtener_expediente(expediente_id):
    return jsonify({'success': True, 'data': _expediente_service().obtener(expediente_id)})


@expediente_bp.route('', methods=['POST'])
@token_required
@role_required('admin', 'usuario')
def crear_expediente():
    payload = aplicar_alias(request.get_json(silent=True), ALIAS_EXPEDIENTE)
    form = form_desde_json(ExpedienteForm, payload)
    expediente = _expediente_service().crear(datos_presentes(form, payload), g.usuario)
    return jsonify({'success': True, 'message': 'Expediente creado exitosamente', 'data': expediente}), 201


@expediente_bp.route('/<int:expediente_id>', methods=['PUT'])
@token_required
@role_required('admin', 'usuario')
def actualizar_expediente(expediente_id):
    payload = aplicar_alias(request.get_json(silent=True), ALIAS_EXPEDIENTE)
    form = form_desde_json(ExpedienteUpdateForm, payload)
    expediente, modificados = _expediente_service().actualizar(
        expediente_id, datos_presentes(form, payload), g.usuario)
    return jsonify({
        'success': True,
        'message': 'Expediente actualizado exitosamente',
        'data': expediente,
        'campos_modificados': modificados,
    })


@expediente_bp.route('/<int:expediente_id>', methods=['DELETE'])
@token_required
@role_required('admin')
def eliminar_expediente(expediente_id):
    _expediente_service().eliminar(expediente_id, g.usuario)
    return jsonify({'success': True, 'message': 'Expediente dado de baja exitosamente'})
