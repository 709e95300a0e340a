# RUTA: ccamem/presentation/routes/catalogo_routes.py

from flask import Blueprint, current_app, jsonify, request

from ccamem.decorators import token_required

catalogo_bp = Blueprint('catalogo', __name__, url_prefix='/api/catalogo')


def _catalogo_service():
    return current_app.config['CATALOGO_SERVICE']


@catalogo_bp.route('/areas', methods=['GET'])
@token_required
def areas():
    return jsonify({'success': True, 'data': _catalogo_service().areas()})


@catalogo_bp.route('/fondos', methods=['GET'])
@token_required
def fondos():
    return jsonify({'success': True, 'data': _catalogo_service().fondos()})


@catalogo_bp.route('/secciones', methods=['GET'])
@token_required
def secciones():
    fondo_id = request.args.get('fondo_id', type=int)
    return jsonify({'success': True, 'data': _catalogo_service().secciones(fondo_id)})


@catalogo_bp.route('/series', methods=['GET'])
@token_required
def series():
    seccion_id = request.args.get('seccion_id', type=int)
    return jsonify({'success': True, 'data': _catalogo_service().series(seccion_id)})


@catalogo_bp.route('/subseries', methods=['GET'])
@token_required
def subseries():
    serie_id = request.args.get('serie_id', type=int)
    return jsonify({'success': True, 'data': _catalogo_service().subseries(serie_id)})


@catalogo_bp.route('/completo', methods=['GET'])
@token_required
def completo():
    return jsonify({'success': True, 'data': _catalogo_service().completo()})


@catalogo_bp.route('/buscar', methods=['GET'])
@token_required
def buscar():
    return jsonify({'success': True, 'data': _catalogo_service().buscar(request.args.get('q'))})


@catalogo_bp.route('/valores-documentales', methods=['GET'])
@token_required
def valores_documentales():
    return jsonify({'success': True, 'data': _catalogo_service().valores_documentales()})
