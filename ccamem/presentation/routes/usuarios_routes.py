# RUTA: ccamem/presentation/routes/usuarios_routes.py

from flask import Blueprint, current_app, g, jsonify, request

from ccamem.application.forms import UsuarioForm, UsuarioUpdateForm, datos_presentes, form_desde_json
from ccamem.decorators import role_required, token_required
from ccamem.utils.pagination import parse_paginacion

usuarios_bp = Blueprint('usuarios', __name__, url_prefix='/api/users')

FILTROS_USUARIOS = ('search', 'rol', 'area', 'activo')


def _usuario_service():
    return current_app.config['USUARIO_SERVICE']


# ------------------------------------------------------------------------
# 1. ESTADÍSTICAS (cualquier usuario autenticado)
# ------------------------------------------------------------------------

@usuarios_bp.route('/estadisticas', methods=['GET'])
@token_required
def estadisticas():
    return jsonify({'success': True, 'data': _usuario_service().estadisticas()})


# ------------------------------------------------------------------------
# 2. GESTIÓN DE USUARIOS (solo administradores)
# ------------------------------------------------------------------------

@usuarios_bp.route('', methods=['GET'])
@token_required
@role_required('admin')
def listar_usuarios():
    page, limit = parse_paginacion(request.args, limite_defecto=10)
    filtros = {k: request.args.get(k) for k in FILTROS_USUARIOS}
    pagina = _usuario_service().listar(filtros, page, limit)
    return jsonify({'success': True, 'data': pagina.items, 'pagination': pagina.to_dict()})


@usuarios_bp.route('/<int:user_id>', methods=['GET'])
@token_required
@role_required('admin')
def obtener_usuario(user_id):
    usuario = _usuario_service().obtener(user_id)
    return jsonify({'success': True, 'data': usuario.to_dict()})


@usuarios_bp.route('', methods=['POST'])
@token_required
@role_required('admin')
def crear_usuario():
    payload = request.get_json(silent=True) or {}
    form = form_desde_json(UsuarioForm, payload)
    usuario = _usuario_service().crear(datos_presentes(form, payload), g.usuario)
    return jsonify({'success': True, 'message': 'Usuario creado exitosamente', 'data': usuario.to_dict()}), 201


@usuarios_bp.route('/<int:user_id>', methods=['PUT'])
@token_required
@role_required('admin')
def actualizar_usuario(user_id):
    payload = request.get_json(silent=True) or {}
    form = form_desde_json(UsuarioUpdateForm, payload)
    usuario = _usuario_service().actualizar(user_id, datos_presentes(form, payload), g.usuario)
    return jsonify({'success': True, 'message': 'Usuario actualizado exitosamente', 'data': usuario.to_dict()})


@usuarios_bp.route('/<int:user_id>', methods=['DELETE'])
@token_required
@role_required('admin')
def eliminar_usuario(user_id):
    _usuario_service().eliminar(user_id, g.usuario)
    return jsonify({'success': True, 'message': 'Usuario desactivado exitosamente'})
