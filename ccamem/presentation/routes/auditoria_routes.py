# RUTA: ccamem/presentation/routes/auditoria_routes.py
"""
Bitácora de auditoría e historial de cambios.

El blueprint se registra dos veces: en /api/auditoria y en
/api/configuracion/auditoria, que es la ruta que usa el panel de configuración.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ccamem.decorators import role_required, token_required
from ccamem.utils.pagination import parse_paginacion

auditoria_bp = Blueprint('auditoria', __name__, url_prefix='/api/auditoria')

FILTROS_LOGS = ('usuario_id', 'modulo', 'accion', 'resultado', 'fecha_inicio', 'fecha_fin')
FILTROS_HISTORIAL = ('tabla', 'registro_id', 'usuario_id', 'tipo_cambio')


def _audit_service():
    return current_app.config['AUDIT_SERVICE']


@auditoria_bp.route('', methods=['GET'])
@token_required
@role_required('admin')
def listar_logs():
    page, limit = parse_paginacion(request.args, limite_defecto=50)
    filtros = {k: request.args.get(k) for k in FILTROS_LOGS}
    pagina = _audit_service().get_logs(filtros, page, limit)
    return jsonify({'success': True, 'data': pagina.items, 'pagination': pagina.to_dict()})


@auditoria_bp.route('/estadisticas', methods=['GET'])
@token_required
@role_required('admin')
def estadisticas():
    return jsonify({'success': True, 'data': _audit_service().get_estadisticas()})


@auditoria_bp.route('/limpiar', methods=['POST'])
@token_required
@role_required('admin')
def limpiar_logs():
    dias = (request.get_json(silent=True) or {}).get('dias', 90)
    eliminados = _audit_service().limpiar_logs(dias, g.usuario)
    return jsonify({
        'success': True,
        'message': f"Se eliminaron {eliminados} logs antiguos",
        'data': {'eliminados': eliminados},
    })


@auditoria_bp.route('/historial', methods=['GET'])
@token_required
@role_required('admin')
def historial():
    page, limit = parse_paginacion(request.args, limite_defecto=50)
    filtros = {k: request.args.get(k) for k in FILTROS_HISTORIAL}
    pagina = _audit_service().get_historial(filtros, page, limit)
    return jsonify({'success': True, 'data': pagina.items, 'pagination': pagina.to_dict()})
