# RUTA: ccamem/presentation/routes/configuracion_routes.py

from flask import Blueprint, current_app, g, jsonify, request

from ccamem.application.forms import EmailPruebaForm, NotificacionForm, RespaldoForm, datos_presentes, form_desde_json
from ccamem.core.errors import ErrorValidacion
from ccamem.decorators import role_required, token_required

configuracion_bp = Blueprint('configuracion', __name__, url_prefix='/api/configuracion')


def _configuracion_service():
    return current_app.config['CONFIGURACION_SERVICE']


# ------------------------------------------------------------------------
# 1. CONFIGURACIÓN DEL SISTEMA
# ------------------------------------------------------------------------

@configuracion_bp.route('/sistema', methods=['GET'])
@token_required
@role_required('admin')
def obtener_sistema():
    return jsonify({'success': True, 'data': _configuracion_service().obtener_sistema()})


@configuracion_bp.route('/sistema/<clave>', methods=['PUT'])
@token_required
@role_required('admin')
def actualizar_sistema(clave):
    payload = request.get_json(silent=True) or {}
    if 'valor' not in payload:
        raise ErrorValidacion('El valor es requerido')
    config = _configuracion_service().actualizar(clave, payload['valor'], g.usuario)
    return jsonify({'success': True, 'message': 'Configuración actualizada exitosamente', 'data': config})


# ------------------------------------------------------------------------
# 2. NOTIFICACIONES
# ------------------------------------------------------------------------

@configuracion_bp.route('/notificaciones', methods=['GET'])
@token_required
@role_required('admin')
def obtener_notificaciones():
    return jsonify({'success': True, 'data': _configuracion_service().obtener_notificaciones()})


@configuracion_bp.route('/notificaciones/<int:notificacion_id>', methods=['PUT'])
@token_required
@role_required('admin')
def actualizar_notificacion(notificacion_id):
    payload = request.get_json(silent=True) or {}
    form = form_desde_json(NotificacionForm, payload)
    notificacion = _configuracion_service().actualizar_notificacion(
        notificacion_id, datos_presentes(form, payload), g.usuario)
    return jsonify({'success': True, 'message': 'Notificación actualizada exitosamente', 'data': notificacion})


# ------------------------------------------------------------------------
# 3. RESPALDOS
# ------------------------------------------------------------------------

@configuracion_bp.route('/respaldos', methods=['GET'])
@token_required
@role_required('admin')
def listar_respaldos():
    return jsonify({'success': True, 'data': current_app.config['BACKUP_SERVICE'].listar()})


@configuracion_bp.route('/respaldos', methods=['POST'])
@token_required
@role_required('admin')
def configurar_respaldo():
    payload = request.get_json(silent=True) or {}
    form = form_desde_json(RespaldoForm, payload)
    respaldo = current_app.config['BACKUP_SERVICE'].crear(datos_presentes(form, payload), g.usuario)
    return jsonify({'success': True, 'message': 'Respaldo configurado exitosamente', 'data': respaldo}), 201


@configuracion_bp.route('/respaldos/<int:respaldo_id>/ejecutar', methods=['POST'])
@token_required
@role_required('admin')
def ejecutar_respaldo(respaldo_id):
    archivo = current_app.config['BACKUP_SERVICE'].ejecutar(respaldo_id, g.usuario)
    return jsonify({
        'success': True,
        'message': 'Respaldo iniciado. Recibirás una notificación cuando termine.',
        'archivo': archivo,
    }), 202


# ------------------------------------------------------------------------
# 4. EMAIL E INFORMACIÓN DEL SISTEMA
# ------------------------------------------------------------------------

@configuracion_bp.route('/email/probar', methods=['POST'])
@token_required
@role_required('admin')
def probar_email():
    form = form_desde_json(EmailPruebaForm, request.get_json(silent=True) or {})
    _configuracion_service().probar_email(form.email_destino.data.strip())
    return jsonify({'success': True, 'message': 'Email de prueba enviado exitosamente'})


@configuracion_bp.route('/info-sistema', methods=['GET'])
@token_required
@role_required('admin')
def info_sistema():
    return jsonify({'success': True, 'data': current_app.config['MONITORING_SERVICE'].info_sistema()})
