# RUTA: ccamem/presentation/routes/auth_routes.py

from flask import Blueprint, current_app, g, jsonify, request

from ccamem import limiter
from ccamem.application.forms import CambiarPasswordForm, LoginForm, PerfilForm, form_desde_json
from ccamem.decorators import token_required

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/login', methods=['POST'])
# Seguridad: límite de intentos para frenar ataques de fuerza bruta
@limiter.limit("20 per minute")
def login():
    payload = request.get_json(silent=True) or {}
    form = form_desde_json(LoginForm, payload)

    auth_service = current_app.config['AUTH_SERVICE']
    token, usuario = auth_service.login(form.email.data.strip(), form.password.data, request.remote_addr)
    return jsonify({
        'success': True,
        'message': 'Login exitoso',
        'token': token,
        'user': usuario.to_dict(),
    })


@auth_bp.route('/verify', methods=['GET'])
@token_required
def verify():
    return jsonify({'success': True, 'valid': True, 'user': g.usuario.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
@token_required
def logout():
    current_app.config['AUTH_SERVICE'].logout(g.usuario, request.remote_addr)
    return jsonify({'success': True, 'message': 'Sesión cerrada exitosamente'})


@auth_bp.route('/profile', methods=['GET'])
@token_required
def get_profile():
    return jsonify({'success': True, 'data': g.usuario.to_dict()})


@auth_bp.route('/profile', methods=['PUT'])
@token_required
def update_profile():
    form = form_desde_json(PerfilForm, request.get_json(silent=True) or {})
    usuario = current_app.config['AUTH_SERVICE'].actualizar_perfil(g.usuario, form.nombre.data)
    return jsonify({'success': True, 'message': 'Perfil actualizado exitosamente', 'data': usuario.to_dict()})


@auth_bp.route('/change-password', methods=['POST'])
@token_required
def change_password():
    form = form_desde_json(CambiarPasswordForm, request.get_json(silent=True) or {})
    current_app.config['AUTH_SERVICE'].cambiar_password(g.usuario, form.password_actual.data, form.password_nuevo.data)
    return jsonify({'success': True, 'message': 'Contraseña actualizada exitosamente'})
