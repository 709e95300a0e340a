# RUTA: ccamem/decorators.py

import logging
from functools import wraps

from flask import current_app, g, request

from ccamem.core.errors import ErrorAutenticacion, ErrorPermiso

logger = logging.getLogger(__name__)


def _token_de_la_peticion():
    cabecera = request.headers.get('Authorization', '')
    partes = cabecera.split(' ', 1)
    if len(partes) == 2 and partes[0].lower() == 'bearer' and partes[1].strip():
        return partes[1].strip()
    return None


def token_required(f):
    """
    Exige un token Bearer válido. El usuario se vuelve a leer de la base de datos
    en cada petición y queda disponible en g.usuario.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _token_de_la_peticion()
        if not token:
            raise ErrorAutenticacion('Token no proporcionado')
        try:
            g.usuario = current_app.config['AUTH_SERVICE'].usuario_desde_token(token)
        except ErrorAutenticacion as e:
            logger.warning(f"Acceso rechazado a {request.path} desde {request.remote_addr}: {e.mensaje}")
            raise
        return f(*args, **kwargs)
    return decorated_function


def role_required(*roles):
    """
    Restringe la ruta a los roles indicados. Se aplica después de token_required.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            usuario = g.get('usuario')
            if usuario is None:
                raise ErrorAutenticacion('Token no proporcionado')
            if usuario.rol not in roles:
                logger.warning(f"Usuario {usuario.email} ({usuario.rol}) sin permiso para {request.path}")
                raise ErrorPermiso('No tiene permisos para realizar esta acción')
            return f(*args, **kwargs)
        return decorated_function
    return decorator
