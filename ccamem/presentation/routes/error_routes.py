# RUTA: ccamem/presentation/routes/error_routes.py
import traceback

from flask import Blueprint, current_app, jsonify, request

from ccamem.core.errors import ErrorAplicacion, TipoError

# Se utiliza un Blueprint para organizar los manejadores de errores de toda la API.
error_bp = Blueprint('errors', __name__)


def _respuesta(mensaje, tipo, status, detalles=None):
    cuerpo = {'success': False, 'error': mensaje, 'tipo': tipo.value}
    if detalles:
        cuerpo['detalles'] = detalles
    return jsonify(cuerpo), status


@error_bp.app_errorhandler(ErrorAplicacion)
def error_aplicacion(error):
    """
    Manejador de los errores lanzados por los servicios.

    El estado HTTP y el 'tipo' salen de la propia excepción.
    """
    if error.status_code >= 500:
        current_app.logger.error(f"{request.method} {request.path}: {error.mensaje}")
    return jsonify(error.to_dict()), error.status_code


@error_bp.app_errorhandler(404)
def not_found_error(error):
    current_app.logger.warning(f"Se accedió a una ruta no encontrada: {request.path}")
    return _respuesta('Ruta no encontrada', TipoError.NO_ENCONTRADO, 404)


@error_bp.app_errorhandler(405)
def method_not_allowed(error):
    return _respuesta(f"Método {request.method} no permitido", TipoError.VALIDACION, 405)


@error_bp.app_errorhandler(413)
def request_entity_too_large(error):
    """
    Manejador para errores 413 (Payload Too Large).

    Se activa cuando la petición supera MAX_CONTENT_LENGTH.
    """
    current_app.logger.warning(f"Se intentó subir un archivo demasiado grande: {error}")
    max_size_mb = current_app.config.get('MAX_FILE_SIZE', 0) / (1024 * 1024)
    return _respuesta(f"El archivo es demasiado grande. El tamaño máximo permitido es de {max_size_mb:.0f} MB.",
                      TipoError.ARCHIVO_DEMASIADO_GRANDE, 413)


@error_bp.app_errorhandler(429)
def too_many_requests(error):
    current_app.logger.warning(f"Límite de peticiones excedido desde {request.remote_addr}: {request.path}")
    return _respuesta('Demasiadas peticiones. Intente de nuevo más tarde.', TipoError.VALIDACION, 429)


@error_bp.app_errorhandler(500)
def internal_error(error):
    """
    Manejador para errores 500 (Error interno del servidor).

    Registra el traceback completo y solo lo devuelve en modo DEBUG.
    """
    original = getattr(error, 'original_exception', None) or error
    current_app.logger.error(f"Error interno del servidor: {original}", exc_info=original)
    detalles = None
    if current_app.config.get('DEBUG'):
        detalles = {'traceback': traceback.format_exception(type(original), original, original.__traceback__)}
    return _respuesta('Error interno del servidor', TipoError.INTERNO, 500, detalles)
