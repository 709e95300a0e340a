# RUTA: ccamem/application/services/auth_service.py

import logging

from ccamem.core.errors import ErrorAutenticacion, ErrorNoEncontrado, ErrorValidacion
from ccamem.core.security import create_token, decode_token, generate_password_hash

logger = logging.getLogger(__name__)

LONGITUD_MINIMA_PASSWORD = 6


class AuthService:
    def __init__(self, usuario_repository, audit_service, config):
        self._usuario_repo = usuario_repository
        self._audit_service = audit_service
        self._config = config

    def _secret(self):
        return self._config.get('JWT_SECRET_KEY') or self._config['SECRET_KEY']

    def login(self, email, password, ip_address=None):
        """
        Verifica credenciales y emite el token.
        La actualización de ultimo_acceso y la auditoría no bloquean el login.
        """
        usuario = self._usuario_repo.find_by_email(email)

        if not usuario or not usuario.check_password(password):
            logger.warning(f"Intento de login fallido para {email} desde {ip_address}")
            self._audit_service.log_best_effort('login_fallido', 'auth', f"Credenciales incorrectas para {email}",
                                                ip_address=ip_address, resultado='error',
                                                mensaje_error='Credenciales incorrectas')
            raise ErrorAutenticacion('Credenciales incorrectas')

        if not usuario.activo:
            logger.warning(f"Intento de login de usuario inactivo: {email}")
            raise ErrorAutenticacion('Usuario inactivo. Contacta al administrador.')

        token = create_token(
            usuario,
            self._secret(),
            algorithm=self._config.get('JWT_ALGORITHM', 'HS256'),
            expiration_hours=self._config.get('JWT_EXPIRATION_HOURS', 24),
        )

        try:
            self._usuario_repo.update_last_login(usuario.id)
        except Exception as e:
            logger.error(f"No se pudo actualizar el último acceso del usuario {usuario.id}: {e}")
        self._audit_service.log_best_effort('login', 'auth', 'Inicio de sesión', usuario=usuario, ip_address=ip_address)

        logger.info(f"Usuario {usuario.email} inició sesión")
        return token, usuario

    def usuario_desde_token(self, token):
        """Decodifica el token y vuelve a leer al usuario para conocer su estado actual."""
        payload = decode_token(token, self._secret(), self._config.get('JWT_ALGORITHM', 'HS256'))
        user_id = payload.get('id') or payload.get('sub')
        try:
            user_id = int(user_id)
        except (TypeError, ValueError):
            raise ErrorAutenticacion('Token inválido')

        usuario = self._usuario_repo.find_by_id(user_id)
        if not usuario:
            raise ErrorAutenticacion('Usuario no encontrado')
        if not usuario.activo:
            raise ErrorAutenticacion('Usuario inactivo')
        return usuario

    def logout(self, usuario, ip_address=None):
        self._audit_service.log_best_effort('logout', 'auth', 'Cierre de sesión', usuario=usuario, ip_address=ip_address)

    def actualizar_perfil(self, usuario, nombre):
        self._usuario_repo.update_user(usuario.id, {'nombre': nombre.strip()}, usuario.id)
        return self._usuario_repo.find_by_id(usuario.id)

    def cambiar_password(self, usuario, password_actual, password_nuevo):
        if not usuario.check_password(password_actual):
            raise ErrorValidacion('La contraseña actual es incorrecta')
        if len(password_nuevo or '') < LONGITUD_MINIMA_PASSWORD:
            raise ErrorValidacion('La nueva contraseña debe tener al menos 6 caracteres')
        if not self._usuario_repo.find_by_id(usuario.id):
            raise ErrorNoEncontrado('Usuario no encontrado')
        self._usuario_repo.update_password(usuario.id, generate_password_hash(password_nuevo), usuario.id)
        logger.info(f"Contraseña actualizada para el usuario {usuario.email}")
