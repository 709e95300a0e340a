# RUTA: ccamem/core/security.py

from datetime import datetime, timedelta, timezone

import bcrypt
import jwt as pyjwt

from ccamem.core.errors import ErrorAutenticacion, TipoError


# ============================================================
# CONTRASEÑAS
# ============================================================

def generate_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def check_password_hash(password_hash: str, password: str) -> bool:
    if not password_hash or password is None:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Hash con formato no reconocido por bcrypt
        return False


# ============================================================
# TOKENS JWT
# ============================================================

def create_token(usuario, secret, algorithm='HS256', expiration_hours=24) -> str:
    """Emite un token firmado cuyo 'sub' es el id del usuario."""
    ahora = datetime.now(timezone.utc)
    payload = {
        'sub': str(usuario.id),
        'id': usuario.id,
        'email': usuario.email,
        'rol': usuario.rol,
        'iat': ahora,
        'exp': ahora + timedelta(hours=expiration_hours),
    }
    return pyjwt.encode(payload, secret, algorithm=algorithm)


def decode_token(token: str, secret, algorithm='HS256') -> dict:
    """
    Decodifica y valida un token. Distingue token expirado de token inválido
    para que el cliente sepa si debe volver a iniciar sesión.
    """
    try:
        return pyjwt.decode(token, secret, algorithms=[algorithm])
    except pyjwt.ExpiredSignatureError:
        raise ErrorAutenticacion('Token expirado', tipo=TipoError.TOKEN_EXPIRADO)
    except pyjwt.InvalidTokenError:
        raise ErrorAutenticacion('Token inválido', tipo=TipoError.TOKEN_INVALIDO)
