# RUTA: ccamem/domain/models/usuario.py

from ccamem.core.security import check_password_hash

ROLES = ('admin', 'usuario', 'consulta')


class Usuario:
    """Usuario del sistema. Se construye a partir de la fila de la tabla usuarios."""

    def __init__(self, id=None, nombre=None, email=None, password=None, rol=None, area=None,
                 activo=True, ultimo_acceso=None, created_at=None, updated_at=None,
                 area_nombre=None, **kwargs):
        self.id = id
        self.nombre = nombre
        self.email = email
        self.password_hash = password
        self.rol = rol
        self.area = area
        self.area_nombre = area_nombre
        # SQLite devuelve 0/1 y SQL Server un BIT
        self.activo = bool(activo)
        self.ultimo_acceso = ultimo_acceso
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def es_admin(self):
        return self.rol == 'admin'

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'nombre': self.nombre,
            'email': self.email,
            'rol': self.rol,
            'area': self.area,
            'area_nombre': self.area_nombre,
            'activo': self.activo,
            'ultimo_acceso': self.ultimo_acceso,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }

    def __repr__(self):
        return f"<Usuario {self.email} ({self.rol})>"
