# Importa ABC (Abstract Base Class) y abstractmethod para definir una interfaz.
from abc import ABC, abstractmethod

# Define la interfaz 'IUsuarioRepository'.
# Cualquier clase que implemente esta interfaz debe proporcionar una implementación para todos sus métodos.
class IUsuarioRepository(ABC):
    # Busca un usuario por su ID (incluye el nombre del área).
    @abstractmethod
    def find_by_id(self, user_id):
        pass

    # Busca un usuario por correo electrónico sin distinguir mayúsculas.
    @abstractmethod
    def find_by_email(self, email):
        pass

    @abstractmethod
    def email_en_uso(self, email, excluir_id=None):
        pass

    @abstractmethod
    def area_existe(self, codigo):
        pass

    @abstractmethod
    def get_all_paginated(self, filtros, page, limit):
        pass

    @abstractmethod
    def create_user(self, nombre, email, password_hash, rol, area, creado_por):
        """Crea el usuario y registra el historial en la misma transacción."""
        pass

    @abstractmethod
    def update_user(self, user_id, cambios, actualizado_por):
        pass

    @abstractmethod
    def deactivate_user(self, user_id, eliminado_por):
        pass

    @abstractmethod
    def update_password(self, user_id, password_hash, actualizado_por):
        pass

    @abstractmethod
    def update_last_login(self, user_id):
        """Define el contrato para actualizar la fecha del último acceso."""
        pass

    @abstractmethod
    def get_estadisticas(self):
        pass
