from abc import ABC, abstractmethod


class IExpedienteRepository(ABC):

    @abstractmethod
    def get_all_paginated(self, filtros, page, limit):
        pass

    @abstractmethod
    def get_for_report(self, filtros, limite):
        pass

    @abstractmethod
    def get_inventario(self, year):
        pass

    @abstractmethod
    def find_by_id(self, expediente_id):
        pass

    @abstractmethod
    def create(self, datos, usuario_id):
        """Inserta el expediente validando que numero_expediente no exista."""
        pass

    @abstractmethod
    def update(self, expediente_id, cambios, usuario_id):
        pass

    @abstractmethod
    def soft_delete(self, expediente_id, usuario_id):
        """Marca el expediente con estado 'baja'."""
        pass

    @abstractmethod
    def get_estadisticas(self):
        pass


class IDocumentoRepository(ABC):

    @abstractmethod
    def create(self, expediente_id, datos, usuario_id):
        pass

    @abstractmethod
    def find_by_id(self, documento_id):
        pass

    @abstractmethod
    def find_by_expediente(self, expediente_id):
        pass

    @abstractmethod
    def delete(self, documento_id, usuario_id):
        pass
