from abc import ABC, abstractmethod


# Contrato para la bitácora (logs_auditoria) y el historial de cambios.
class IAuditoriaRepository(ABC):

    @abstractmethod
    def log_event(self, datos):
        pass

    @abstractmethod
    def get_logs_paginated(self, filtros, page, limit):
        pass

    @abstractmethod
    def get_estadisticas(self):
        pass

    @abstractmethod
    def limpiar_logs(self, dias, usuario):
        pass

    @abstractmethod
    def get_historial_paginated(self, filtros, page, limit):
        pass
