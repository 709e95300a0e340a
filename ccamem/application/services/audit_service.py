# RUTA: ccamem/application/services/audit_service.py

import logging

from ccamem.core.errors import ErrorValidacion

logger = logging.getLogger(__name__)

# Diez años de bitácora
DIAS_MAXIMOS_RETENCION = 3650


class AuditService:
    """Orquesta la escritura y consulta de la bitácora (logs_auditoria) y del historial de cambios."""

    def __init__(self, audit_repository):
        self._audit_repo = audit_repository

    def log(self, accion, modulo, descripcion=None, usuario=None, ip_address=None, **extra):
        """Registra un evento. Si falla, la excepción se propaga al llamador."""
        datos = {
            'accion': accion,
            'modulo': modulo,
            'descripcion': descripcion,
            'usuario': usuario,
            'ip_address': ip_address,
        }
        datos.update(extra)
        self._audit_repo.log_event(datos)

    def log_best_effort(self, accion, modulo, descripcion=None, usuario=None, ip_address=None, **extra):
        """
        Variante usada solo fuera de transacciones (login y logout): un fallo se
        registra en el log de la aplicación y no interrumpe la petición.
        """
        try:
            self.log(accion, modulo, descripcion, usuario, ip_address, **extra)
        except Exception as e:
            logger.error(f"No se pudo registrar la auditoría '{accion}': {e}")

    def get_logs(self, filtros, page, limit):
        return self._audit_repo.get_logs_paginated(filtros, page, limit)

    def get_estadisticas(self):
        return self._audit_repo.get_estadisticas()

    def limpiar_logs(self, dias, usuario):
        try:
            dias = int(dias)
        except (TypeError, ValueError, OverflowError):
            raise ErrorValidacion('El número de días debe ser un entero')
        if dias < 1:
            raise ErrorValidacion('El número de días debe ser mayor a 0')
        if dias > DIAS_MAXIMOS_RETENCION:
            raise ErrorValidacion(f'El número de días no puede ser mayor a {DIAS_MAXIMOS_RETENCION}')
        eliminados = self._audit_repo.limpiar_logs(dias, usuario)
        logger.info(f"Limpieza de auditoría: {eliminados} logs eliminados por {usuario.email}")
        return eliminados

    def get_historial(self, filtros, page, limit):
        return self._audit_repo.get_historial_paginated(filtros, page, limit)
