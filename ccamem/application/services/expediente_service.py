# RUTA: ccamem/application/services/expediente_service.py

import logging

from ccamem.core.errors import ErrorNoEncontrado, ErrorValidacion
from ccamem.infrastructure.persistence.expediente_repository import CAMPOS_EXPEDIENTE
from ccamem.utils.fechas import parse_fecha

logger = logging.getLogger(__name__)

# El total de hojas lo mantienen las cargas de documentos
CAMPOS_EDITABLES = tuple(c for c in CAMPOS_EXPEDIENTE if c != 'total_hojas')


class ExpedienteService:
    """Lógica de negocio de los expedientes y su consulta."""

    def __init__(self, expediente_repository, documento_repository):
        self._expediente_repo = expediente_repository
        self._documento_repo = documento_repository

    def listar(self, filtros, page, limit):
        return self._expediente_repo.get_all_paginated(filtros, page, limit)

    def obtener(self, expediente_id, con_documentos=True):
        expediente = self._expediente_repo.find_by_id(expediente_id)
        if not expediente:
            raise ErrorNoEncontrado('Expediente no encontrado')
        if con_documentos:
            expediente['documentos'] = self._documento_repo.find_by_expediente(expediente_id)
        return expediente

    def estadisticas(self):
        return self._expediente_repo.get_estadisticas()

    def crear(self, datos, usuario):
        """Registra el expediente. El número duplicado se detecta dentro de la transacción."""
        datos = {k: v for k, v in datos.items() if k in CAMPOS_EXPEDIENTE}
        datos['numero_expediente'] = datos['numero_expediente'].strip()
        datos.setdefault('numero_legajos', 1)
        datos.setdefault('estado', 'activo')

        new_id = self._expediente_repo.create(datos, usuario.id)
        logger.info(f"Expediente {datos['numero_expediente']} registrado por {usuario.email}")
        return self.obtener(new_id, con_documentos=False)

    def actualizar(self, expediente_id, datos, usuario):
        cambios = {k: v for k, v in datos.items() if k in CAMPOS_EDITABLES}
        if not cambios:
            raise ErrorValidacion('No se proporcionaron campos para actualizar')
        for requerido in ('numero_expediente', 'nombre', 'fecha_apertura'):
            if requerido in cambios and not cambios[requerido]:
                raise ErrorValidacion(f"El campo {requerido} no puede quedar vacío", {requerido: ['Campo requerido']})

        actual = self.obtener(expediente_id, con_documentos=False)
        apertura = parse_fecha(cambios.get('fecha_apertura', actual.get('fecha_apertura')))
        cierre = parse_fecha(cambios.get('fecha_cierre', actual.get('fecha_cierre')))
        if apertura and cierre and cierre < apertura:
            raise ErrorValidacion('La fecha de cierre no puede ser anterior a la fecha de apertura.',
                                  {'fecha_cierre': ['Anterior a la fecha de apertura']})

        modificados = self._expediente_repo.update(expediente_id, cambios, usuario.id)
        if not modificados:
            raise ErrorValidacion('No se detectaron cambios en el expediente')
        logger.info(f"Expediente {expediente_id} actualizado por {usuario.email}. Campos: {modificados}")
        return self.obtener(expediente_id, con_documentos=False), modificados

    def eliminar(self, expediente_id, usuario):
        """Baja lógica: el expediente pasa a estado 'baja' y sigue disponible por ID."""
        self._expediente_repo.soft_delete(expediente_id, usuario.id)
        logger.info(f"Expediente {expediente_id} dado de baja por {usuario.email}")
