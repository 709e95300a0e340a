# RUTA: ccamem/application/services/catalogo_service.py

from ccamem.core.errors import ErrorValidacion
from ccamem.domain.models.catalogos import valores_documentales


class CatalogoService:
    def __init__(self, catalogo_repository):
        self._catalogo_repo = catalogo_repository

    def areas(self):
        return self._catalogo_repo.get_areas()

    def fondos(self):
        return self._catalogo_repo.get_fondos()

    def secciones(self, fondo_id=None):
        return self._catalogo_repo.get_secciones(fondo_id)

    def series(self, seccion_id=None):
        return self._catalogo_repo.get_series(seccion_id)

    def subseries(self, serie_id=None):
        return self._catalogo_repo.get_subseries(serie_id)

    def completo(self):
        """Arma el árbol fondo > secciones > series > subseries con cuatro consultas."""
        subseries_por_serie = {}
        for subserie in self._catalogo_repo.get_subseries():
            subseries_por_serie.setdefault(subserie['serie_id'], []).append(subserie)

        series_por_seccion = {}
        for serie in self._catalogo_repo.get_series():
            serie['subseries'] = subseries_por_serie.get(serie['id'], [])
            series_por_seccion.setdefault(serie['seccion_id'], []).append(serie)

        secciones_por_fondo = {}
        for seccion in self._catalogo_repo.get_secciones():
            seccion['series'] = series_por_seccion.get(seccion['id'], [])
            secciones_por_fondo.setdefault(seccion['fondo_id'], []).append(seccion)

        fondos = self._catalogo_repo.get_fondos()
        for fondo in fondos:
            fondo['secciones'] = secciones_por_fondo.get(fondo['id'], [])
        return fondos

    def buscar(self, termino):
        termino = (termino or '').strip()
        if len(termino) < 2:
            raise ErrorValidacion('El término de búsqueda debe tener al menos 2 caracteres')
        return self._catalogo_repo.buscar(termino)

    def valores_documentales(self):
        return valores_documentales()
