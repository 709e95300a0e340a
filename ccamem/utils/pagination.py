# RUTA: ccamem/utils/pagination.py

import math

LIMITE_MAXIMO = 100


def _entero(valor, defecto):
    try:
        return int(valor)
    except (TypeError, ValueError):
        return defecto


def parse_paginacion(args, limite_defecto=20, limite_maximo=LIMITE_MAXIMO):
    """Lee page/limit de los query params. page >= 1 y limit en [1, limite_maximo]."""
    page = max(_entero(args.get('page'), 1), 1)
    limit = _entero(args.get('limit'), limite_defecto)
    limit = min(max(limit, 1), limite_maximo)
    return page, limit


class SimplePagination:
    """Resultado paginado con los metadatos que consume el frontend."""

    def __init__(self, items, page, per_page, total):
        self.items = items
        self.page = page
        self.per_page = per_page
        self.total = total

    @property
    def pages(self):
        if self.per_page <= 0:
            return 0
        return int(math.ceil(self.total / float(self.per_page)))

    @property
    def has_prev(self):
        return self.page > 1

    @property
    def has_next(self):
        return self.page < self.pages

    def to_dict(self):
        return {
            'page': self.page,
            'limit': self.per_page,
            'totalItems': self.total,
            'totalPages': self.pages,
            'hasNextPage': self.has_next,
            'hasPrevPage': self.has_prev,
        }
