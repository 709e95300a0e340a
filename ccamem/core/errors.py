# RUTA: ccamem/core/errors.py
"""
Jerarquía de errores de la aplicación.

Los servicios lanzan estas excepciones y el blueprint de errores las convierte
en respuestas JSON {success, error, tipo, detalles}. El campo 'tipo' es estable
y pensado para que el frontend lo interprete sin depender del mensaje.
"""

from enum import Enum


class TipoError(str, Enum):
    VALIDACION = 'validacion'
    NO_AUTENTICADO = 'no_autenticado'
    TOKEN_INVALIDO = 'token_invalido'
    TOKEN_EXPIRADO = 'token_expirado'
    PROHIBIDO = 'prohibido'
    NO_ENCONTRADO = 'no_encontrado'
    DUPLICADO = 'duplicado'
    ARCHIVO_INVALIDO = 'archivo_invalido'
    ARCHIVO_DEMASIADO_GRANDE = 'archivo_demasiado_grande'
    SERVICIO_EXTERNO = 'servicio_externo'
    INTERNO = 'interno'


STATUS_POR_TIPO = {
    TipoError.VALIDACION: 400,
    TipoError.DUPLICADO: 400,
    TipoError.ARCHIVO_INVALIDO: 400,
    TipoError.NO_AUTENTICADO: 401,
    TipoError.TOKEN_INVALIDO: 401,
    TipoError.TOKEN_EXPIRADO: 401,
    TipoError.PROHIBIDO: 403,
    TipoError.NO_ENCONTRADO: 404,
    TipoError.ARCHIVO_DEMASIADO_GRANDE: 413,
    TipoError.SERVICIO_EXTERNO: 503,
    TipoError.INTERNO: 500,
}


class ErrorAplicacion(Exception):
    tipo = TipoError.INTERNO

    def __init__(self, mensaje, detalles=None, tipo=None):
        super().__init__(mensaje)
        self.mensaje = mensaje
        self.detalles = detalles
        if tipo is not None:
            self.tipo = tipo

    @property
    def status_code(self):
        return STATUS_POR_TIPO[self.tipo]

    def to_dict(self):
        cuerpo = {'success': False, 'error': self.mensaje, 'tipo': self.tipo.value}
        if self.detalles:
            cuerpo['detalles'] = self.detalles
        return cuerpo


class ErrorValidacion(ErrorAplicacion):
    tipo = TipoError.VALIDACION


class ErrorDuplicado(ErrorAplicacion):
    tipo = TipoError.DUPLICADO


class ErrorAutenticacion(ErrorAplicacion):
    tipo = TipoError.NO_AUTENTICADO


class ErrorPermiso(ErrorAplicacion):
    tipo = TipoError.PROHIBIDO


class ErrorNoEncontrado(ErrorAplicacion):
    tipo = TipoError.NO_ENCONTRADO


class ErrorArchivo(ErrorAplicacion):
    tipo = TipoError.ARCHIVO_INVALIDO


class ErrorServicioExterno(ErrorAplicacion):
    tipo = TipoError.SERVICIO_EXTERNO
