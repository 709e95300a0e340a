# RUTA: ccamem/infrastructure/siser/base.py

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class SubmitterNotReady(RuntimeError):
    """El canal no puede usarse: faltan credenciales o no se pudo iniciar sesión."""


class ErrorEnvio(RuntimeError):
    """Fallo al registrar un expediente en el portal; se puede reintentar."""


@dataclass
class RegistroSiser:
    """Un expediente tal como lo pide el formulario de entrega-recepción."""
    clave: str
    nombre: str
    fecha_inicio: str  # DD/MM/YYYY
    fecha_fin: str     # DD/MM/YYYY
    legajos: int = 1
    hojas: int = 1
    id: Optional[int] = None


@dataclass
class SubmitResult:
    clave: str
    meta: Dict[str, Any] = field(default_factory=dict)


class BaseSubmitter:
    name: str = "base"

    def abrir(self):
        """Prepara la sesión en el portal. Debe lanzar SubmitterNotReady si no es posible."""
        raise NotImplementedError

    def cerrar(self):
        pass

    def verificar_portal(self) -> bool:
        """True si la página de acceso del portal responde."""
        raise NotImplementedError

    def submit(self, registro: RegistroSiser) -> SubmitResult:
        """
        Registra un expediente. Debe devolver SubmitResult o lanzar ErrorEnvio.
        """
        raise NotImplementedError

    def __enter__(self):
        self.abrir()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cerrar()
        return False
