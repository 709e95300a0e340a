# RUTA: ccamem/application/services/configuracion_service.py

import json
import logging

from ccamem.core.errors import ErrorNoEncontrado, ErrorPermiso, ErrorServicioExterno, ErrorValidacion

logger = logging.getLogger(__name__)


def convertir_valor(valor, tipo):
    """Convierte el texto almacenado al tipo declarado en la configuración."""
    if valor is None:
        return None
    if tipo == 'numero':
        try:
            numero = float(valor)
        except ValueError:
            return valor
        return int(numero) if numero.is_integer() else numero
    if tipo == 'booleano':
        return str(valor).lower() == 'true'
    if tipo == 'json':
        try:
            return json.loads(valor)
        except ValueError:
            return valor
    return valor


def _valor_a_texto(valor, tipo):
    """Valida el valor recibido contra el tipo y devuelve su representación almacenable."""
    if tipo == 'numero':
        if isinstance(valor, bool):
            raise ErrorValidacion('El valor debe ser un número')
        try:
            float(valor)
        except (TypeError, ValueError):
            raise ErrorValidacion('El valor debe ser un número')
        return str(valor)
    if tipo == 'booleano':
        if isinstance(valor, bool):
            return 'true' if valor else 'false'
        if str(valor).lower() in ('true', 'false'):
            return str(valor).lower()
        raise ErrorValidacion('El valor debe ser verdadero o falso')
    if tipo == 'json':
        if isinstance(valor, str):
            try:
                json.loads(valor)
            except ValueError:
                raise ErrorValidacion('El valor debe ser un JSON válido')
            return valor
        return json.dumps(valor, ensure_ascii=False)
    return '' if valor is None else str(valor)


class ConfiguracionService:
    def __init__(self, configuracion_repository, email_service):
        self._config_repo = configuracion_repository
        self._email_service = email_service

    def obtener_sistema(self):
        """Configuraciones agrupadas por categoría con el valor ya convertido."""
        agrupadas = {}
        for config in self._config_repo.get_all_sistema():
            config['valor'] = convertir_valor(config['valor'], config['tipo'])
            config['editable'] = bool(config['editable'])
            agrupadas.setdefault(config['categoria'], []).append(config)
        return agrupadas

    def actualizar(self, clave, valor, usuario):
        config = self._config_repo.find_by_clave(clave)
        if not config:
            raise ErrorNoEncontrado('Configuración no encontrada')
        if not config['editable']:
            raise ErrorPermiso('Esta configuración no es editable')

        nuevo = _valor_a_texto(valor, config['tipo'])
        self._config_repo.update_valor(clave, config['valor'], nuevo, usuario)
        logger.info(f"Configuración '{clave}' actualizada por {usuario.email}")
        config['valor'] = convertir_valor(nuevo, config['tipo'])
        config['editable'] = True
        return config

    def obtener_notificaciones(self):
        notificaciones = self._config_repo.get_notificaciones()
        for n in notificaciones:
            for campo in ('activa', 'enviar_email', 'enviar_sistema'):
                n[campo] = bool(n[campo])
        return notificaciones

    def actualizar_notificacion(self, notificacion_id, datos, usuario):
        anterior = next((n for n in self.obtener_notificaciones() if n['id'] == notificacion_id), None)
        if not anterior:
            raise ErrorNoEncontrado('Notificación no encontrada')
        # Los campos no enviados conservan su valor actual
        completos = {campo: datos.get(campo, anterior[campo])
                     for campo in ('activa', 'enviar_email', 'enviar_sistema', 'asunto_email')}
        for campo in ('activa', 'enviar_email', 'enviar_sistema'):
            completos[campo] = 1 if completos[campo] else 0
        actualizada = self._config_repo.update_notificacion(notificacion_id, completos, usuario)
        for campo in ('activa', 'enviar_email', 'enviar_sistema'):
            actualizada[campo] = bool(actualizada[campo])
        return actualizada

    def probar_email(self, email_destino):
        remitentes = self._config_repo.get_valores_por_prefijo('email_')
        remitente = None
        if remitentes.get('email_from'):
            remitente = (remitentes.get('email_from_name') or 'CCAMEM', remitentes['email_from'])
        try:
            self._email_service.send_test_email(email_destino, remitente)
        except Exception as e:
            logger.error(f"Error al enviar email de prueba a {email_destino}: {e}")
            raise ErrorServicioExterno(f"Error al enviar email de prueba: {e}")
