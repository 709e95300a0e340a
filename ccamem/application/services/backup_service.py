# RUTA: ccamem/application/services/backup_service.py

import calendar
import logging
import os
import shutil
import threading
from datetime import datetime, timedelta

from flask import current_app
from werkzeug.utils import secure_filename

from ccamem.core.errors import ErrorNoEncontrado
from ccamem.utils.fechas import formatear_timestamp

logger = logging.getLogger(__name__)


def _dia_semana_domingo_cero(fecha):
    # 0 = domingo ... 6 = sábado
    return fecha.isoweekday() % 7


def _con_dia_del_mes(fecha, dia):
    ultimo = calendar.monthrange(fecha.year, fecha.month)[1]
    return fecha.replace(day=min(dia, ultimo))


def _mes_siguiente(fecha, dia):
    anio, mes = (fecha.year + 1, 1) if fecha.month == 12 else (fecha.year, fecha.month + 1)
    ultimo = calendar.monthrange(anio, mes)[1]
    return fecha.replace(year=anio, month=mes, day=min(dia, ultimo))


def calcular_proxima_ejecucion(frecuencia, hora=None, dia_semana=None, dia_mes=None, ahora=None):
    """
    Próxima ejecución programada de un respaldo.

    - diario: hoy a la hora indicada, o mañana si ya pasó.
    - semanal: el siguiente dia_semana (0 = domingo); nunca hoy.
    - mensual: el dia_mes de este mes, o del siguiente si ya pasó.
    """
    ahora = ahora or datetime.now()
    proxima = ahora
    if hora:
        horas, minutos = (int(p) for p in hora.split(':')[:2])
        proxima = proxima.replace(hour=horas, minute=minutos, second=0, microsecond=0)

    if frecuencia == 'diario':
        if proxima <= ahora:
            proxima += timedelta(days=1)
    elif frecuencia == 'semanal':
        objetivo = int(dia_semana or 0)
        dias = (objetivo - _dia_semana_domingo_cero(proxima) + 7) % 7 or 7
        proxima += timedelta(days=dias)
    elif frecuencia == 'mensual':
        dia = int(dia_mes or 1)
        proxima = _con_dia_del_mes(proxima, dia)
        if proxima <= ahora:
            proxima = _mes_siguiente(proxima, dia)
    return proxima


class BackupService:
    def __init__(self, backup_repository, audit_service, config):
        self._backup_repo = backup_repository
        self._audit_service = audit_service
        self._config = config

    def listar(self):
        return self._backup_repo.get_respaldos()

    def crear(self, datos, usuario):
        """Registra la configuración de un respaldo programado."""
        proxima = calcular_proxima_ejecucion(datos['frecuencia'], datos.get('hora_ejecucion'),
                                             datos.get('dia_semana'), datos.get('dia_mes'))
        datos['proximo_ejecucion'] = formatear_timestamp(proxima)
        nuevo_id = self._backup_repo.create_respaldo(datos, usuario)
        logger.info(f"Respaldo '{datos['nombre']}' configurado por {usuario.email}")
        return self._backup_repo.find_respaldo(nuevo_id)

    def ejecutar(self, respaldo_id, usuario):
        """
        Lanza el respaldo en un hilo y responde de inmediato con el nombre del archivo.
        No hay seguimiento de progreso: el resultado queda en la auditoría.
        """
        respaldo = self._backup_repo.find_respaldo(respaldo_id)
        if not respaldo:
            raise ErrorNoEncontrado('Respaldo no encontrado')

        nombre_base = secure_filename(respaldo['nombre']) or 'respaldo'
        nombre_archivo = f"respaldo_{nombre_base}_{datetime.now().strftime('%Y-%m-%dT%H-%M-%S')}"
        app = current_app._get_current_object()
        hilo = threading.Thread(target=self._proceso_respaldo, args=(app, respaldo, nombre_archivo, usuario), daemon=True)
        hilo.start()
        logger.info(f"Respaldo manual {respaldo_id} iniciado por {usuario.email}: {nombre_archivo}")
        return nombre_archivo

    def _proceso_respaldo(self, app, respaldo, nombre_archivo, usuario):
        with app.app_context():
            try:
                archivos = self.generar_archivos(respaldo, nombre_archivo)
                proxima = calcular_proxima_ejecucion(respaldo['frecuencia'], respaldo.get('hora_ejecucion'),
                                                     respaldo.get('dia_semana'), respaldo.get('dia_mes'))
                self._backup_repo.marcar_ejecucion(respaldo['id'], formatear_timestamp(proxima))
                self._audit_service.log('respaldo_ejecutado', 'configuracion',
                                        f"Respaldo completado: {nombre_archivo}", usuario=usuario,
                                        datos_nuevos={'archivos': archivos})
                logger.info(f"Respaldo {nombre_archivo} completado: {archivos}")
            except Exception as e:
                logger.error(f"Error en el respaldo {nombre_archivo}: {e}", exc_info=True)
                try:
                    self._audit_service.log('respaldo_error', 'configuracion', f"Error en respaldo: {nombre_archivo}",
                                            usuario=usuario, resultado='error', mensaje_error=str(e))
                except Exception as audit_error:
                    logger.error(f"No se pudo registrar el error del respaldo: {audit_error}")

    def generar_archivos(self, respaldo, nombre_archivo):
        """Escribe el volcado de la base de datos y/o el .tar.gz de los documentos."""
        destino = respaldo.get('ruta_destino') or self._config['BACKUP_FOLDER']
        os.makedirs(destino, exist_ok=True)
        archivos = []

        if respaldo.get('incluir_base_datos'):
            extension = '.db' if self._config.get('DB_ENGINE') == 'sqlite' else '.bak'
            ruta_db = os.path.abspath(os.path.join(destino, f"{nombre_archivo}{extension}"))
            archivos.append(self._backup_repo.run_db_backup(self._config, ruta_db))

        if respaldo.get('incluir_documentos'):
            uploads = self._config['UPLOAD_FOLDER']
            os.makedirs(uploads, exist_ok=True)
            base = os.path.join(destino, f"{nombre_archivo}_docs")
            archivos.append(shutil.make_archive(base, 'gztar', root_dir=uploads))

        return archivos
