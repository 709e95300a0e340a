# RUTA: ccamem/application/services/monitoring_service.py

import logging
import os
import platform
import time

import psutil

logger = logging.getLogger(__name__)


class MonitoringService:
    """Información del servidor, la base de datos y el almacenamiento de documentos."""

    def __init__(self, configuracion_repository, config):
        self._config_repo = configuracion_repository
        self._config = config

    def get_system_metrics(self):
        """
        Obtiene métricas del sistema operativo:
        - Plataforma y versión de Python
        - Uso de CPU
        - Memoria RAM total y disponible
        """
        memory = psutil.virtual_memory()
        return {
            'plataforma': platform.system().lower(),
            'arquitectura': platform.machine(),
            'version_python': platform.python_version(),
            'cpus': psutil.cpu_count(),
            'cpu_percent': psutil.cpu_percent(interval=None),
            'memoria_total': memory.total,
            'memoria_libre': memory.available,
            'memoria_percent': memory.percent,
            'cpu_status': self._get_health_status(psutil.cpu_percent(interval=None), 80, 95),
            'ram_status': self._get_health_status(memory.percent, 80, 95),
            'uptime': int(time.time() - psutil.boot_time()),
        }

    def get_storage_metrics(self):
        """Espacio del disco donde vive la carpeta de documentos."""
        uploads = self._config['UPLOAD_FOLDER']
        ruta = uploads if os.path.exists(uploads) else os.path.dirname(os.path.abspath(uploads))
        try:
            disk = psutil.disk_usage(ruta)
        except OSError as e:
            logger.error(f"Error obteniendo espacio en disco de {ruta}: {e}")
            return {'total': 0, 'usado': 0, 'disponible': 0, 'disk_status': 'desconocido'}
        return {
            'total': disk.total,
            'usado': disk.used,
            'disponible': disk.free,
            'disk_percent': disk.percent,
            'disk_status': self._get_health_status(disk.percent, 80, 90),
        }

    def info_sistema(self):
        return {
            'base_datos': self._config_repo.get_database_info(),
            'servidor': self.get_system_metrics(),
            'almacenamiento': self.get_storage_metrics(),
        }

    def _get_health_status(self, percent, warning_threshold=80, critical_threshold=95):
        """Determina el estado de salud basado en un porcentaje."""
        if percent >= critical_threshold:
            return 'crítico'
        elif percent >= warning_threshold:
            return 'advertencia'
        else:
            return 'bueno'
