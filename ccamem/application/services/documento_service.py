# RUTA: ccamem/application/services/documento_service.py

import logging
import os
import secrets
from datetime import datetime

from werkzeug.utils import secure_filename

from ccamem.application.services.file_validation_service import FileValidationService
from ccamem.core.errors import ErrorArchivo, ErrorNoEncontrado, ErrorPermiso, ErrorValidacion, TipoError

logger = logging.getLogger(__name__)


class DocumentoService:
    """Digitalización: guarda el archivo en disco y su metadato en la tabla documentos."""

    def __init__(self, documento_repository, expediente_repository, config):
        self._documento_repo = documento_repository
        self._expediente_repo = expediente_repository
        self._config = config

    @property
    def upload_folder(self):
        return self._config['UPLOAD_FOLDER']

    def _nombre_unico(self, filename):
        base, ext = os.path.splitext(filename)
        base = secure_filename(base) or 'documento'
        timestamp = datetime.now().strftime('%Y%m%d%H%M%S')
        return f"{base}-{timestamp}-{secrets.token_hex(4)}{ext.lower()}"

    def _eliminar_archivo(self, ruta):
        try:
            os.remove(ruta)
        except FileNotFoundError:
            logger.warning(f"El archivo físico ya no existe: {ruta}")
        except OSError as e:
            logger.error(f"No se pudo eliminar el archivo {ruta}: {e}")

    def _validar(self, archivo):
        valido, error, excede = FileValidationService.validate_file(
            archivo, self._config['ALLOWED_MIME_TYPES'], self._config['MAX_FILE_SIZE'])
        if not valido:
            if excede:
                raise ErrorArchivo(error, tipo=TipoError.ARCHIVO_DEMASIADO_GRANDE)
            raise ErrorArchivo(error)

    def subir(self, expediente_id, archivo, datos, usuario):
        """
        Valida y guarda un archivo. Si el expediente no existe o falla el
        INSERT, el archivo escrito se elimina y el error se propaga.
        """
        self._validar(archivo)
        numero_hojas = self._numero_hojas(datos.get('numero_hojas'))

        os.makedirs(self.upload_folder, exist_ok=True)
        nombre_guardado = self._nombre_unico(archivo.filename)
        ruta = os.path.join(self.upload_folder, nombre_guardado)
        archivo.save(ruta)
        tamano = os.path.getsize(ruta)

        registro = {
            'nombre': (datos.get('nombre') or archivo.filename).strip(),
            'descripcion': datos.get('descripcion') or None,
            'tipo_documento': datos.get('tipo_documento') or None,
            'fecha_documento': datos.get('fecha_documento') or None,
            'numero_hojas': numero_hojas,
            'archivo_digital': nombre_guardado,
            'nombre_original': archivo.filename,
            'mime_type': archivo.mimetype,
            'tamano_bytes': tamano,
        }
        try:
            documento = self._documento_repo.create(expediente_id, registro, usuario.id)
        except Exception:
            self._eliminar_archivo(ruta)
            raise

        logger.info(f"Documento {nombre_guardado} agregado al expediente {expediente_id} por {usuario.email}")
        info_archivo = {
            'nombre_original': archivo.filename,
            'nombre_guardado': nombre_guardado,
            'tamano': tamano,
            'mime_type': archivo.mimetype,
        }
        return documento, info_archivo

    def _numero_hojas(self, valor):
        if valor in (None, ''):
            return 1
        try:
            hojas = int(valor)
        except (TypeError, ValueError):
            raise ErrorValidacion('El número de hojas debe ser un entero')
        if hojas < 1:
            raise ErrorValidacion('El número de hojas debe ser al menos 1')
        return hojas

    def subir_varios(self, expediente_id, archivos, usuario):
        """Carga múltiple: cada archivo se procesa por separado y se informa su resultado."""
        if not archivos:
            raise ErrorValidacion('No se recibieron archivos')
        maximo = self._config.get('MAX_FILES_PER_REQUEST', 10)
        if len(archivos) > maximo:
            raise ErrorValidacion(f"Máximo {maximo} archivos por carga")
        self.verificar_expediente(expediente_id)

        subidos, errores = [], []
        for archivo in archivos:
            try:
                documento, _ = self.subir(expediente_id, archivo, {}, usuario)
                subidos.append(documento)
            except (ErrorArchivo, ErrorValidacion) as e:
                errores.append({'archivo': archivo.filename, 'error': e.mensaje})
        return {'documentos': subidos, 'errores': errores}

    def verificar_expediente(self, expediente_id):
        if not self._expediente_repo.find_by_id(expediente_id):
            raise ErrorNoEncontrado('Expediente no encontrado')

    def listar(self, expediente_id):
        self.verificar_expediente(expediente_id)
        return self._documento_repo.find_by_expediente(expediente_id)

    def obtener_para_descarga(self, documento_id):
        documento = self._documento_repo.find_by_id(documento_id)
        if not documento:
            raise ErrorNoEncontrado('Documento no encontrado')
        ruta = os.path.join(self.upload_folder, documento['archivo_digital'])
        if not os.path.exists(ruta):
            logger.error(f"Archivo físico no encontrado para el documento {documento_id}: {ruta}")
            raise ErrorNoEncontrado('Archivo físico no encontrado')
        return documento, os.path.abspath(ruta)

    def eliminar(self, documento_id, usuario):
        """Solo el administrador o quien subió el documento puede eliminarlo."""
        documento = self._documento_repo.find_by_id(documento_id)
        if not documento:
            raise ErrorNoEncontrado('Documento no encontrado')
        if not usuario.es_admin and documento['created_by'] != usuario.id:
            raise ErrorPermiso('No tiene permisos para eliminar este documento')

        self._documento_repo.delete(documento_id, usuario.id)
        self._eliminar_archivo(os.path.join(self.upload_folder, documento['archivo_digital']))
        logger.info(f"Documento {documento_id} eliminado por {usuario.email}")
        return documento
