# RUTA: ccamem/application/services/file_validation_service.py
# Servicio de validación segura de archivos

import logging
import os
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


class FileValidationService:
    """
    Valida los archivos digitalizados en tres pasos: extensión no prohibida,
    tipo MIME declarado dentro de la lista permitida y, cuando el formato lo
    permite, Magic Number (primeros bytes) coherente con el tipo declarado.

    Ejemplo:
    - Archivo "malware.exe" rebautizado como "documento.pdf"
    - El MIME declarado dice PDF, pero el Magic Number no es '%PDF'
    """

    # Magic Numbers por tipo MIME
    MAGIC_NUMBERS = {
        'application/pdf': [b'%PDF'],
        'image/jpeg': [b'\xFF\xD8\xFF'],
        'image/jpg': [b'\xFF\xD8\xFF'],
        'image/png': [b'\x89PNG\r\n\x1a\n'],
        # Formatos OOXML (ZIP)
        'application/vnd.openxmlformats-officedocument.wordprocessingml.document': [b'PK\x03\x04'],
        'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet': [b'PK\x03\x04'],
        # Formatos binarios de Office (OLE2)
        'application/msword': [b'\xD0\xCF\x11\xE0\xA1\xB1\x1A\xE1'],
        'application/vnd.ms-excel': [b'\xD0\xCF\x11\xE0\xA1\xB1\x1A\xE1'],
    }

    # Extensiones no permitidas (por seguridad)
    FORBIDDEN_EXTENSIONS = {
        'exe', 'com', 'bat', 'cmd', 'pif', 'scr',  # Ejecutables Windows
        'app', 'sh', 'bash', 'elf',                 # Ejecutables Linux/Mac
        'jar', 'class',                             # Java
        'vbs', 'js', 'ps1',                         # Scripts
        'dll', 'so', 'dylib',                       # Librerías dinámicas
        'zip', 'rar', '7z',                         # Compresores
        'iso',                                      # Imágenes de disco
    }

    @staticmethod
    def validate_file(file_obj, allowed_mime_types, max_size) -> Tuple[bool, Optional[str], bool]:
        """
        Valida un archivo de request.files.

        Returns:
            (valido, mensaje_error, excede_tamano)
        """
        # 1. Validar que existe archivo
        if not file_obj or not file_obj.filename:
            return False, "No se seleccionó archivo", False

        filename = file_obj.filename.lower()
        ext = filename.rsplit('.', 1)[-1] if '.' in filename else ''

        # 2. Validar extensión no prohibida
        if ext in FileValidationService.FORBIDDEN_EXTENSIONS:
            logger.warning(f"SEGURIDAD: Intento de subir archivo prohibido: {filename}")
            return False, f"Tipo de archivo no permitido: {ext}", False

        # 3. Validar MIME declarado
        mimetype = (file_obj.mimetype or '').lower()
        if mimetype not in allowed_mime_types:
            logger.warning(f"SEGURIDAD: Tipo MIME rechazado: {mimetype} ({filename})")
            return False, f"Tipo de archivo no permitido: {mimetype or 'desconocido'}", False

        # 4. Leer primeros bytes del archivo
        file_obj.seek(0)
        file_header = file_obj.read(1024)
        file_obj.seek(0)

        if not file_header:
            return False, "Archivo vacío", False

        # 5. Magic Number coherente con el MIME declarado
        firmas = FileValidationService.MAGIC_NUMBERS.get(mimetype)
        if firmas and not any(file_header.startswith(firma) for firma in firmas):
            logger.warning(f"SEGURIDAD: Magic Number no coincide - Nombre: {filename}, MIME: {mimetype}")
            return False, "El contenido del archivo no corresponde a su tipo", False

        # 6. Validar tamaño
        file_obj.seek(0, os.SEEK_END)
        file_size = file_obj.tell()
        file_obj.seek(0)
        if file_size > max_size:
            mb_limit = max_size / (1024 * 1024)
            return False, f"Archivo demasiado grande (máx {int(mb_limit)} MB)", True

        if mimetype == 'application/pdf':
            return FileValidationService._validate_pdf(file_header) + (False,)

        return True, None, False

    @staticmethod
    def _validate_pdf(file_bytes: bytes) -> Tuple[bool, Optional[str]]:
        """
        Validaciones adicionales específicas para PDF.
        """
        # Verificar que no contiene javascript (vulnerabilidad común)
        if b'/JavaScript' in file_bytes or b'/JS ' in file_bytes:
            logger.warning("SEGURIDAD: PDF contiene JavaScript (potencial malware)")
            return False, "PDF contiene contenido potencialmente peligroso"
        return True, None
