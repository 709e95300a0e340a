# RUTA: ccamem/presentation/routes/upload_routes.py
"""
Rutas para la digitalización de expedientes: carga, consulta, descarga y
eliminación de documentos.
"""

import logging

from flask import Blueprint, current_app, g, jsonify, request, send_file

from ccamem.core.errors import ErrorValidacion
from ccamem.decorators import role_required, token_required

logger = logging.getLogger(__name__)

upload_bp = Blueprint('uploads', __name__, url_prefix='/api/uploads')

CAMPOS_DOCUMENTO = ('nombre', 'descripcion', 'tipo_documento', 'fecha_documento', 'numero_hojas')


def _documento_service():
    return current_app.config['DOCUMENTO_SERVICE']


@upload_bp.route('/expediente/<int:expediente_id>/documento', methods=['POST'])
@token_required
@role_required('admin', 'usuario')
def subir_documento(expediente_id):
    archivo = request.files.get('archivo')
    if not archivo or not archivo.filename:
        raise ErrorValidacion('No se proporcionó ningún archivo')

    datos = {k: request.form.get(k) for k in CAMPOS_DOCUMENTO}
    documento, info_archivo = _documento_service().subir(expediente_id, archivo, datos, g.usuario)
    return jsonify({
        'success': True,
        'message': 'Documento subido exitosamente',
        'data': {'documento': documento, 'archivo': info_archivo},
    }), 201


@upload_bp.route('/expediente/<int:expediente_id>/documentos', methods=['POST'])
@token_required
@role_required('admin', 'usuario')
def subir_documentos(expediente_id):
    archivos = [a for a in request.files.getlist('archivos') if a and a.filename]
    resultado = _documento_service().subir_varios(expediente_id, archivos, g.usuario)
    subidos = len(resultado['documentos'])
    return jsonify({
        'success': subidos > 0,
        'message': f"{subidos} de {len(archivos)} archivos subidos exitosamente",
        'data': resultado,
    }), 201 if subidos else 400


@upload_bp.route('/expediente/<int:expediente_id>/documentos', methods=['GET'])
@token_required
def listar_documentos(expediente_id):
    return jsonify({'success': True, 'data': _documento_service().listar(expediente_id)})


@upload_bp.route('/documento/<int:documento_id>/descargar', methods=['GET'])
@token_required
def descargar_documento(documento_id):
    documento, ruta = _documento_service().obtener_para_descarga(documento_id)
    logger.info(f"Documento {documento_id} descargado por {g.usuario.email}")
    return send_file(
        ruta,
        mimetype=documento.get('mime_type') or 'application/octet-stream',
        as_attachment=True,
        download_name=documento.get('nombre_original') or documento['archivo_digital'],
    )


@upload_bp.route('/documento/<int:documento_id>', methods=['DELETE'])
@token_required
@role_required('admin', 'usuario')
def eliminar_documento(documento_id):
    _documento_service().eliminar(documento_id, g.usuario)
    return jsonify({'success': True, 'message': 'Documento eliminado exitosamente'})
