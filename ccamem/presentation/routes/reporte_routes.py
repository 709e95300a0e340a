# RUTA: ccamem/presentation/routes/reporte_routes.py

import logging
from datetime import datetime

from flask import Blueprint, current_app, g, request, send_file

from ccamem.core.errors import ErrorValidacion
from ccamem.decorators import token_required
from ccamem.presentation.routes.expediente_routes import filtros_expedientes

logger = logging.getLogger(__name__)

reporte_bp = Blueprint('reportes', __name__, url_prefix='/api/reportes')

MIME_EXCEL = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def _reporte_service():
    return current_app.config['REPORTE_SERVICE']


def _nombre_con_fecha(extension):
    return f"expedientes_{datetime.now().strftime('%Y-%m-%d')}.{extension}"


@reporte_bp.route('/excel', methods=['GET'])
@token_required
def reporte_excel():
    stream = _reporte_service().generar_excel(filtros_expedientes(request.args))
    logger.info(f"Reporte Excel descargado por {g.usuario.email}")
    return send_file(stream, mimetype=MIME_EXCEL, as_attachment=True, download_name=_nombre_con_fecha('xlsx'))


@reporte_bp.route('/pdf', methods=['GET'])
@token_required
def reporte_pdf():
    stream = _reporte_service().generar_pdf(filtros_expedientes(request.args))
    logger.info(f"Reporte PDF descargado por {g.usuario.email}")
    return send_file(stream, mimetype='application/pdf', as_attachment=True, download_name=_nombre_con_fecha('pdf'))


@reporte_bp.route('/xml', methods=['GET'])
@token_required
def reporte_xml():
    stream = _reporte_service().generar_xml(filtros_expedientes(request.args))
    logger.info(f"Reporte XML descargado por {g.usuario.email}")
    return send_file(stream, mimetype='application/xml', as_attachment=True, download_name=_nombre_con_fecha('xml'))


@reporte_bp.route('/inventario-general', methods=['GET'])
@token_required
def inventario_general():
    year = request.args.get('year', default=datetime.now().year, type=int)
    if year is None or not 1900 <= year <= 2100:
        raise ErrorValidacion('El año indicado no es válido')
    stream = _reporte_service().generar_inventario_general(year)
    return send_file(stream, mimetype=MIME_EXCEL, as_attachment=True,
                     download_name=f"inventario_general_archivo_{year}.xlsx")
