# RUTA: ccamem/presentation/routes/siser_routes.py

from flask import Blueprint, current_app, g, jsonify, request, send_file

from ccamem.core.errors import ErrorValidacion
from ccamem.decorators import role_required, token_required

siser_bp = Blueprint('siser', __name__, url_prefix='/api/siser')


def _siser_service():
    return current_app.config['SISER_SERVICE']


@siser_bp.route('/estado', methods=['GET'])
@token_required
@role_required('admin')
def verificar_estado():
    return jsonify(_siser_service().estado())


@siser_bp.route('/plantilla', methods=['GET'])
@token_required
@role_required('admin')
def plantilla():
    return send_file(
        _siser_service().plantilla(),
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        as_attachment=True,
        download_name='plantilla_siser.xlsx',
    )


@siser_bp.route('/cargar-excel', methods=['POST'])
@token_required
@role_required('admin')
def cargar_desde_excel():
    archivo = request.files.get('archivo')
    if not archivo or not archivo.filename:
        raise ErrorValidacion('No se proporcionó archivo Excel')
    current_app.logger.info(f"Carga a SISER desde Excel iniciada por {g.usuario.email}")
    resultados = _siser_service().cargar_desde_excel(archivo)
    return jsonify({'success': True, 'message': 'Carga a SISER completada', 'resultados': resultados})


@siser_bp.route('/cargar-db', methods=['POST'])
@token_required
@role_required('admin')
def cargar_desde_db():
    filtros = {'area_id': request.args.get('area_id'), 'fecha_inicio': request.args.get('fecha_inicio')}
    current_app.logger.info(f"Carga a SISER desde la base de datos iniciada por {g.usuario.email}")
    resultados = _siser_service().cargar_desde_db(filtros, request.args.get('limite'))
    return jsonify({'success': True, 'message': 'Carga a SISER completada', 'resultados': resultados})
