# RUTA: ccamem/application/services/siser_service.py

import io
import logging
import os
import time

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font, PatternFill

from ccamem.core.errors import ErrorArchivo, ErrorServicioExterno, ErrorValidacion
from ccamem.infrastructure.siser.base import ErrorEnvio, RegistroSiser, SubmitterNotReady
from ccamem.utils.fechas import formatear_dd_mm_yyyy

logger = logging.getLogger(__name__)

LIMITE_CARGA_DB = 100
LIMITE_CARGA_DB_DEFECTO = 50
EXTENSIONES_EXCEL = ('.xlsx',)

COLUMNAS_PLANTILLA = [('Clave', 20), ('Nombre', 50), ('Legajos', 10), ('Hojas', 10), ('Inicio', 15), ('Fin', 15)]
EJEMPLOS_PLANTILLA = [
    ('CCAMEM/001/2025', 'Expediente de ejemplo', 1, 50, '01/01/2025', '31/12/2025'),
    ('CCAMEM/002/2025', 'Otro expediente de ejemplo', 2, 100, '15/01/2025', '15/06/2025'),
]
INSTRUCCIONES = [
    'INSTRUCCIONES PARA CARGA A SISER',
    '',
    '1. Complete los datos en la hoja "Expedientes SISER"',
    '2. Clave: Número único del expediente',
    '3. Nombre: Descripción del expediente',
    '4. Legajos: Número de legajos (mínimo 1)',
    '5. Hojas: Número total de hojas',
    '6. Inicio: Fecha del primer documento (DD/MM/AAAA)',
    '7. Fin: Fecha del último documento (DD/MM/AAAA)',
    '',
    'IMPORTANTE:',
    '- No modifique los nombres de las columnas',
    '- Las fechas deben estar en formato DD/MM/AAAA',
    '- Todos los campos son obligatorios',
]


def _entero(valor, defecto=1):
    try:
        numero = int(valor)
    except (TypeError, ValueError):
        return defecto
    return numero if numero > 0 else defecto


class SiserService:
    """
    Carga de expedientes al portal SISER de la Secretaría de la Contraloría.

    Cada expediente se envía por separado con reintentos y espera exponencial.
    No hay transacción entre registros: los ya enviados no se deshacen.
    """

    def __init__(self, submitter_factory, expediente_repository, config):
        self._submitter_factory = submitter_factory
        self._expediente_repo = expediente_repository
        self._config = config

    def credenciales_configuradas(self):
        return bool(self._config.get('SISER_EMAIL') and self._config.get('SISER_PASSWORD'))

    def _exigir_credenciales(self):
        if not self.credenciales_configuradas():
            raise ErrorServicioExterno('Credenciales SISER no configuradas')

    def estado(self):
        configuracion = {'email': self._config.get('SISER_EMAIL'), 'url': self._config['SISER_URL']}
        if not self.credenciales_configuradas():
            return {'disponible': False, 'mensaje': 'Credenciales SISER no configuradas',
                    'configuracion': configuracion}
        disponible = self._submitter_factory().verificar_portal()
        mensaje = 'SISER está disponible y accesible' if disponible else 'SISER no está accesible'
        return {'disponible': disponible, 'mensaje': mensaje, 'configuracion': configuracion}

    def plantilla(self):
        wb = Workbook()
        ws = wb.active
        ws.title = 'Expedientes SISER'
        ws.append([titulo for titulo, _ in COLUMNAS_PLANTILLA])
        for col, (_, ancho) in enumerate(COLUMNAS_PLANTILLA, start=1):
            celda = ws.cell(row=1, column=col)
            celda.font = Font(bold=True)
            celda.fill = PatternFill(start_color="E0E0E0", end_color="E0E0E0", fill_type="solid")
            ws.column_dimensions[celda.column_letter].width = ancho
        for ejemplo in EJEMPLOS_PLANTILLA:
            ws.append(list(ejemplo))

        instrucciones = wb.create_sheet('Instrucciones')
        instrucciones.column_dimensions['A'].width = 80
        for linea in INSTRUCCIONES:
            instrucciones.append([linea])
        instrucciones['A1'].font = Font(bold=True, size=14)
        instrucciones['A11'].font = Font(bold=True)

        output = io.BytesIO()
        wb.save(output)
        output.seek(0)
        return output

    def leer_excel(self, archivo):
        """Lee la primera hoja; omite las filas sin clave, nombre o fechas válidas."""
        extension = os.path.splitext(archivo.filename or '')[1].lower()
        if extension not in EXTENSIONES_EXCEL:
            raise ErrorArchivo('Solo se permiten archivos Excel (.xlsx)')
        try:
            wb = load_workbook(archivo.stream, read_only=True, data_only=True)
        except Exception as e:
            logger.warning(f"Archivo Excel ilegible '{archivo.filename}': {e}")
            raise ErrorArchivo('El archivo Excel no se pudo leer')

        registros = []
        try:
            ws = wb.worksheets[0]
            for numero_fila, fila in enumerate(ws.iter_rows(min_row=2, values_only=True), start=2):
                celdas = (list(fila) + [None] * 6)[:6]
                clave, nombre, legajos, hojas, inicio, fin = celdas
                fecha_inicio, fecha_fin = formatear_dd_mm_yyyy(inicio), formatear_dd_mm_yyyy(fin)
                if not (clave and nombre and fecha_inicio and fecha_fin):
                    logger.info(f"Fila {numero_fila} omitida por datos incompletos")
                    continue
                registros.append(RegistroSiser(
                    clave=str(clave).strip(), nombre=str(nombre).strip(),
                    legajos=_entero(legajos), hojas=_entero(hojas),
                    fecha_inicio=fecha_inicio, fecha_fin=fecha_fin,
                ))
        finally:
            wb.close()
        return registros

    def cargar_desde_excel(self, archivo):
        self._exigir_credenciales()
        registros = self.leer_excel(archivo)
        if not registros:
            raise ErrorValidacion('No se encontraron expedientes válidos en el archivo')
        logger.info(f"Iniciando carga a SISER de {len(registros)} expedientes desde Excel")
        return self._procesar(registros)

    def cargar_desde_db(self, filtros, limite=None):
        self._exigir_credenciales()
        try:
            limite = int(limite) if limite not in (None, '') else LIMITE_CARGA_DB_DEFECTO
        except ValueError:
            raise ErrorValidacion('El límite debe ser un número entero')
        limite = max(1, min(limite, LIMITE_CARGA_DB))

        registros = []
        for exp in self._expediente_repo.get_para_siser(filtros, limite):
            registros.append(RegistroSiser(
                id=exp['id'],
                clave=exp['numero_expediente'],
                nombre=exp['nombre'],
                legajos=_entero(exp.get('numero_legajos')),
                hojas=_entero(exp.get('total_hojas')),
                fecha_inicio=formatear_dd_mm_yyyy(exp['fecha_apertura']),
                fecha_fin=formatear_dd_mm_yyyy(exp.get('fecha_cierre') or exp['fecha_apertura']),
            ))
        if not registros:
            raise ErrorValidacion('No se encontraron expedientes para cargar')
        logger.info(f"Iniciando carga a SISER de {len(registros)} expedientes desde la base de datos")
        return self._procesar(registros)

    def _enviar_con_reintentos(self, submitter, registro):
        intentos = max(1, int(self._config.get('SISER_MAX_REINTENTOS', 3)))
        backoff = float(self._config.get('SISER_BACKOFF_SEGUNDOS', 2))
        for intento in range(1, intentos + 1):
            try:
                submitter.submit(registro)
                return {'success': True, 'id': registro.id, 'clave': registro.clave, 'intentos': intento}
            except ErrorEnvio as e:
                logger.warning(f"Intento {intento}/{intentos} fallido para {registro.clave}: {e}")
                if intento == intentos:
                    return {'success': False, 'id': registro.id, 'clave': registro.clave,
                            'intentos': intento, 'error': str(e)}
                time.sleep(backoff * (2 ** (intento - 1)))
            except Exception as e:
                # Error no previsto del navegador: el registro falla sin reintento y la carga continúa
                logger.exception(f"Error inesperado al enviar {registro.clave} a SISER")
                return {'success': False, 'id': registro.id, 'clave': registro.clave,
                        'intentos': intento, 'error': f"Error inesperado: {e}"}

    def _procesar(self, registros):
        pausa = float(self._config.get('SISER_PAUSA_SEGUNDOS', 2))
        detalles = []
        try:
            with self._submitter_factory() as submitter:
                for indice, registro in enumerate(registros):
                    if indice:
                        time.sleep(pausa)
                    detalles.append(self._enviar_con_reintentos(submitter, registro))
        except SubmitterNotReady as e:
            logger.error(f"SISER no disponible: {e}")
            raise ErrorServicioExterno(str(e))

        exitosos = sum(1 for d in detalles if d['success'])
        logger.info(f"Carga a SISER terminada: {exitosos} exitosos, {len(detalles) - exitosos} fallidos")
        return {
            'exitosos': exitosos,
            'fallidos': len(detalles) - exitosos,
            'total': len(detalles),
            'detalles': detalles,
        }
