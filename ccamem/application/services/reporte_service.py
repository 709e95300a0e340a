# RUTA: ccamem/application/services/reporte_service.py

import io
import json
import logging
import xml.etree.ElementTree as ET
from collections import Counter
from datetime import datetime

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ccamem.domain.models.catalogos import etiqueta
from ccamem.utils.fechas import formatear_dd_mm_yyyy

logger = logging.getLogger(__name__)

LIMITE_EXCEL = 10000
LIMITE_XML = 10000
LIMITE_PDF = 100

INSTITUCION = 'COMISIÓN DE CONCILIACIÓN Y ARBITRAJE MÉDICO DEL ESTADO DE MÉXICO'
XML_NAMESPACE = 'http://ccamem.gob.mx/archivo'
FIRMAS_POR_DEFECTO = ['RESPONSABLE DEL ARCHIVO', 'TITULAR DE LA UNIDAD ADMINISTRATIVA']

# (encabezado, clave, ancho)
COLUMNAS_EXCEL = [
    ('No. Expediente', 'numero_expediente', 20),
    ('Nombre', 'nombre', 40),
    ('Asunto', 'asunto', 50),
    ('Área', 'area_nombre', 30),
    ('Sección', 'seccion_codigo', 10),
    ('Nombre Sección', 'seccion_nombre', 40),
    ('Serie', 'serie_codigo', 10),
    ('Nombre Serie', 'serie_nombre', 40),
    ('Legajos', 'numero_legajos', 10),
    ('Hojas', 'total_hojas', 10),
    ('Fecha Apertura', 'fecha_apertura', 15),
    ('Fecha Cierre', 'fecha_cierre', 15),
    ('Estado', 'estado', 15),
    ('Ubicación Física', 'ubicacion_fisica', 25),
    ('Clasificación', 'clasificacion_informacion', 15),
    ('Destino Final', 'destino_final', 15),
    ('Observaciones', 'observaciones', 40),
    ('Creado Por', 'creado_por_nombre', 20),
    ('Fecha Creación', 'created_at', 20),
]

COLUMNAS_INVENTARIO = [
    ('NO. PROGRESIVO', 12),
    ('NO. DEL EXPEDIENTE', 20),
    ('SECCIÓN Y/O SUBSECCIÓN', 40),
    ('SERIE Y/O SUBSERIE DOCUMENTAL', 40),
    ('FÓRMULA CLASIFICADORA', 15),
    ('NOMBRE DEL EXPEDIENTE', 50),
    ('TOTAL DE LEGAJOS', 10),
    ('TOTAL DE DOCS', 10),
    ('FECHA DE LOS DOCUMENTOS (APERTURA)', 14),
    ('FECHA DE LOS DOCUMENTOS (CIERRE)', 14),
    ('UBICACIÓN FÍSICA DEL ARCHIVO', 25),
    ('OBSERVACIONES', 30),
]

HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="0D47A1", end_color="0D47A1", fill_type="solid")
BORDE_FINO = Border(left=Side(style='thin'), right=Side(style='thin'), top=Side(style='thin'), bottom=Side(style='thin'))


def _texto(valor):
    return '' if valor is None else str(valor)


def _codigo_nombre(codigo, nombre):
    return ' '.join(p for p in (codigo, nombre) if p)


class ReporteService:
    """Genera los reportes de expedientes en Excel, PDF y XML como flujos en memoria."""

    def __init__(self, expediente_repository, configuracion_repository):
        self._expediente_repo = expediente_repository
        self._configuracion_repo = configuracion_repository

    def _guardar(self, wb):
        excel_stream = io.BytesIO()
        wb.save(excel_stream)
        excel_stream.seek(0)
        return excel_stream

    # --- EXCEL ---

    def generar_excel(self, filtros):
        expedientes = self._expediente_repo.get_for_report(filtros, LIMITE_EXCEL)
        wb = Workbook()
        ws = wb.active
        ws.title = "Expedientes"

        ws.append([encabezado for encabezado, _, _ in COLUMNAS_EXCEL])
        for cell in ws[1]:
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.alignment = Alignment(horizontal="center", vertical="center")

        for exp in expedientes:
            fila = []
            for _, clave, _ in COLUMNAS_EXCEL:
                valor = exp.get(clave)
                if clave in ('estado', 'clasificacion_informacion', 'destino_final'):
                    valor = etiqueta(valor)
                fila.append(valor)
            ws.append(fila)

        for i, (_, _, ancho) in enumerate(COLUMNAS_EXCEL, 1):
            ws.column_dimensions[get_column_letter(i)].width = ancho
        ws.auto_filter.ref = ws.dimensions
        ws.freeze_panes = 'A2'

        self._hoja_resumen(wb, expedientes)
        logger.info(f"Reporte Excel generado con {len(expedientes)} expedientes")
        return self._guardar(wb)

    def _hoja_resumen(self, wb, expedientes):
        ws = wb.create_sheet("Resumen")
        ws.append(['RESUMEN DE EXPEDIENTES'])
        ws['A1'].font = Font(bold=True, size=14)
        ws.append([])
        ws.append(['Total de expedientes:', len(expedientes)])
        ws.append([])
        ws.append(['Por Estado:'])
        for estado, total in sorted(Counter(e.get('estado') for e in expedientes).items()):
            ws.append(['', etiqueta(estado), total])
        ws.append([])
        ws.append(['Por Área:'])
        for area, total in sorted(Counter(e.get('area_nombre') or 'Sin área' for e in expedientes).items()):
            ws.append(['', area, total])
        for fila in (3, 5):
            ws.cell(row=fila, column=1).font = Font(bold=True)
        ws.column_dimensions['A'].width = 25
        ws.column_dimensions['B'].width = 40

    # --- PDF ---

    def generar_pdf(self, filtros):
        expedientes = self._expediente_repo.get_for_report(filtros, LIMITE_PDF)
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=landscape(LETTER), topMargin=0.5 * inch,
                                leftMargin=0.5 * inch, rightMargin=0.5 * inch)

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle('Titulo', parent=styles['Heading1'], fontSize=14,
                                     textColor=colors.HexColor('#0D47A1'), alignment=1)
        subtitle_style = ParagraphStyle('Subtitulo', parent=styles['Heading2'], fontSize=12, alignment=1)
        celda_style = ParagraphStyle('Celda', parent=styles['Normal'], fontSize=7, leading=9)

        story = [
            Paragraph(INSTITUCION, title_style),
            Paragraph("Reporte de Expedientes", subtitle_style),
            Paragraph(f"Fecha de generación: {datetime.now().strftime('%d/%m/%Y %H:%M')}", styles['Normal']),
            Spacer(1, 12),
        ]

        data = [['#', 'No. Expediente', 'Nombre', 'Área', 'Serie', 'Legajos', 'Hojas', 'Apertura', 'Estado']]
        for index, exp in enumerate(expedientes, 1):
            data.append([
                str(index),
                Paragraph(_texto(exp.get('numero_expediente')), celda_style),
                Paragraph(_texto(exp.get('nombre')), celda_style),
                Paragraph(_texto(exp.get('area_nombre')), celda_style),
                _texto(exp.get('serie_codigo')),
                _texto(exp.get('numero_legajos')),
                _texto(exp.get('total_hojas')),
                formatear_dd_mm_yyyy(exp.get('fecha_apertura')) or '',
                etiqueta(exp.get('estado')),
            ])

        tabla = Table(data, colWidths=[0.3 * inch, 1.4 * inch, 3.2 * inch, 1.8 * inch, 0.7 * inch,
                                       0.6 * inch, 0.6 * inch, 0.8 * inch, 0.7 * inch], repeatRows=1)
        tabla.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#0D47A1')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 7),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#E3F2FD')]),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ]))
        story.append(tabla)
        story.append(Spacer(1, 12))
        story.append(Paragraph(f"Total de expedientes: {len(expedientes)}", styles['Normal']))

        doc.build(story)
        buffer.seek(0)
        logger.info(f"Reporte PDF generado con {len(expedientes)} expedientes")
        return buffer

    # --- XML ---

    def generar_xml(self, filtros):
        expedientes = self._expediente_repo.get_for_report(filtros, LIMITE_XML)
        raiz = ET.Element('expedientes', {
            'xmlns': XML_NAMESPACE,
            'generado': datetime.now().isoformat(timespec='seconds'),
            'total': str(len(expedientes)),
        })
        for exp in expedientes:
            nodo = ET.SubElement(raiz, 'expediente', {'id': str(exp['id']), 'numero': exp['numero_expediente']})
            ET.SubElement(nodo, 'nombre').text = _texto(exp.get('nombre'))
            ET.SubElement(nodo, 'asunto').text = _texto(exp.get('asunto'))
            ET.SubElement(nodo, 'area', {'codigo': _texto(exp.get('area_codigo'))}).text = _texto(exp.get('area_nombre'))

            clasificacion = ET.SubElement(nodo, 'clasificacion')
            ET.SubElement(clasificacion, 'seccion', {'codigo': _texto(exp.get('seccion_codigo'))}).text = \
                _texto(exp.get('seccion_nombre'))
            ET.SubElement(clasificacion, 'serie', {'codigo': _texto(exp.get('serie_codigo'))}).text = \
                _texto(exp.get('serie_nombre'))

            datos = ET.SubElement(nodo, 'datos')
            for etiqueta_xml, clave in (('legajos', 'numero_legajos'), ('hojas', 'total_hojas'),
                                        ('fechaApertura', 'fecha_apertura'), ('fechaCierre', 'fecha_cierre'),
                                        ('estado', 'estado'), ('ubicacionFisica', 'ubicacion_fisica'),
                                        ('clasificacionInformacion', 'clasificacion_informacion'),
                                        ('destinoFinal', 'destino_final')):
                ET.SubElement(datos, etiqueta_xml).text = _texto(exp.get(clave))
            ET.SubElement(nodo, 'observaciones').text = _texto(exp.get('observaciones'))

        contenido = ET.tostring(raiz, encoding='utf-8', xml_declaration=True)
        logger.info(f"Reporte XML generado con {len(expedientes)} expedientes")
        return io.BytesIO(contenido)

    # --- INVENTARIO GENERAL ---

    def _firmas(self):
        valor = self._configuracion_repo.get_valores_por_prefijo('reportes_').get('reportes_pie_firmas')
        try:
            firmas = json.loads(valor) if valor else None
        except ValueError:
            logger.warning("reportes_pie_firmas no es un JSON válido, se usan las firmas por defecto")
            firmas = None
        return firmas or FIRMAS_POR_DEFECTO

    def generar_inventario_general(self, year):
        expedientes = self._expediente_repo.get_inventario(year)
        wb = Workbook()
        ws = wb.active
        ws.title = "INVENTARIO GENERAL"
        ultima_columna = get_column_letter(len(COLUMNAS_INVENTARIO))

        for fila, texto, tamano in ((1, INSTITUCION, 14), (2, 'INVENTARIO GENERAL DE ARCHIVO', 12), (3, f"AÑO {year}", 11)):
            ws.merge_cells(f"A{fila}:{ultima_columna}{fila}")
            celda = ws[f"A{fila}"]
            celda.value = texto
            celda.font = Font(bold=True, size=tamano)
            celda.alignment = Alignment(horizontal="center")

        fila_encabezado = 5
        for col, (encabezado, ancho) in enumerate(COLUMNAS_INVENTARIO, 1):
            celda = ws.cell(row=fila_encabezado, column=col, value=encabezado)
            celda.font = HEADER_FONT
            celda.fill = HEADER_FILL
            celda.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
            ws.column_dimensions[get_column_letter(col)].width = ancho

        for index, exp in enumerate(expedientes, 1):
            formula = exp.get('subserie_codigo') or exp.get('serie_codigo') or exp.get('seccion_codigo') or ''
            ws.append([
                index,
                exp.get('numero_expediente'),
                _codigo_nombre(exp.get('seccion_codigo'), exp.get('seccion_nombre')),
                _codigo_nombre(exp.get('serie_codigo'), exp.get('serie_nombre')),
                formula,
                exp.get('nombre'),
                exp.get('numero_legajos'),
                exp.get('total_hojas'),
                formatear_dd_mm_yyyy(exp.get('fecha_apertura')) or '',
                formatear_dd_mm_yyyy(exp.get('fecha_cierre')) or '',
                exp.get('ubicacion_fisica') or '',
                exp.get('observaciones') or '',
            ])

        ultima_fila = fila_encabezado + len(expedientes)
        for fila in ws.iter_rows(min_row=fila_encabezado, max_row=ultima_fila, max_col=len(COLUMNAS_INVENTARIO)):
            for celda in fila:
                celda.border = BORDE_FINO

        # Pie con firmas, repartidas en bloques iguales de columnas
        fila_firmas = ultima_fila + 3
        firmas = self._firmas()[:len(COLUMNAS_INVENTARIO)]
        ancho_bloque = max(len(COLUMNAS_INVENTARIO) // len(firmas), 1)
        for i, firma in enumerate(firmas):
            inicio = i * ancho_bloque + 1
            fin = min(inicio + ancho_bloque - 1, len(COLUMNAS_INVENTARIO))
            ws.merge_cells(start_row=fila_firmas, start_column=inicio, end_row=fila_firmas, end_column=fin)
            celda = ws.cell(row=fila_firmas, column=inicio, value=firma)
            celda.font = Font(bold=True)
            celda.alignment = Alignment(horizontal="center")

        logger.info(f"Inventario general {year} generado con {len(expedientes)} expedientes")
        return self._guardar(wb)
