# RUTA: ccamem/domain/models/catalogos.py
# Valores documentales fijos usados en formularios, validaciones y reportes.

ESTADOS_EXPEDIENTE = ('activo', 'cerrado', 'transferido', 'baja')
ESTADO_BAJA = 'baja'

DESTINOS_FINALES = ('conservacion', 'baja')
CLASIFICACIONES_INFORMACION = ('publica', 'reservada', 'confidencial')
VALORES_DOCUMENTALES = ('administrativo', 'juridico', 'fiscal', 'contable')
FRECUENCIAS_RESPALDO = ('diario', 'semanal', 'mensual')

ETIQUETAS = {
    'activo': 'Activo',
    'cerrado': 'Cerrado',
    'transferido': 'Transferido',
    'baja': 'Baja',
    'conservacion': 'Conservación permanente',
    'publica': 'Pública',
    'reservada': 'Reservada',
    'confidencial': 'Confidencial',
    'administrativo': 'Administrativo',
    'juridico': 'Jurídico',
    'fiscal': 'Fiscal',
    'contable': 'Contable',
}


def etiqueta(valor):
    if valor is None:
        return ''
    return ETIQUETAS.get(valor, str(valor))


def valores_documentales():
    """Listas para los selectores del frontend."""
    return {
        'valores': [{'valor': v, 'etiqueta': etiqueta(v)} for v in VALORES_DOCUMENTALES],
        'destino_final': [{'valor': v, 'etiqueta': etiqueta(v)} for v in DESTINOS_FINALES],
        'clasificacion': [{'valor': v, 'etiqueta': etiqueta(v)} for v in CLASIFICACIONES_INFORMACION],
        'estados': [{'valor': v, 'etiqueta': etiqueta(v)} for v in ESTADOS_EXPEDIENTE],
    }
