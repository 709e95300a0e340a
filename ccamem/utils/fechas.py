# RUTA: ccamem/utils/fechas.py

from datetime import date, datetime

FORMATO_TIMESTAMP = '%Y-%m-%d %H:%M:%S'


def ahora():
    """Marca de tiempo en el mismo formato que CURRENT_TIMESTAMP, válida para ambos motores."""
    return datetime.now().strftime(FORMATO_TIMESTAMP)


def formatear_timestamp(valor: datetime):
    return valor.strftime(FORMATO_TIMESTAMP)


def a_iso(valor):
    """Normaliza fechas devueltas por el driver a texto ISO para JSON."""
    if isinstance(valor, datetime):
        return valor.strftime(FORMATO_TIMESTAMP)
    if isinstance(valor, date):
        return valor.isoformat()
    return valor


def parse_fecha(valor):
    """Acepta date, datetime o texto 'YYYY-MM-DD' (con o sin hora). Devuelve date o None."""
    if valor is None or valor == '':
        return None
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    texto = str(valor).strip()
    # 'YYYY-MM-DD' seguido opcionalmente de la hora
    if len(texto) >= 10 and texto[4:5] == '-':
        texto, formato = texto[:10], '%Y-%m-%d'
    else:
        formato = '%d/%m/%Y'
    try:
        return datetime.strptime(texto, formato).date()
    except ValueError:
        return None


def formatear_dd_mm_yyyy(valor):
    fecha = parse_fecha(valor)
    return fecha.strftime('%d/%m/%Y') if fecha else None
