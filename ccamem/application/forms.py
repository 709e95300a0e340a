# RUTA: ccamem/application/forms.py
"""
Formularios WTForms para validar los cuerpos JSON de la API.

El frontend envía JSON, así que el cuerpo se convierte a un MultiDict y se
pasa como formdata. CSRF va desactivado: la API se autentica con Bearer token.
"""

from datetime import date

from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import BooleanField, DateField, IntegerField, PasswordField, SelectField, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, Length, NumberRange, Optional, Regexp, ValidationError

from ccamem.core.errors import ErrorValidacion
from ccamem.domain.models.catalogos import (
    CLASIFICACIONES_INFORMACION, DESTINOS_FINALES, ESTADO_BAJA, ESTADOS_EXPEDIENTE, FRECUENCIAS_RESPALDO,
)
from ccamem.domain.models.usuario import ROLES

EMAIL_PATTERN = r'^[^\s@]+@[^\s@]+\.[^\s@]+$'

# Nombres alternativos que acepta el frontend para los campos del expediente
ALIAS_EXPEDIENTE = {'titulo': 'nombre', 'descripcion': 'asunto'}


# ===== VALIDADORES PERSONALIZADOS =====

def validate_fecha_cierre(form, field):
    """La fecha de cierre no puede ser anterior a la de apertura."""
    if field.data and form.fecha_apertura.data and field.data < form.fecha_apertura.data:
        raise ValidationError('La fecha de cierre no puede ser anterior a la fecha de apertura.')


def _opciones(valores):
    return [(v, v) for v in valores]


# ===== CONVERSIÓN JSON -> FORMULARIO =====

def _a_multidict(payload):
    datos = MultiDict()
    for clave, valor in (payload or {}).items():
        if valor is None:
            continue
        if isinstance(valor, bool):
            datos[clave] = 'true' if valor else 'false'
        else:
            datos[clave] = str(valor)
    return datos


def aplicar_alias(payload, alias):
    """Copia los campos alternativos a su nombre canónico si este no viene informado."""
    datos = dict(payload or {})
    for alternativo, canonico in alias.items():
        if alternativo in datos and canonico not in datos:
            datos[canonico] = datos.pop(alternativo)
    return datos


def _errores_de_tipo(form, payload):
    # Los campos de texto solo aceptan cadenas JSON; 123 o [] no se convierten
    errores = {}
    for clave, valor in (payload or {}).items():
        campo = form._fields.get(clave)
        if isinstance(campo, StringField) and valor is not None and not isinstance(valor, str):
            errores[clave] = [f'El campo {campo.label.text} debe ser texto']
    return errores


def form_desde_json(form_cls, payload):
    """Construye y valida el formulario. Lanza ErrorValidacion con los errores por campo."""
    form = form_cls(formdata=_a_multidict(payload), meta={'csrf': False})
    valido = form.validate()
    errores = _errores_de_tipo(form, payload)
    if not valido:
        for campo, mensajes in form.errors.items():
            errores.setdefault(campo, list(mensajes))
    if errores:
        primer_mensaje = next(iter(errores.values()))[0]
        raise ErrorValidacion(primer_mensaje, errores)
    return form


def datos_presentes(form, payload):
    """
    Devuelve solo los campos que venían en el cuerpo, ya convertidos por el
    formulario. Un valor null en el JSON limpia el campo.
    """
    datos = {}
    for clave in (payload or {}):
        if clave not in form._fields:
            continue
        if payload[clave] is None:
            datos[clave] = None
            continue
        valor = form[clave].data
        if isinstance(valor, date):
            valor = valor.isoformat()
        elif isinstance(valor, str) and not isinstance(form[clave], PasswordField):
            valor = valor.strip() or None
        datos[clave] = valor
    return datos


# ===== AUTENTICACIÓN =====

class LoginForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(message='Email y contraseña son requeridos')])
    password = PasswordField('Contraseña', validators=[DataRequired(message='Email y contraseña son requeridos')])


class CambiarPasswordForm(FlaskForm):
    password_actual = PasswordField('Contraseña actual', validators=[
        DataRequired(message='La contraseña actual es requerida')
    ])
    password_nuevo = PasswordField('Nueva contraseña', validators=[
        DataRequired(message='La nueva contraseña es requerida'),
        Length(min=6, message='La nueva contraseña debe tener al menos 6 caracteres')
    ])


class PerfilForm(FlaskForm):
    nombre = StringField('Nombre', validators=[
        DataRequired(message='El nombre es requerido'),
        Length(max=200, message='El nombre no puede exceder 200 caracteres')
    ])


# ===== USUARIOS =====

REQUERIDOS_USUARIO = 'Nombre, email, contraseña y rol son requeridos'
MENSAJE_ROL = 'El rol debe ser: admin, usuario o consulta'
MENSAJE_EMAIL = 'El formato del email no es válido'
MENSAJE_PASSWORD = 'La contraseña debe tener al menos 6 caracteres'
VALORES_FALSOS = ('false', '0', 'no', '')


class UsuarioForm(FlaskForm):
    nombre = StringField('Nombre', validators=[DataRequired(message=REQUERIDOS_USUARIO), Length(max=200)])
    email = StringField('Email', validators=[
        DataRequired(message=REQUERIDOS_USUARIO), Regexp(EMAIL_PATTERN, message=MENSAJE_EMAIL), Length(max=200)
    ])
    password = PasswordField('Contraseña', validators=[
        DataRequired(message=REQUERIDOS_USUARIO), Length(min=6, message=MENSAJE_PASSWORD)
    ])
    rol = StringField('Rol', validators=[DataRequired(message=REQUERIDOS_USUARIO), AnyOf(ROLES, message=MENSAJE_ROL)])
    area = StringField('Área', validators=[Optional(), Length(max=20)])
    activo = BooleanField('Activo', false_values=VALORES_FALSOS)


class UsuarioUpdateForm(UsuarioForm):
    nombre = StringField('Nombre', validators=[Optional(), Length(max=200)])
    email = StringField('Email', validators=[Optional(), Regexp(EMAIL_PATTERN, message=MENSAJE_EMAIL),
                                             Length(max=200)])
    # Vacía conserva la contraseña actual
    password = PasswordField('Contraseña', validators=[Optional(), Length(min=6, message=MENSAJE_PASSWORD)])
    rol = StringField('Rol', validators=[Optional(), AnyOf(ROLES, message=MENSAJE_ROL)])


# ===== EXPEDIENTES =====

class ExpedienteForm(FlaskForm):
    numero_expediente = StringField('Número de expediente', validators=[
        DataRequired(message='El número de expediente es requerido'),
        Length(max=100, message='El número de expediente no puede exceder 100 caracteres')
    ])
    nombre = StringField('Nombre', validators=[
        DataRequired(message='El nombre del expediente es requerido'),
        Length(max=500)
    ])
    asunto = TextAreaField('Asunto', validators=[Optional()])
    area_id = IntegerField('Área', validators=[Optional()])
    fondo_id = IntegerField('Fondo', validators=[Optional()])
    seccion_id = IntegerField('Sección', validators=[Optional()])
    serie_id = IntegerField('Serie', validators=[Optional()])
    subserie_id = IntegerField('Subserie', validators=[Optional()])
    numero_legajos = IntegerField('Legajos', validators=[
        Optional(), NumberRange(min=1, message='El número de legajos debe ser al menos 1')
    ])
    total_hojas = IntegerField('Hojas', validators=[
        Optional(), NumberRange(min=0, message='El total de hojas no puede ser negativo')
    ])
    fecha_apertura = DateField('Fecha de apertura', format='%Y-%m-%d', validators=[
        DataRequired(message='La fecha de apertura es requerida (YYYY-MM-DD)')
    ])
    fecha_cierre = DateField('Fecha de cierre', format='%Y-%m-%d', validators=[Optional(), validate_fecha_cierre])
    valor_administrativo = BooleanField('Valor administrativo')
    valor_juridico = BooleanField('Valor jurídico')
    valor_fiscal = BooleanField('Valor fiscal')
    valor_contable = BooleanField('Valor contable')
    archivo_tramite = IntegerField('Años en trámite', validators=[Optional(), NumberRange(min=0, max=100)])
    archivo_concentracion = IntegerField('Años en concentración', validators=[Optional(), NumberRange(min=0, max=100)])
    destino_final = SelectField('Destino final', choices=_opciones(DESTINOS_FINALES), validators=[Optional()])
    clasificacion_informacion = SelectField('Clasificación', choices=_opciones(CLASIFICACIONES_INFORMACION),
                                            validators=[Optional()])
    ubicacion_fisica = StringField('Ubicación física', validators=[Optional(), Length(max=300)])
    observaciones = TextAreaField('Observaciones', validators=[Optional()])
    # La baja solo se aplica con DELETE
    estado = SelectField('Estado', choices=_opciones(e for e in ESTADOS_EXPEDIENTE if e != ESTADO_BAJA),
                         validators=[Optional()])


class ExpedienteUpdateForm(ExpedienteForm):
    numero_expediente = StringField('Número de expediente', validators=[Optional(), Length(max=100)])
    nombre = StringField('Nombre', validators=[Optional(), Length(max=500)])
    fecha_apertura = DateField('Fecha de apertura', format='%Y-%m-%d', validators=[Optional()])


# ===== CONFIGURACIÓN =====

class RespaldoForm(FlaskForm):
    nombre = StringField('Nombre', validators=[DataRequired(message='Nombre, tipo y frecuencia son requeridos'),
                                               Length(max=200)])
    tipo = StringField('Tipo', validators=[DataRequired(message='Nombre, tipo y frecuencia son requeridos'),
                                           Length(max=50)])
    frecuencia = SelectField('Frecuencia', choices=_opciones(FRECUENCIAS_RESPALDO), validators=[
        DataRequired(message='Nombre, tipo y frecuencia son requeridos')
    ])
    hora_ejecucion = StringField('Hora', validators=[
        Optional(), Regexp(r'^([01]\d|2[0-3]):[0-5]\d$', message='La hora debe tener formato HH:MM')
    ])
    dia_semana = IntegerField('Día de la semana', validators=[
        Optional(), NumberRange(min=0, max=6, message='El día de la semana va de 0 (domingo) a 6')
    ])
    dia_mes = IntegerField('Día del mes', validators=[
        Optional(), NumberRange(min=1, max=31, message='El día del mes va de 1 a 31')
    ])
    incluir_documentos = BooleanField('Incluir documentos')
    incluir_base_datos = BooleanField('Incluir base de datos')
    ruta_destino = StringField('Ruta destino', validators=[
        Optional(), Length(max=500), Regexp(r'^[^\'"]*$', message='La ruta destino no puede contener comillas')
    ])
    retener_dias = IntegerField('Días de retención', validators=[Optional(), NumberRange(min=1)])


class NotificacionForm(FlaskForm):
    activa = BooleanField('Activa')
    enviar_email = BooleanField('Enviar email')
    enviar_sistema = BooleanField('Notificar en el sistema')
    asunto_email = StringField('Asunto', validators=[Optional(), Length(max=300)])


class EmailPruebaForm(FlaskForm):
    email_destino = StringField('Email destino', validators=[
        DataRequired(message='El email de destino es requerido'),
        Regexp(EMAIL_PATTERN, message='El formato del email no es válido')
    ])
