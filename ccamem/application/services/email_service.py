# RUTA: ccamem/application/services/email_service.py

import logging

from flask_mail import Message

logger = logging.getLogger(__name__)

ASUNTO_PRUEBA = 'Prueba de configuración de email - CCAMEM'

CUERPO_PRUEBA_HTML = """
<h2>Prueba exitosa</h2>
<p>Este es un email de prueba del sistema CCAMEM.</p>
<p>Si recibes este mensaje, la configuración de email está funcionando correctamente.</p>
<hr>
<small>Enviado desde el sistema de gestión de archivos CCAMEM</small>
"""


class EmailService:
    def __init__(self, mail):
        self._mail = mail

    def send_email(self, destinatarios, asunto, html, remitente=None):
        msg = Message(asunto, recipients=destinatarios, html=html, sender=remitente)
        self._mail.send(msg)
        logger.info(f"Correo '{asunto}' enviado a {', '.join(destinatarios)}")

    def send_test_email(self, destino, remitente=None):
        self.send_email([destino], ASUNTO_PRUEBA, CUERPO_PRUEBA_HTML, remitente)
