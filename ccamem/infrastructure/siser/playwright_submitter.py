# RUTA: ccamem/infrastructure/siser/playwright_submitter.py
"""
Automatización del portal SISER con un navegador Chromium controlado por Playwright.
"""

import logging

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from ccamem.infrastructure.siser.base import BaseSubmitter, ErrorEnvio, SubmitResult, SubmitterNotReady

logger = logging.getLogger(__name__)

TIMEOUT_MS = 10000
ENLACE_ENTREGA_RECEPCION = 'Presentar entrega-recepción'
USER_AGENT = 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36'


class SiserPlaywrightSubmitter(BaseSubmitter):
    name = "siser"

    def __init__(self, config):
        self.login_url = config['SISER_URL']
        self.tramite_url = config['SISER_TRAMITE_URL']
        self.email = config.get('SISER_EMAIL')
        self.password = config.get('SISER_PASSWORD')
        self.headless = config.get('SISER_HEADLESS', True)
        self._playwright = None
        self._browser = None
        self.page = None

    def _iniciar_navegador(self):
        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(
            headless=self.headless, args=['--no-sandbox', '--disable-setuid-sandbox']
        )
        self.page = self._browser.new_page(viewport={'width': 1366, 'height': 768}, user_agent=USER_AGENT)
        self.page.set_default_timeout(TIMEOUT_MS)

    def abrir(self):
        if not (self.email and self.password):
            raise SubmitterNotReady('Credenciales SISER no configuradas')
        try:
            self._iniciar_navegador()
            self._login()
            self._navegar_a_entrega_recepcion()
        except PlaywrightError as e:
            self.cerrar()
            raise SubmitterNotReady(f"No se pudo iniciar sesión en SISER: {e}")

    def _login(self):
        logger.info(f"Accediendo a SISER en {self.login_url}")
        self.page.goto(self.login_url, wait_until='networkidle')
        self.page.wait_for_selector('input[name="email"]')
        self.page.fill('input[name="email"]', self.email)
        self.page.fill('input[name="password"]', self.password)
        with self.page.expect_navigation(wait_until='networkidle'):
            self.page.click('input[name="entrar"], button[type="submit"]')
        logger.info("Sesión iniciada en SISER")

    def _navegar_a_entrega_recepcion(self):
        enlace = self.page.get_by_role('link', name=ENLACE_ENTREGA_RECEPCION)
        with self.page.expect_navigation(wait_until='networkidle'):
            enlace.first.click()

    def verificar_portal(self):
        try:
            self._iniciar_navegador()
            self.page.goto(self.login_url, wait_until='networkidle')
            return True
        except PlaywrightError as e:
            logger.warning(f"SISER no está accesible: {e}")
            return False
        finally:
            self.cerrar()

    def submit(self, registro):
        try:
            self.page.goto(self.tramite_url, wait_until='networkidle')
            self.page.wait_for_selector('input[name="clave_expediente"]')
            self.page.fill('input[name="clave_expediente"]', str(registro.clave))
            self.page.fill('input[name="nombre_expediente"]', str(registro.nombre))
            self.page.fill('input[name="numero_legajos"]', str(registro.legajos))
            self.page.fill('input[name="numero_documentos"]', str(registro.hojas))
            self.page.fill('input[name="fecha_documentos_primero"]', registro.fecha_inicio)
            self.page.fill('input[name="fecha_documentos_ultimo"]', registro.fecha_fin)
            self.page.click('button[type="submit"][name="enviar"]')
            self.page.wait_for_load_state('networkidle')
        except PlaywrightTimeoutError as e:
            raise ErrorEnvio(f"Tiempo de espera agotado: {e}")
        except PlaywrightError as e:
            raise ErrorEnvio(str(e))
        logger.info(f"Expediente {registro.clave} guardado en SISER")
        return SubmitResult(clave=registro.clave, meta={'url': self.page.url})

    def cerrar(self):
        try:
            if self._browser:
                self._browser.close()
            if self._playwright:
                self._playwright.stop()
        except PlaywrightError as e:
            logger.error(f"Error al cerrar el navegador: {e}")
        finally:
            self._browser = None
            self._playwright = None
            self.page = None
