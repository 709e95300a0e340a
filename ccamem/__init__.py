# RUTA: ccamem/__init__.py

import logging
from logging.handlers import RotatingFileHandler
import os

import click
from flask import Flask, jsonify
from flask_cors import CORS
from flask_mail import Mail

# Seguridad: extensiones de cabeceras y límite de peticiones
from flask_talisman import Talisman
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from .config import Config
from .database.connector import init_app_db
from .application.services.audit_service import AuditService
from .application.services.auth_service import AuthService
from .application.services.backup_service import BackupService
from .application.services.catalogo_service import CatalogoService
from .application.services.configuracion_service import ConfiguracionService
from .application.services.documento_service import DocumentoService
from .application.services.email_service import EmailService
from .application.services.expediente_service import ExpedienteService
from .application.services.monitoring_service import MonitoringService
from .application.services.reporte_service import ReporteService
from .application.services.siser_service import SiserService
from .application.services.usuario_service import UsuarioService
from .infrastructure.persistence.catalogo_repository import SqlServerCatalogoRepository
from .infrastructure.persistence.expediente_repository import (
    SqlServerDocumentoRepository,
    SqlServerExpedienteRepository,
)
from .infrastructure.persistence.sqlserver_repository import (
    SqlServerUsuarioRepository,
    SqlServerAuditoriaRepository,
    SqlServerBackupRepository,
    SqlServerConfiguracionRepository,
)
from .infrastructure.siser.playwright_submitter import SiserPlaywrightSubmitter

# Inicialización de extensiones de Flask (sin la app)
mail = Mail()
cors = CORS()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per day", "50 per hour"]  # Límites por defecto para todas las rutas
)
talisman = Talisman()


def configure_logging(app):
    """Configura el sistema de logging para la aplicación."""
    if not app.debug and not app.testing:
        if not os.path.exists('logs'):
            os.mkdir('logs')

        # delay=True: el archivo no se crea hasta el primer log
        file_handler = RotatingFileHandler(
            'logs/app.log',
            maxBytes=50*1024*1024,  # 50 MB
            backupCount=5,
            delay=True
        )

        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))

        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)
        # Los módulos usan logging.getLogger(__name__) bajo el paquete ccamem
        logging.getLogger('ccamem').addHandler(file_handler)
        logging.getLogger('ccamem').setLevel(logging.INFO)

        app.logger.setLevel(logging.INFO)
        app.logger.info('CCAMEM API iniciada')


def register_commands(app):
    from .database.connector import get_db_write, get_dialecto
    from .database.schema import crear_esquema
    from .database.seed import ADMIN_EMAIL, ADMIN_PASSWORD, seed_database

    @app.cli.command('init-db')
    def init_db_command():
        """Crea las tablas de la base de datos."""
        conn = get_db_write()
        try:
            crear_esquema(conn, get_dialecto())
        finally:
            conn.close()
        click.echo('Esquema de base de datos creado.')

    @app.cli.command('seed-db')
    @click.option('--admin-email', default=ADMIN_EMAIL, show_default=True)
    @click.option('--admin-password', default=ADMIN_PASSWORD, show_default=True)
    def seed_db_command(admin_email, admin_password):
        """Carga los datos iniciales (administrador, catálogos y configuración)."""
        conn = get_db_write()
        try:
            seed_database(conn, admin_email, admin_password)
        finally:
            conn.close()
        click.echo(f"Datos iniciales cargados. Administrador: {admin_email}")


def create_app(config_overrides=None):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Configurar Logging
    configure_logging(app)

    # Inicializar todas las extensiones con la app
    init_app_db(app)
    mail.init_app(app)
    limiter.init_app(app)
    cors.init_app(app, resources={r"/api/*": {"origins": app.config['CORS_ORIGINS']}})

    # Solo JSON: la política de contenido se limita al propio origen
    talisman.init_app(
        app,
        content_security_policy={'default-src': "'self'"},
        force_https=app.config.get('TALISMAN_FORCE_HTTPS', False),
        session_cookie_secure=app.config.get('TALISMAN_FORCE_HTTPS', False),
        permissions_policy={},
    )

    with app.app_context():
        # --- Inyección de Dependencias ---
        usuario_repo = SqlServerUsuarioRepository()
        audit_repo = SqlServerAuditoriaRepository()
        expediente_repo = SqlServerExpedienteRepository()
        documento_repo = SqlServerDocumentoRepository()
        catalogo_repo = SqlServerCatalogoRepository()
        configuracion_repo = SqlServerConfiguracionRepository()
        backup_repo = SqlServerBackupRepository()

        email_service = EmailService(mail)
        audit_service = AuditService(audit_repo)

        app.config['AUDIT_SERVICE'] = audit_service
        app.config['AUTH_SERVICE'] = AuthService(usuario_repo, audit_service, app.config)
        app.config['USUARIO_SERVICE'] = UsuarioService(usuario_repo)
        app.config['CATALOGO_SERVICE'] = CatalogoService(catalogo_repo)
        app.config['EXPEDIENTE_SERVICE'] = ExpedienteService(expediente_repo, documento_repo)
        app.config['DOCUMENTO_SERVICE'] = DocumentoService(documento_repo, expediente_repo, app.config)
        app.config['REPORTE_SERVICE'] = ReporteService(expediente_repo, configuracion_repo)
        app.config['CONFIGURACION_SERVICE'] = ConfiguracionService(configuracion_repo, email_service)
        app.config['BACKUP_SERVICE'] = BackupService(backup_repo, audit_service, app.config)
        app.config['MONITORING_SERVICE'] = MonitoringService(configuracion_repo, app.config)

        # Las pruebas inyectan un submitter falso para no abrir un navegador
        submitter_factory = app.config.get('SISER_SUBMITTER_FACTORY') or (lambda: SiserPlaywrightSubmitter(app.config))
        app.config['SISER_SERVICE'] = SiserService(submitter_factory, expediente_repo, app.config)

        # Importación de blueprints aquí para evitar importaciones circulares
        from .presentation.routes.auth_routes import auth_bp
        from .presentation.routes.usuarios_routes import usuarios_bp
        from .presentation.routes.catalogo_routes import catalogo_bp
        from .presentation.routes.expediente_routes import expediente_bp
        from .presentation.routes.upload_routes import upload_bp
        from .presentation.routes.reporte_routes import reporte_bp
        from .presentation.routes.configuracion_routes import configuracion_bp
        from .presentation.routes.auditoria_routes import auditoria_bp
        from .presentation.routes.siser_routes import siser_bp
        from .presentation.routes.error_routes import error_bp
        # Registrar Blueprints
        app.register_blueprint(auth_bp)
        app.register_blueprint(usuarios_bp)
        app.register_blueprint(catalogo_bp)
        app.register_blueprint(expediente_bp)
        app.register_blueprint(upload_bp)
        app.register_blueprint(reporte_bp)
        app.register_blueprint(configuracion_bp)
        app.register_blueprint(auditoria_bp)
        # La bitácora también cuelga del panel de configuración
        app.register_blueprint(auditoria_bp, url_prefix='/api/configuracion/auditoria',
                               name='configuracion_auditoria')
        app.register_blueprint(siser_bp)
        app.register_blueprint(error_bp)

        @app.route('/health')
        def health():
            """Endpoint de salud para verificar que el servidor está activo"""
            return jsonify({'status': 'ok', 'message': 'Servidor activo'})

    register_commands(app)
    return app
