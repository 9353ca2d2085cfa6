# __init__.py
"""
Application factory for the Zab E-Fest event management backend.
"""

import os
import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler

from flask import Flask, jsonify
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from efest.config import config_by_name
from efest.exceptions import EfestError
from efest.extensions import init_extensions, validate_email_config, check_database_health, db, email_service

SERVICE_LOGGERS = (
    'application_service',
    'participant_service',
    'capacity_service',
    'module_service',
    'email_service',
)


def setup_logging(app):
    """
    Configure structured logging for the application.

    Args:
        app: Flask application instance
    """
    log_format = logging.Formatter(
        '%(asctime)s %(levelname)s %(name)s %(threadName)s : %(message)s'
    )
    level = logging.DEBUG if app.debug else logging.INFO

    handlers = []

    if app.config.get('LOG_TO_FILE', True):
        log_dir = os.path.join(app.root_path, 'logs')
        os.makedirs(log_dir, exist_ok=True)

        # File handler with rotation
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, 'app.log'),
            maxBytes=1024 * 1024 * 10,  # 10MB
            backupCount=5
        )
        file_handler.setFormatter(log_format)
        file_handler.setLevel(logging.INFO)
        handlers.append(file_handler)

    if not app.testing:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(log_format)
        console_handler.setLevel(level)
        handlers.append(console_handler)

    app.logger.setLevel(level)
    for handler in handlers:
        app.logger.addHandler(handler)

    for name in SERVICE_LOGGERS:
        service_logger = logging.getLogger(name)
        service_logger.setLevel(level)
        if not service_logger.handlers:
            for handler in handlers:
                service_logger.addHandler(handler)

    # Forcefully suppress SQLAlchemy logs
    sa_logger = logging.getLogger('sqlalchemy.engine')
    sa_logger.setLevel(logging.WARNING)
    sa_logger.propagate = False


def register_blueprints(app):
    """
    Register all application blueprints.

    Args:
        app: Flask application instance
    """
    try:
        # Import blueprints here to avoid circular imports
        from .controllers import events_bp, applications_bp, participants_bp

        app.register_blueprint(events_bp)
        app.register_blueprint(applications_bp)
        app.register_blueprint(participants_bp)

        app.logger.info("All blueprints registered successfully")

    except ImportError as e:
        app.logger.error(f"Failed to import blueprint: {str(e)}")
        raise


def register_error_handlers(app):
    """
    Register global error handlers.

    Args:
        app: Flask application instance
    """

    @app.errorhandler(EfestError)
    def handle_efest_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return jsonify({'error': e.name, 'message': e.description}), e.code

    @app.errorhandler(Exception)
    def handle_exception(e):
        app.logger.error(f"Unhandled exception: {str(e)}", exc_info=True)
        return jsonify({
            'error': 'An unexpected error occurred',
            'message': str(e) if app.debug else 'Internal Server Error'
        }), 500


def register_shell_context(app):
    """
    Register shell context for flask shell command.

    Args:
        app: Flask application instance
    """

    @app.shell_context_processor
    def make_shell_context():
        from efest.models import User, Module, Application, ApplicationParticipant, Participant, Notification
        return {
            'db': db,
            'User': User,
            'Module': Module,
            'Application': Application,
            'ApplicationParticipant': ApplicationParticipant,
            'Participant': Participant,
            'Notification': Notification,
            'email_service': email_service
        }


def register_health_checks(app):
    """
    Register health check endpoints.

    Args:
        app: Flask application instance
    """

    @app.route('/health')
    def health_check():
        """Basic health check endpoint."""
        return jsonify({
            'status': 'ok',
            'timestamp': datetime.now().isoformat(),
            'version': app.config.get('VERSION', '1.0.0')
        })

    @app.route('/health/database')
    def database_health_check():
        """Database health check endpoint."""
        healthy, message = check_database_health()

        stats = {}
        if healthy:
            try:
                from efest.models import Module, Participant, Application
                stats = {
                    'modules': Module.query.count(),
                    'participants': Participant.query.count(),
                    'applications': Application.query.count()
                }
            except Exception as query_error:
                # Tables may not exist yet; the connection itself is fine
                app.logger.warning(f"Could not collect table counts: {query_error}")
                stats = {'counts': 'unavailable'}

        return jsonify({
            'status': 'healthy' if healthy else 'unhealthy',
            'message': message,
            'stats': stats,
            'timestamp': datetime.now().isoformat()
        }), 200 if healthy else 503


def initialize_database(app):
    """
    Create tables that do not exist yet.

    Migrations (flask db upgrade) remain the way to evolve an existing schema.
    """
    try:
        with app.app_context():
            db.create_all()
    except Exception as e:
        app.logger.error(f"Failed to initialize database: {str(e)}", exc_info=True)
        if app.debug:
            raise


def create_app(config_name=None, overrides=None):
    """
    Application factory function.

    Args:
        config_name (str): Configuration name ('development', 'production', 'testing')
        overrides (dict): Extra configuration applied after the config class

    Returns:
        Flask: Configured Flask application instance
    """
    load_dotenv()

    app = Flask(__name__)

    config_name = config_name or os.environ.get('FLASK_ENV', 'development')
    config_class = config_by_name[config_name]
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)
    config_class.init_app(app)

    setup_logging(app)
    app.logger.info(f"Starting application with config: {config_name}")

    os.makedirs(os.path.join(app.config['UPLOAD_FOLDER'], 'payments'), exist_ok=True)

    init_extensions(app)

    email_issues = validate_email_config(app)
    if email_issues:
        app.logger.warning(f"Email configuration issues: {'; '.join(email_issues)}")
    else:
        app.logger.info("Email configuration validated successfully")

    register_blueprints(app)
    register_error_handlers(app)
    register_shell_context(app)
    register_health_checks(app)

    from .cli import register_cli_commands
    register_cli_commands(app)

    if not app.testing:
        initialize_database(app)

    app.logger.info("Application created successfully")
    return app
