# extensions.py
"""
Flask extensions initialization.
Extensions are created here without an app and bound in the application factory.
"""

import hashlib
import logging

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from sqlalchemy import event, text

from efest.utils.email_service import EmailService

# Initialize extensions without app binding
db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
email_service = EmailService()

logger = logging.getLogger(__name__)


def hash_api_key(raw_key):
    """Stored form of an API key."""
    return hashlib.sha256(raw_key.encode('utf-8')).hexdigest()


def check_database_health():
    """
    Check if the database connection is healthy.
    Requires an active application context.

    Returns:
        tuple: (bool, str) indicating health status and message
    """
    try:
        connection = db.engine.connect()
        try:
            connection.execute(text("SELECT 1")).fetchone()
        finally:
            connection.close()

        return True, "Database connection is healthy"

    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False, f"Database connection failed: {str(e)}"


def configure_sqlite_locking(engine):
    """
    Start every SQLite transaction with BEGIN IMMEDIATE.

    SQLite ignores SELECT ... FOR UPDATE and pysqlite only opens a
    transaction at the first write, so two accepts could both count seats
    before either inserts. Taking the write lock at BEGIN makes them queue.
    """
    if engine.dialect.name != 'sqlite':
        return

    @event.listens_for(engine, 'connect')
    def disable_pysqlite_transactions(dbapi_connection, connection_record):
        # SQLAlchemy emits BEGIN itself from here on
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, 'begin')
    def begin_immediate(connection):
        connection.exec_driver_sql('BEGIN IMMEDIATE')


def init_extensions(app):
    """
    Initialize all extensions with proper order and configuration.

    Args:
        app: Flask application instance
    """
    # Step 1: Database first (required by the others)
    db.init_app(app)
    migrate.init_app(app, db)
    with app.app_context():
        configure_sqlite_locking(db.engine)

    # Step 2: Request identity
    login_manager.init_app(app)

    # Step 3: Notification sender
    email_service.init_app(app)

    # Identity comes from an API key on every request; no session login
    @login_manager.request_loader
    def load_user_from_request(req):
        from efest.models import User

        auth_header = req.headers.get('Authorization', '')
        if not auth_header.startswith('Bearer '):
            return None

        raw_key = auth_header.split(' ', 1)[1].strip()
        if not raw_key:
            return None

        user = User.query.filter_by(api_key_hash=hash_api_key(raw_key)).first()
        if user is None or not user.is_active:
            return None

        return user

    app.logger.info("Extensions initialized successfully in correct order")


def validate_email_config(app):
    """
    Validate email configuration on startup.

    Returns:
        list: List of configuration issues found
    """
    issues = []

    if app.config.get('MAIL_SUPPRESS_SEND'):
        issues.append("MAIL_SUPPRESS_SEND=True will prevent email sending")
        return issues

    required = ['MAIL_SERVER', 'MAIL_USERNAME', 'MAIL_PASSWORD', 'MAIL_DEFAULT_SENDER']
    missing = [key for key in required if not app.config.get(key)]
    if missing:
        issues.append(f"Missing required email config: {', '.join(missing)}")

    mail_port = app.config.get('MAIL_PORT')
    use_tls = app.config.get('MAIL_USE_TLS', False)
    use_ssl = app.config.get('MAIL_USE_SSL', False)

    if use_tls and use_ssl:
        issues.append("Cannot use both MAIL_USE_TLS and MAIL_USE_SSL simultaneously")

    if mail_port == 465 and use_tls and not use_ssl:
        issues.append("Port 465 typically uses SSL, not TLS. Consider using port 587 for TLS")
    elif mail_port == 587 and use_ssl and not use_tls:
        issues.append("Port 587 typically uses TLS, not SSL. Consider using port 465 for SSL")

    # Gmail specific checks
    if 'gmail.com' in (app.config.get('MAIL_SERVER') or ''):
        password = app.config.get('MAIL_PASSWORD') or ''
        if password and len(password) < 16:
            issues.append("Gmail requires App Password (16 characters) since May 2022")

    return issues
