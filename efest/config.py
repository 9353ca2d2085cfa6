import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration class with all settings as static attributes."""

    # Core configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'your-secret-key-here'
    DEBUG = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'
    VERSION = '1.0.0'

    PERMANENT_SESSION_LIFETIME = timedelta(hours=2)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # Database configuration
    base_db_uri = os.environ.get('DATABASE_URL')

    # Fallback to SQLite if no DATABASE_URL is provided
    if not base_db_uri:
        base_db_uri = 'sqlite:///efest.db'

    SQLALCHEMY_DATABASE_URI = base_db_uri
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Pool settings only apply to server databases
    if base_db_uri.startswith('sqlite'):
        SQLALCHEMY_ENGINE_OPTIONS = {}
    else:
        SQLALCHEMY_ENGINE_OPTIONS = {
            "pool_recycle": 3600,  # Recycle connections after 1 hour
            "pool_pre_ping": True,
            "pool_size": 10,
            "max_overflow": 20,
            # Capacity counts taken after the module row lock must see committed rows
            "isolation_level": "READ COMMITTED",
        }

    # Directory configuration
    BASE_DIR = os.path.dirname(os.path.abspath(__file__))
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER') or os.path.join(BASE_DIR, 'uploads')
    LOG_TO_FILE = True

    # File upload configuration
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB
    PAYMENT_EXTENSIONS = {'png', 'jpg', 'jpeg', 'pdf', 'webp'}

    # Registration settings
    REGISTRATION_TOKEN_PREFIX = 'ZAB'
    DEFAULT_PARTNER_GROUP = 'Solo'

    # Site settings
    SITE_NAME = 'Zab E-Fest Event Management'
    CONTACT_EMAIL = os.environ.get('CONTACT_EMAIL', 'support@zabefest.org')

    # Email configuration
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 465))
    MAIL_USE_TLS = os.environ.get('MAIL_USE_TLS', 'false').lower() == 'true'
    MAIL_USE_SSL = os.environ.get('MAIL_USE_SSL', 'true').lower() == 'true'
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME') or os.environ.get('EMAIL')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD') or os.environ.get('PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'Zab E-Fest <no-reply@zabefest.org>')
    MAIL_SUPPRESS_SEND = os.environ.get('MAIL_SUPPRESS_SEND', 'false').lower() == 'true'
    MAIL_MAX_RETRIES = 3

    @staticmethod
    def init_app(app):
        """Hook for configuration checks that need the app."""
        pass

    @staticmethod
    def allowed_file(filename, extensions):
        """Check if file extension is in the allowed set."""
        if not filename or '.' not in filename:
            return False

        return filename.rsplit('.', 1)[1].lower() in extensions

    @staticmethod
    def generate_upload_filename(prefix, original_filename):
        """Generate standardized upload filename."""
        import uuid
        from datetime import datetime

        ext = original_filename.rsplit('.', 1)[1].lower() if '.' in original_filename else 'png'

        # prefix_timestamp_uuid.ext
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        unique_id = str(uuid.uuid4())[:8]

        return f"{prefix}_{timestamp}_{unique_id}.{ext}"


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_ECHO = os.environ.get('SQL_DEBUG', 'false').lower() == 'true'


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    SESSION_COOKIE_SECURE = True

    SECRET_KEY = os.environ.get('SECRET_KEY')

    @staticmethod
    def init_app(app):
        if not os.environ.get('SECRET_KEY'):
            raise ValueError("SECRET_KEY environment variable must be set in production")
        if not os.environ.get('DATABASE_URL'):
            raise ValueError("DATABASE_URL environment variable must be set in production")


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SECRET_KEY = 'testing-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    LOG_TO_FILE = False

    # Emails are recorded, never delivered
    MAIL_SUPPRESS_SEND = True


# Configuration dictionary
config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}
