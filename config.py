"""
Configuration management for the SchoolERP application
"""
import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class"""

    # Flask Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database Configuration
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        f"mysql+pymysql://{os.environ.get('MYSQL_USER', 'root')}:{os.environ.get('MYSQL_PASSWORD', '')}@{os.environ.get('MYSQL_HOST', 'localhost')}/{os.environ.get('MYSQL_DB', 'schoolerp')}"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    # Token Configuration
    JWT_SECRET = os.environ.get('JWT_SECRET')
    JWT_EXPIRES_MIN = int(os.environ.get('JWT_EXPIRES_MIN', 60 * 12))

    # WhatsApp Cloud API Configuration
    WHATSAPP_ACCESS_TOKEN = os.environ.get('WHATSAPP_ACCESS_TOKEN')
    WHATSAPP_PHONE_NUMBER_ID = os.environ.get('WHATSAPP_PHONE_NUMBER_ID')
    WHATSAPP_BUSINESS_ACCOUNT_ID = os.environ.get('WHATSAPP_BUSINESS_ACCOUNT_ID')
    WHATSAPP_API_VERSION = os.environ.get('WHATSAPP_API_VERSION', 'v21.0')
    WHATSAPP_VERIFY_TOKEN = os.environ.get('WHATSAPP_VERIFY_TOKEN')
    WHATSAPP_APP_SECRET = os.environ.get('WHATSAPP_APP_SECRET')
    # Refuse unsigned webhooks when no app secret is set
    WHATSAPP_REQUIRE_SIGNATURE = False

    # Numbering
    REGISTRATION_PREFIX = os.environ.get('REGISTRATION_PREFIX', 'TSH')
    NUMBERING_MAX_ATTEMPTS = int(os.environ.get('NUMBERING_MAX_ATTEMPTS', 5))

    # Pagination
    DEFAULT_PAGE_SIZE = int(os.environ.get('DEFAULT_PAGE_SIZE', 20))
    MAX_PAGE_SIZE = int(os.environ.get('MAX_PAGE_SIZE', 100))

    # Seed account
    SUPER_ADMIN_EMAIL = os.environ.get('SUPER_ADMIN_EMAIL')
    SUPER_ADMIN_PASSWORD = os.environ.get('SUPER_ADMIN_PASSWORD')

    # Application Settings
    DEBUG = os.environ.get('FLASK_DEBUG', 'False').lower() in ['true', 'on', '1']
    TESTING = False

    @staticmethod
    def init_app(app):
        """Initialize application with configuration"""
        pass


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///schoolerp.db'


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    WHATSAPP_REQUIRE_SIGNATURE = True
    SECRET_KEY = os.environ.get('SECRET_KEY')

    @classmethod
    def init_app(cls, app):
        Config.init_app(app)

        # Ensure SECRET_KEY is set in production
        if not app.config['SECRET_KEY']:
            raise ValueError("SECRET_KEY environment variable must be set in production")


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SECRET_KEY = 'testing-secret-key'
    JWT_SECRET = 'testing-jwt-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    WHATSAPP_ACCESS_TOKEN = None
    WHATSAPP_PHONE_NUMBER_ID = None
    WHATSAPP_BUSINESS_ACCOUNT_ID = None
    WHATSAPP_VERIFY_TOKEN = 'verify-me'
    WHATSAPP_APP_SECRET = None
    REGISTRATION_PREFIX = 'TSH'
    SUPER_ADMIN_EMAIL = 'admin@school.test'
    SUPER_ADMIN_PASSWORD = 'Admin@123'


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
