"""
CMS Configuration Module

Configuration settings for database, media storage, pairing and
manifest delivery. All sensitive values are loaded from environment variables.
"""

import os
from pathlib import Path


class Config:
    """Base configuration class with default settings."""

    # Flask Settings
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')

    # Base Directory
    BASE_DIR = Path(__file__).parent.resolve()

    # Database Settings (SQLite unless DATABASE_URL is set)
    DATABASE_PATH = Path(os.environ.get('CMS_DATABASE_PATH', BASE_DIR / 'data' / 'cms.db'))
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'DATABASE_URL',
        f'sqlite:///{DATABASE_PATH}'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Media storage: files referenced by MediaAsset.storage_path live here
    MEDIA_ROOT = Path(os.environ.get('MEDIA_ROOT', BASE_DIR / 'media'))
    # Public base used when building signed media URLs; empty means same host
    MEDIA_BASE_URL = os.environ.get('MEDIA_BASE_URL', '')
    URL_SIGNING_SECRET = os.environ.get('URL_SIGNING_SECRET', 'dev-url-signing-secret')
    SIGNED_URL_TTL_SECONDS = int(os.environ.get('SIGNED_URL_TTL_SECONDS', 3600))

    # Tenant that newly claimed devices are attached to
    DEFAULT_TENANT_ID = os.environ.get(
        'DEFAULT_TENANT_ID', '00000000-0000-0000-0000-000000000001'
    )

    # Pairing
    PAIRING_PIN_TTL_SECONDS = int(os.environ.get('PAIRING_PIN_TTL_SECONDS', 600))

    # Player cadence (dictated to players through the manifest)
    MANIFEST_POLL_SECONDS = int(os.environ.get('MANIFEST_POLL_SECONDS', 60))
    STANDBY_POLL_SECONDS = int(os.environ.get('STANDBY_POLL_SECONDS', 30))

    # Monitoring: a device is online if its latest heartbeat is younger than this
    ONLINE_THRESHOLD_SECONDS = int(os.environ.get('ONLINE_THRESHOLD_SECONDS', 180))

    # Server Settings
    PORT = int(os.environ.get('CMS_PORT', 5002))
    HOST = os.environ.get('CMS_HOST', '0.0.0.0')

    @classmethod
    def init_app(cls, app):
        """Initialize application with this configuration."""
        # Ensure storage directories exist
        if cls.SQLALCHEMY_DATABASE_URI.startswith('sqlite:///'):
            cls.DATABASE_PATH.parent.mkdir(parents=True, exist_ok=True)
        cls.MEDIA_ROOT.mkdir(parents=True, exist_ok=True)


class DevelopmentConfig(Config):
    """Development configuration with debug enabled."""

    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration with an in-memory database."""

    DEBUG = True
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    URL_SIGNING_SECRET = 'test-url-signing-secret'

    @classmethod
    def init_app(cls, app):
        """Nothing to create on disk for tests."""
        pass


class ProductionConfig(Config):
    """Production configuration with strict security settings."""

    DEBUG = False
    TESTING = False

    @classmethod
    def init_app(cls, app):
        """Production-specific initialization."""
        Config.init_app(app)

        # Verify required environment variables are set
        required_vars = [
            'SECRET_KEY',
            'URL_SIGNING_SECRET',
        ]
        missing = [var for var in required_vars if not os.environ.get(var)]
        if missing:
            raise ValueError(f"Missing required environment variables: {', '.join(missing)}")


# Configuration mapping by environment name
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig,
}


def get_config(env_name=None):
    """Get configuration class by environment name.

    Args:
        env_name: Environment name ('development', 'testing', 'production').
                  If None, reads from FLASK_ENV environment variable.

    Returns:
        Configuration class for the specified environment.
    """
    if env_name is None:
        env_name = os.environ.get('FLASK_ENV', 'development')
    return config.get(env_name, config['default'])
