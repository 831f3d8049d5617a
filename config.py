"""
Configuration for the demo servers.

Values come from environment variables (or a local .env file) with
development-friendly defaults.
"""

import os
from dotenv import load_dotenv

load_dotenv()


class BaseConfig:
    """Settings shared by every demo server."""

    SECRET_KEY = os.environ.get('SECRET_KEY', os.urandom(32).hex())

    # Session cookie
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = os.environ.get('SESSION_COOKIE_SECURE', '0') == '1'

    # CSRF tokens live as long as the session that issued them
    WTF_CSRF_TIME_LIMIT = None

    BCRYPT_ROUNDS = 12

    # Bank demo
    DEMO_USER_ID = 'user123'
    INITIAL_BALANCE = int(os.environ.get('INITIAL_BALANCE', 1000))

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = 'DEBUG'


class TestingConfig(BaseConfig):
    TESTING = True
    SECRET_KEY = 'testing-secret-key'

    # Cheap hashes so every test can seed its own database
    BCRYPT_ROUNDS = 4


class ProductionConfig(BaseConfig):
    DEBUG = False
    SESSION_COOKIE_SECURE = True
    LOG_LEVEL = 'WARNING'


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def load_config(app, config_name=None):
    """Apply the named configuration to a Flask app."""
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'default')
    app.config.from_object(config.get(config_name, config['default']))
