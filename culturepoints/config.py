"""
Configuration management for the CulturePoints rewards engine.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _split_env_list(name: str, default: str = '') -> list:
    """Read a comma-separated env var into a list of lower-cased values."""
    raw = os.getenv(name, default)
    return [item.strip().lower() for item in raw.split(',') if item.strip()]


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Check-in engine
    DAILY_CHECKPOINT_LIMIT = 10
    STREAK_BASE_POINTS = 50        # base term when a checkpoint carries no value
    DEFAULT_CHECKPOINT_POINTS = 100
    MAX_CHECKPOINT_POINTS = 10000

    # Calendar days (daily cap, streaks) are computed in this timezone
    REFERENCE_TIMEZONE = os.getenv('REFERENCE_TIMEZONE', 'UTC')

    # Profile completion rewards (one-time per field)
    PROFILE_FIELD_POINTS = 5

    # Bulk uploads
    MAX_UPLOAD_ROWS = int(os.getenv('MAX_UPLOAD_ROWS', '5000'))
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024  # 5 MB CSV limit

    # Admin access (X-User-Email header must match one of these)
    ADMIN_EMAILS = _split_env_list('ADMIN_EMAILS')

    CORS_ORIGINS = _split_env_list('CORS_ORIGINS', 'http://localhost:3000')


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        'sqlite:///culturepoints_dev.db'  # SQLite fallback for local dev
    )


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False

    _db_url = os.getenv('DATABASE_URL', '')
    if _db_url.startswith('postgres://'):
        # SQLAlchemy requires postgresql:// not postgres://
        _db_url = _db_url.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_DATABASE_URI = _db_url

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 5,
        'pool_recycle': 300,
        'pool_pre_ping': True,  # Verify connections before using
    }

    _secret_key = os.getenv('SECRET_KEY', '')

    @classmethod
    def validate_secret_key(cls) -> str:
        """
        Validate SECRET_KEY in production environment.

        Raises:
            RuntimeError: If SECRET_KEY is missing, empty, or contains unsafe values
        """
        if not cls._secret_key:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY environment variable is not set!\n"
                "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )

        insecure_patterns = ['dev', 'change', 'default', 'test', 'secret', 'password']
        lower_key = cls._secret_key.lower()
        for pattern in insecure_patterns:
            if pattern in lower_key:
                raise RuntimeError(
                    f"CRITICAL: SECRET_KEY contains '{pattern}' which suggests it's not secure!"
                )

        if len(cls._secret_key) < 32:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY is too short (minimum 32 characters required)!"
            )

        return cls._secret_key

    SECRET_KEY = _secret_key  # Validated at app startup


class TestingConfig(BaseConfig):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    ADMIN_EMAILS = ['admin@culturepoints.test']
    REFERENCE_TIMEZONE = 'UTC'


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)


def validate_config(config_name: str = 'development') -> None:
    """
    Validate configuration before app startup.

    Raises:
        RuntimeError: If validation fails in production
    """
    if config_name == 'production':
        ProductionConfig.validate_secret_key()
        if not ProductionConfig.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("CRITICAL: DATABASE_URL environment variable is not set!")
