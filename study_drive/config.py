"""
Configuration management for the Flask application.
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Base configuration class."""

    # Flask settings
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = False
    TESTING = False

    # AWS settings
    AWS_ACCESS_KEY_ID = os.getenv('AWS_ACCESS_KEY_ID')
    AWS_SECRET_ACCESS_KEY = os.getenv('AWS_SECRET_ACCESS_KEY')
    AWS_REGION = os.getenv('AWS_REGION', 'us-east-1')
    S3_BUCKET_NAME = os.getenv('S3_BUCKET_NAME') or os.getenv('AWS_S3_BUCKET')
    S3_ENDPOINT_URL = os.getenv('S3_ENDPOINT_URL')

    # Key namespace
    UPLOAD_PREFIX = 'uploads/'

    # Upload settings
    MAX_UPLOAD_SIZE_MB = int(os.getenv('MAX_UPLOAD_SIZE_MB', '50'))
    # Leave headroom for multipart framing; the per-file check is exact
    MAX_CONTENT_LENGTH = (MAX_UPLOAD_SIZE_MB + 1) * 1024 * 1024
    PUBLIC_READ_UPLOADS = _env_bool('PUBLIC_READ_UPLOADS', False)

    # Listing settings
    DEFAULT_PAGE_SIZE = int(os.getenv('DEFAULT_PAGE_SIZE', '50'))
    MAX_PAGE_SIZE = int(os.getenv('MAX_PAGE_SIZE', '200'))
    SIGN_LISTING_URLS = _env_bool('SIGN_LISTING_URLS', True)
    LISTING_CACHE_TTL_SECONDS = float(os.getenv('LISTING_CACHE_TTL_SECONDS', '10'))

    # Signed URLs
    SIGNED_URL_EXPIRY_SECONDS = int(os.getenv('SIGNED_URL_EXPIRY_SECONDS', '3600'))

    # Collision resolution
    MAX_COLLISION_ATTEMPTS = int(os.getenv('MAX_COLLISION_ATTEMPTS', '1000'))

    # Access control
    REQUIRE_AUTH = _env_bool('REQUIRE_AUTH', True)
    API_TOKEN = os.getenv('STUDY_DRIVE_API_TOKEN')
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')

    @staticmethod
    def validate_storage_config():
        """Validate that required storage configuration is present."""
        missing_vars = []
        if not (os.getenv('S3_BUCKET_NAME') or os.getenv('AWS_S3_BUCKET')):
            missing_vars.append('S3_BUCKET_NAME')

        if missing_vars:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing_vars)}. "
                "Please check your .env file."
            )


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    FLASK_ENV = 'development'


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    FLASK_ENV = 'production'


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    FLASK_ENV = 'testing'
    S3_BUCKET_NAME = 'study-drive-test'
    API_TOKEN = 'test-token'
    REQUIRE_AUTH = True
    LISTING_CACHE_TTL_SECONDS = 10


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config(config_name=None):
    """Get configuration based on environment."""
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')
    return config.get(config_name, DevelopmentConfig)
