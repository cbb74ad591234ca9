"""Testing configuration."""
from datetime import timedelta

from .base import BaseConfig


class TestingConfig(BaseConfig):
    """Testing configuration class."""

    DEBUG = False
    TESTING = True
    SECRET_KEY = 'test-secret-key'

    # Database (in-memory SQLite for testing)
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'

    # JWT Configuration
    JWT_SECRET_KEY = 'test-jwt-secret-with-at-least-32-bytes'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=5)

    # Rate Limiting (disabled for testing)
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = 'memory://'

    # Protocol defaults pinned so environment overrides don't leak into tests
    MAX_DISTANCE_METERS = 100
    QR_VALIDITY_SECONDS = 300
    QR_REFRESH_INTERVAL_SECONDS = 30
    QR_MAX_FUTURE_SKEW_SECONDS = 0
    SHORT_TOKEN_BACKEND = 'database'
    SHORT_TOKEN_TTL_SECONDS = 300

    # Logging
    LOG_LEVEL = 'WARNING'
