"""Base configuration shared by every environment."""
import os
from datetime import timedelta


class BaseConfig:
    """Base configuration class."""

    SECRET_KEY = os.getenv('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    # JWT Configuration (tokens are issued by the identity provider)
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY') or 'jwt-secret-key-change-in-production'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=2)
    JWT_ALGORITHM = 'HS256'

    # CORS
    CORS_ORIGINS = ["http://localhost:*", "http://127.0.0.1:*"]

    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.getenv('REDIS_URL') or 'memory://'
    RATELIMIT_DEFAULT = "200 per hour"

    # Proximity
    MAX_DISTANCE_METERS = int(os.getenv('MAX_DISTANCE_METERS', '100'))

    # QR codes
    QR_VALIDITY_SECONDS = int(os.getenv('QR_VALIDITY_SECONDS', '300'))
    QR_REFRESH_INTERVAL_SECONDS = int(os.getenv('QR_REFRESH_INTERVAL_SECONDS', '30'))
    QR_MAX_FUTURE_SKEW_SECONDS = int(os.getenv('QR_MAX_FUTURE_SKEW_SECONDS', '0'))  # 0 disables

    # Short tokens
    SHORT_TOKEN_BACKEND = os.getenv('SHORT_TOKEN_BACKEND', 'database')  # database, redis
    SHORT_TOKEN_TTL_SECONDS = int(os.getenv('SHORT_TOKEN_TTL_SECONDS', '300'))
    REDIS_URL = os.getenv('REDIS_URL')

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE', 'logs/app.log')
