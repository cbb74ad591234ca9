"""Development configuration."""
import os

from .base import BaseConfig


class DevelopmentConfig(BaseConfig):
    """Development configuration class."""

    DEBUG = True
    TESTING = False

    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv('DEV_DATABASE_URL') or \
        'sqlite:///campus_attendance_dev.db'
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'

    # Relaxed limits while testing from a phone on the LAN
    RATELIMIT_DEFAULT = "1000 per hour"
    CORS_ORIGINS = ["*"]

    LOG_LEVEL = 'DEBUG'
