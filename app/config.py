# app/config.py

import os


class Config:
    # Flask Secret Key
    SECRET_KEY = os.getenv('SECRET_KEY', 'your_secret_key')

    # Database Configuration
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URI',
        'postgresql://postgres:postgres@db:5432/court_booking_db'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Connection pool + bounded I/O for every request
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,       # Validate connections before using
        "pool_recycle": 1800,        # Recycle every 30 minutes
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,          # Wait 30s for available connection
        "connect_args": {
            "connect_timeout": 10,   # PostgreSQL connection timeout
            "options": "-c statement_timeout=30000"  # 30s query timeout
        }
    }

    # Mail Configuration (booking confirmations)
    MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.example.com")
    MAIL_PORT = int(os.getenv("MAIL_PORT", 587))
    MAIL_USE_TLS = os.getenv("MAIL_USE_TLS", "true").lower() in ("true", "1", "t")
    MAIL_USE_SSL = os.getenv("MAIL_USE_SSL", "false").lower() in ("true", "1", "t")
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", "no-reply@badminton-club.local")
    MAIL_MAX_EMAILS = None
    MAIL_ASCII_ATTACHMENTS = False
    BOOKING_CONFIRMATION_EMAILS = os.getenv('BOOKING_CONFIRMATION_EMAILS', 'true').lower() == 'true'

    # Redis Configuration (slot locks)
    REDIS_URL = os.getenv('REDIS_URL')
    REDIS_TLS_ENABLED = os.getenv('REDIS_TLS_ENABLED', 'false').lower() == 'true'
    REDIS_SOCKET_TIMEOUT = float(os.getenv('REDIS_SOCKET_TIMEOUT', 5))
    REDIS_MAX_CONNECTIONS = int(os.getenv('REDIS_MAX_CONNECTIONS', 50))

    # Slot locking: 'redis', 'postgres' or 'local' (single process only)
    SLOT_LOCK_BACKEND = os.getenv('SLOT_LOCK_BACKEND', 'redis')
    SLOT_LOCK_WAIT_SECONDS = float(os.getenv('SLOT_LOCK_WAIT_SECONDS', 10))
    SLOT_LOCK_TTL_SECONDS = float(os.getenv('SLOT_LOCK_TTL_SECONDS', 60))

    # Venue calendar
    VENUE_NAME = os.getenv('VENUE_NAME', 'Badminton Club')
    VENUE_TIMEZONE = os.getenv('VENUE_TIMEZONE', 'Asia/Bangkok')

    # Recurring booking policy
    RECURRING_MAX_MONTHS = int(os.getenv('RECURRING_MAX_MONTHS', 3))
    DURATION_STEP_HOURS = float(os.getenv('DURATION_STEP_HOURS', 0.5))
    MAX_DURATION_HOURS = float(os.getenv('MAX_DURATION_HOURS', 8))
    RECURRING_PAGE_LIMIT = int(os.getenv('RECURRING_PAGE_LIMIT', 20))

    # Requests slower than this are logged as warnings
    SLOW_REQUEST_MS = int(os.getenv('SLOW_REQUEST_MS', 500))

    # Dashboard origins allowed by CORS
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv(
            'CORS_ORIGINS',
            'http://localhost:3000,http://localhost:3001'
        ).split(',')
        if origin.strip()
    ]


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv('TEST_DATABASE_URI', 'sqlite:///:memory:')
    SQLALCHEMY_ENGINE_OPTIONS = {}
    SLOT_LOCK_BACKEND = 'local'
    SLOT_LOCK_WAIT_SECONDS = 2
    MAIL_SUPPRESS_SEND = True
    BOOKING_CONFIRMATION_EMAILS = False
