# app/config.py

import os


class Config:
    # Flask Secret Key
    SECRET_KEY = os.getenv('SECRET_KEY', 'your_secret_key')

    # Database Configuration
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URI',
        'postgresql://postgres:postgres@db:5432/booking_db'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Database connection pool configuration
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,       # Validate connections before using
        "pool_recycle": 1800,        # Recycle every 30 minutes
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "connect_args": {
            "connect_timeout": 10,
            "options": "-c statement_timeout=30000"  # 30s query timeout
        }
    }

    # Mail Configuration
    MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = int(os.getenv("MAIL_PORT", 587))
    MAIL_USE_TLS = os.getenv("MAIL_USE_TLS", "true").lower() in ("true", "1", "t")
    MAIL_USE_SSL = os.getenv("MAIL_USE_SSL", "false").lower() in ("true", "1", "t")
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", "no-reply@slotbook.app")

    # Redis Configuration (webhook event de-duplication)
    REDIS_URL = os.getenv('REDIS_URL')
    REDIS_TLS_ENABLED = os.getenv('REDIS_TLS_ENABLED', 'false').lower() == 'true'

    # Auth
    JWT_SECRET = os.getenv('JWT_SECRET')

    # Stripe Configuration
    STRIPE_SECRET_KEY = os.getenv('STRIPE_SECRET_KEY')
    STRIPE_WEBHOOK_SECRET = os.getenv('STRIPE_WEBHOOK_SECRET')

    # Demo mode: skip Stripe and mark bookings Paid. Never enable in production.
    BYPASS_STRIPE_PAYMENT = os.getenv('BYPASS_STRIPE_PAYMENT', 'false').lower() == 'true'

    # Booking
    FRONTEND_URL = os.getenv('FRONTEND_URL', 'http://localhost:3000')
    BOOKING_CURRENCY = os.getenv('BOOKING_CURRENCY', 'inr')
    PAYMENT_SESSION_EXPIRY_MINUTES = int(os.getenv('PAYMENT_SESSION_EXPIRY_MINUTES', 30))
    GAME_CANCELLATION_CUTOFF_HOURS = 2
    VENUE_TIMEZONE = os.getenv('VENUE_TIMEZONE', 'Asia/Kolkata')
    WEBHOOK_EVENT_TTL_SECONDS = 7 * 24 * 3600
