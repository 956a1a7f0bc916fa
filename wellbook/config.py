import os
from datetime import time

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-key')

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///wellbook.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Mail (booking confirmations and cancellations)
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'localhost')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 25))
    MAIL_USE_TLS = _env_bool('MAIL_USE_TLS', False)
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'bookings@wellbook.local')
    NOTIFICATIONS_ENABLED = _env_bool('NOTIFICATIONS_ENABLED', True)

    # Slot grid
    SLOT_INTERVAL_MINUTES = 30
    WORKDAY_START = time(9, 0)
    WORKDAY_END = time(17, 0)
    BREAK_START = time(12, 0)
    BREAK_END = time(13, 0)

    # Booking policy
    BOOKING_LEAD_MINUTES = int(os.environ.get('BOOKING_LEAD_MINUTES', 60))
    DEFAULT_CANCELLATION_NOTICE_HOURS = 24
    BOOKING_TIMEOUT_SECONDS = float(os.environ.get('BOOKING_TIMEOUT_SECONDS', 10))
    BOOKING_RETRY_ATTEMPTS = int(os.environ.get('BOOKING_RETRY_ATTEMPTS', 3))
    BOOKING_RETRY_BASE_DELAY = float(os.environ.get('BOOKING_RETRY_BASE_DELAY', 0.25))


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    WTF_CSRF_ENABLED = False
    MAIL_SUPPRESS_SEND = True
    LOG_LEVEL = 'WARNING'
    BOOKING_RETRY_BASE_DELAY = 0
