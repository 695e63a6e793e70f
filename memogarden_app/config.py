# File: memogarden_app/config.py
# Application configuration.

import os

# Project root (the directory holding the memogarden_app package)
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))

# Default SQLite database location, inside database/ at the project root
DATABASE_PATH = os.path.join(BASE_DIR, "database", "memogarden.db")


class Config:
    """
    Configuration class for the Flask application.
    """
    # Secret key protecting the session cookie
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'a_very_secret_key_for_memogarden'

    # Database connection
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or f'sqlite:///{DATABASE_PATH}'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Zone used when a user has no timezone of their own
    SYSTEM_TIMEZONE = 'UTC'

    # Lazy health resync on authenticated requests
    HEALTH_SYNC_ON_REQUEST = True

    # Daily background resync of every account
    HEALTH_SYNC_JOB_ENABLED = os.environ.get('HEALTH_SYNC_JOB_ENABLED', '1') == '1'
    HEALTH_SYNC_JOB_HOUR = 3
    SCHEDULER_API_ENABLED = False

    @staticmethod
    def ensure_directories() -> None:
        """Create the database directory for the default SQLite location."""
        os.makedirs(os.path.dirname(DATABASE_PATH), exist_ok=True)
