import os
from dotenv import load_dotenv

load_dotenv(override=True)

class Config:
    """
    Base configuration for the Mailchimp widget.
    Host projects should provide database paths via environment variables.
    """
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY')

    # Get DB_DIR from environment, or use a default if not set
    DB_DIR = os.getenv('DB_DIR', os.path.join(os.getcwd(), 'databases'))

    # Database paths - use environment variables or fallback to DB_DIR
    WIDGET_DB = os.getenv('WIDGET_DB', os.path.join(DB_DIR, "widgets.db"))
    ANALYTICS_DB = os.getenv('ANALYTICS_DB', os.path.join(DB_DIR, "analytics_log.db"))

    # Table names
    WIDGET_PROPERTIES_TABLE = "widget_properties"
    LOGS_TABLE = "app_logs"

    # Mailchimp provider settings
    MAILCHIMP_TIMEOUT = float(os.getenv('MAILCHIMP_TIMEOUT', '10'))
    MAILCHIMP_MAX_RETRIES = int(os.getenv('MAILCHIMP_MAX_RETRIES', '3'))
    MAILCHIMP_RETRY_DELAY = float(os.getenv('MAILCHIMP_RETRY_DELAY', '1'))

    # Locale used when the host app does not pass one
    MAILCHIMP_DEFAULT_LOCALE = os.getenv('MAILCHIMP_DEFAULT_LOCALE', 'en')

    # Comma separated list of origins allowed to fetch the embeddable form spec
    MAILCHIMP_EMBED_ORIGINS = [
        o.strip() for o in os.getenv('MAILCHIMP_EMBED_ORIGINS', '').split(',') if o.strip()
    ]

    # Admin login endpoint used by the properties editor guard
    WIDGET_LOGIN_ENDPOINT = os.getenv("WIDGET_LOGIN_ENDPOINT", "admin.login")


def get_config_value(key, default=None):
    """Get config value: app.config > host Config class > env var."""
    try:
        from flask import current_app
        val = current_app.config.get(key)
        if val is not None:
            return val
    except RuntimeError:
        pass
    try:
        from config import Config as HostConfig
        if hasattr(HostConfig, key):
            return getattr(HostConfig, key)
    except ImportError:
        pass
    if hasattr(Config, key):
        return getattr(Config, key)
    return os.getenv(key, default)
