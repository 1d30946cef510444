"""
Widget Property Store
=====================

Key-value properties per widget instance, optionally scoped per locale.
The Mailchimp api key is encrypted at rest with Fernet (AES-128-CBC).
"""

import base64
import hashlib
import logging
import os
import sqlite3
from datetime import datetime

from cryptography.fernet import Fernet, InvalidToken

from ...core.config import Config, get_config_value
from ...core.database import Database

logger = logging.getLogger(__name__)

# Properties stored encrypted
SECRET_KEYS = frozenset(['apikey'])

# Locale column value for properties that are not localized
NO_LOCALE = ''


def get_widget_db_path():
    """Get the widget database path from config or environment"""
    return Database.ensure_dir(get_config_value('WIDGET_DB', Config.WIDGET_DB))


def get_encryption_key():
    """
    Derive encryption key from Flask SECRET_KEY.
    Returns a Fernet-compatible key (32 bytes, base64 encoded).
    """
    try:
        from flask import current_app
        secret = current_app.config.get('SECRET_KEY') or 'default-insecure-key'
    except RuntimeError:
        # Outside of request context
        secret = os.environ.get('SECRET_KEY', os.environ.get('FLASK_SECRET_KEY', 'default-insecure-key'))

    key_bytes = hashlib.sha256(secret.encode()).digest()
    return base64.urlsafe_b64encode(key_bytes)


def encrypt_value(value):
    """Encrypt a value using Fernet"""
    if not value:
        return value
    return Fernet(get_encryption_key()).encrypt(value.encode()).decode()


def decrypt_value(encrypted_value):
    """Decrypt a value using Fernet"""
    if not encrypted_value:
        return encrypted_value
    try:
        return Fernet(get_encryption_key()).decrypt(encrypted_value.encode()).decode()
    except InvalidToken:
        # Stored before encryption was enabled, or SECRET_KEY rotated
        logger.warning("Could not decrypt widget property, returning stored value")
        return encrypted_value


def init_widget_db(db_path=None):
    """Initialize the widget properties table"""
    db_path = Database.ensure_dir(db_path) if db_path else get_widget_db_path()

    with Database.connect(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute(f'''
            CREATE TABLE IF NOT EXISTS {Config.WIDGET_PROPERTIES_TABLE} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                widget_id TEXT NOT NULL,
                locale TEXT NOT NULL DEFAULT '',
                key TEXT NOT NULL,
                value TEXT,
                is_secret BOOLEAN DEFAULT 0,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (widget_id, locale, key)
            )
        ''')
        cursor.execute(f'''
            CREATE INDEX IF NOT EXISTS idx_widget_properties_widget
            ON {Config.WIDGET_PROPERTIES_TABLE}(widget_id)
        ''')
        conn.commit()

    return db_path


class WidgetProperties:
    """Property bag of one widget instance, viewed from one locale"""

    def __init__(self, widget_id, locale=None, db_path=None):
        self.widget_id = str(widget_id)
        self.locale = locale or get_config_value('MAILCHIMP_DEFAULT_LOCALE', Config.MAILCHIMP_DEFAULT_LOCALE)
        self.db_path = db_path

    def _path(self):
        if self.db_path:
            Database.ensure_dir(self.db_path)
            return self.db_path
        return get_widget_db_path()

    def _read(self, key, locale, default):
        try:
            path = self._path()
            if not os.path.exists(path):
                return default

            with Database.connect(path) as conn:
                cursor = conn.cursor()
                cursor.execute(f'''
                    SELECT value, is_secret FROM {Config.WIDGET_PROPERTIES_TABLE}
                    WHERE widget_id = ? AND locale = ? AND key = ?
                ''', (self.widget_id, locale, key))
                row = cursor.fetchone()

            if not row:
                return default

            value, is_secret = row
            if is_secret and value:
                value = decrypt_value(value)
            return value if value is not None else default

        except sqlite3.Error as e:
            logger.error(f"Error reading widget property {key} of {self.widget_id}: {e}")
            return default

    def _write(self, key, value, locale):
        is_secret = key in SECRET_KEYS
        stored_value = encrypt_value(value) if is_secret and value else value

        try:
            path = init_widget_db(self.db_path)
            with Database.connect(path) as conn:
                conn.execute(f'''
                    INSERT INTO {Config.WIDGET_PROPERTIES_TABLE}
                        (widget_id, locale, key, value, is_secret, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(widget_id, locale, key) DO UPDATE SET
                        value = excluded.value,
                        is_secret = excluded.is_secret,
                        updated_at = excluded.updated_at
                ''', (self.widget_id, locale, key, stored_value, is_secret, datetime.now().isoformat()))
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Error saving widget property {key} of {self.widget_id}: {e}")
            raise

    def get(self, key, default=None):
        """Get a widget-scoped property"""
        return self._read(key, NO_LOCALE, default)

    def set(self, key, value):
        """Set a widget-scoped property"""
        self._write(key, value, NO_LOCALE)

    def delete(self, key):
        """Delete a widget-scoped property; returns True if a row was removed"""
        path = self._path()
        if not os.path.exists(path):
            return False
        try:
            with Database.connect(path) as conn:
                cursor = conn.cursor()
                cursor.execute(f'''
                    DELETE FROM {Config.WIDGET_PROPERTIES_TABLE}
                    WHERE widget_id = ? AND locale = ? AND key = ?
                ''', (self.widget_id, NO_LOCALE, key))
                conn.commit()
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error(f"Error deleting widget property {key} of {self.widget_id}: {e}")
            raise

    def get_localized(self, key, default=None, locale=None):
        """Get a property for the current (or given) locale"""
        return self._read(key, locale or self.locale, default)

    def set_localized(self, key, value, locale=None):
        """Set a property for the current (or given) locale"""
        self._write(key, value, locale or self.locale)
