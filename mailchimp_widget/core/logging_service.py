"""
Centralized logging service for the Mailchimp widget.
Provides structured logging with database storage, so subscription events
survive container rebuilds alongside the widget properties.
"""

import json
import logging
from datetime import datetime
from flask import request, has_request_context
from .database import Database
from .config import Config, get_config_value

_stdout_logger = logging.getLogger(__name__)


class LoggingService:
    """Centralized logging service for widget-wide logging"""

    @staticmethod
    def _db_path():
        return Database.ensure_dir(get_config_value('ANALYTICS_DB', Config.ANALYTICS_DB))

    @staticmethod
    def _ensure_logs_table():
        """Ensure the app_logs table exists"""
        with Database.connect(LoggingService._db_path()) as conn:
            cursor = conn.cursor()
            cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS {Config.LOGS_TABLE} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    level TEXT NOT NULL,
                    source TEXT NOT NULL,
                    message TEXT NOT NULL,
                    details TEXT,
                    ip_address TEXT,
                    user_agent TEXT,
                    request_path TEXT,
                    widget_id TEXT
                )
            """)
            cursor.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_logs_timestamp
                ON {Config.LOGS_TABLE}(timestamp DESC)
            """)
            cursor.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_logs_source
                ON {Config.LOGS_TABLE}(source)
            """)
            conn.commit()

    @staticmethod
    def _get_request_context():
        """Extract request context information"""
        if not has_request_context():
            return None, None, None

        ip_address = request.headers.get('X-Forwarded-For', request.remote_addr)
        if ip_address and ',' in ip_address:
            ip_address = ip_address.split(',')[0].strip()

        user_agent = request.headers.get('User-Agent', '')[:500]
        return ip_address, user_agent, request.path

    @staticmethod
    def log(level, source, message, details=None, widget_id=None):
        """
        Log a message to the database

        Args:
            level (str): Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            source (str): Source component (subscribe, properties, mailchimp)
            message (str): Main log message
            details (str/dict): Additional details (will be JSON-encoded if dict)
            widget_id (str): Optional widget instance identifier
        """
        try:
            LoggingService._ensure_logs_table()
            ip_address, user_agent, request_path = LoggingService._get_request_context()

            if isinstance(details, dict):
                details = json.dumps(details, indent=2, default=str)

            with Database.connect(LoggingService._db_path()) as conn:
                cursor = conn.cursor()
                cursor.execute(f"""
                    INSERT INTO {Config.LOGS_TABLE}
                    (timestamp, level, source, message, details, ip_address, user_agent, request_path, widget_id)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    datetime.now().isoformat(), level.upper(), source, message, details,
                    ip_address, user_agent, request_path, widget_id
                ))
                conn.commit()

        except Exception as e:
            # Fallback to stdout logging if database fails
            _stdout_logger.log(
                getattr(logging, level.upper(), logging.INFO),
                f"[{source}] {message} {details or ''}".strip()
            )
            _stdout_logger.debug(f"Logging service error: {e}")

    @staticmethod
    def recent(source=None, widget_id=None, limit=50):
        """Return the most recent log entries, newest first, optionally filtered"""
        LoggingService._ensure_logs_table()

        query = f"SELECT timestamp, level, source, message, details, widget_id FROM {Config.LOGS_TABLE}"
        conditions, params = [], []
        if source:
            conditions.append("source = ?")
            params.append(source)
        if widget_id:
            conditions.append("widget_id = ?")
            params.append(str(widget_id))
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)

        with Database.connect(LoggingService._db_path()) as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            keys = ('timestamp', 'level', 'source', 'message', 'details', 'widget_id')
            return [dict(zip(keys, row)) for row in cursor.fetchall()]


def db_log(level, source, message, details=None, widget_id=None):
    """Shortcut used by the modules' _db_log helpers"""
    LoggingService.log(level, source, message, details, widget_id)
