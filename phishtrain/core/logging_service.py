"""
Centralized logging service for PhishTrain.
Provides structured logging with database storage alongside the stdlib logger.
"""

import hashlib
import json
import logging
from datetime import timedelta

from flask import request, has_request_context

from .config import Config
from .database import Database, get_db_path, now_timestamp, to_db_timestamp, utcnow

console = logging.getLogger(__name__)


def hash_ip(ip):
    """One-way hash of a client address; raw addresses are never stored"""
    if not ip or ip == 'unknown':
        return None
    return hashlib.sha256(ip.encode('utf-8')).hexdigest()


class LoggingService:
    """Centralized logging service for application-wide logging"""

    @staticmethod
    def _ensure_logs_table(db_path=None):
        """Ensure the app_logs table exists"""
        conn = Database.connect(db_path)
        try:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {Config.LOGS_TABLE} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    level TEXT NOT NULL,
                    source TEXT NOT NULL,
                    message TEXT NOT NULL,
                    details TEXT,
                    ip_hash TEXT,
                    request_path TEXT
                )
            """)
            conn.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_logs_timestamp
                ON {Config.LOGS_TABLE}(timestamp DESC)
            """)
            conn.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_logs_source
                ON {Config.LOGS_TABLE}(source)
            """)
        finally:
            conn.close()

    @staticmethod
    def _get_request_context():
        """Extract request context information"""
        if not has_request_context():
            return None, None

        try:
            ip_address = request.headers.get('X-Forwarded-For', request.remote_addr)
            if ip_address and ',' in ip_address:
                ip_address = ip_address.split(',')[0].strip()
            return hash_ip(ip_address), request.path
        except Exception:
            return None, None

    @staticmethod
    def log(level, source, message, details=None):
        """
        Log a message to the database

        Args:
            level (str): Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            source (str): Source component (campaigns, tracking, scheduler, etc.)
            message (str): Main log message
            details (str/dict): Additional details (will be JSON-encoded if dict)
        """
        try:
            ip_hash, request_path = LoggingService._get_request_context()

            if isinstance(details, dict):
                details = json.dumps(details, indent=2, default=str)

            with Database.session(get_db_path()) as conn:
                conn.execute(f"""
                    INSERT INTO {Config.LOGS_TABLE}
                    (timestamp, level, source, message, details, ip_hash, request_path)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """, (
                    now_timestamp(), level.upper(), source, message, details,
                    ip_hash, request_path
                ))

        except Exception as e:
            # Fallback to console logging if database fails
            console.error(f"[{level.upper()}] [{source}] {message} {details or ''}")
            console.warning(f"Logging service error: {e}")

    @staticmethod
    def info(source, message, details=None):
        """Log info message"""
        LoggingService.log('INFO', source, message, details)

    @staticmethod
    def warning(source, message, details=None):
        """Log warning message"""
        LoggingService.log('WARNING', source, message, details)

    @staticmethod
    def error(source, message, details=None):
        """Log error message"""
        LoggingService.log('ERROR', source, message, details)

    @staticmethod
    def critical(source, message, details=None):
        """Log critical message"""
        LoggingService.log('CRITICAL', source, message, details)

    @staticmethod
    def recent(source=None, limit=50):
        """Most recent log rows, optionally filtered by source"""
        with Database.session(get_db_path()) as conn:
            if source:
                rows = conn.execute(f"""
                    SELECT * FROM {Config.LOGS_TABLE} WHERE source = ?
                    ORDER BY id DESC LIMIT ?
                """, (source, limit)).fetchall()
            else:
                rows = conn.execute(f"""
                    SELECT * FROM {Config.LOGS_TABLE} ORDER BY id DESC LIMIT ?
                """, (limit,)).fetchall()
        return [dict(row) for row in rows]

    @staticmethod
    def cleanup_old_logs(days_to_keep=30):
        """Clean up old log entries"""
        try:
            cutoff = to_db_timestamp(utcnow() - timedelta(days=days_to_keep))
            with Database.session(get_db_path()) as conn:
                cursor = conn.execute(f"""
                    DELETE FROM {Config.LOGS_TABLE}
                    WHERE timestamp < ?
                """, (cutoff,))
                deleted_count = cursor.rowcount

            LoggingService.info('system', f"Cleaned up {deleted_count} old log entries")
            return deleted_count

        except Exception as e:
            LoggingService.error('system', f"Failed to cleanup old logs: {e}")
            return 0


def db_log(level, source, message, details=None):
    """Shorthand used by modules: persistent log entry that never raises"""
    LoggingService.log(level, source, message, details)


# Convenience instance for easy importing
logger = LoggingService()
