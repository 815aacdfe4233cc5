import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone

from .config import Config, get_setting

# Fixed-width so stored timestamps sort and compare correctly as text
TIMESTAMP_FORMAT = '%Y-%m-%dT%H:%M:%S.%fZ'


def get_db_path():
    """Get the engine database path from config or environment"""
    return get_setting('PHISHTRAIN_DB') or os.path.join(Config.DB_DIR, 'phishtrain.db')


def utcnow():
    return datetime.now(timezone.utc)


def to_db_timestamp(value):
    """Normalise a datetime or ISO-8601 string into the stored UTC text form.

    Naive values are taken to be UTC. Empty values map to None.
    """
    if value is None or value == '':
        return None
    if isinstance(value, str):
        value = parse_timestamp(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(text):
    """Parse ISO-8601 text (including a trailing 'Z' and millisecond fractions)"""
    text = text.strip()
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        pass
    for fmt in ('%Y-%m-%dT%H:%M:%S.%f%z', '%Y-%m-%dT%H:%M:%S%z', '%Y-%m-%dT%H:%M:%S.%f'):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"Invalid timestamp: {text}")


def now_timestamp():
    return to_db_timestamp(utcnow())


class Database:

    @staticmethod
    def connect(path=None):
        path = path or get_db_path()
        conn = sqlite3.connect(path, timeout=30, isolation_level=None, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute('PRAGMA foreign_keys = ON')
        return conn

    @staticmethod
    @contextmanager
    def session(path=None, immediate=False):
        """
        Open a connection inside an explicit transaction.
        Commits on success, rolls back on any exception, always closes.
        immediate=True takes the write lock up front (BEGIN IMMEDIATE) so a
        read-then-write sequence cannot interleave with another writer.
        """
        conn = Database.connect(path)
        try:
            conn.execute('BEGIN IMMEDIATE' if immediate else 'BEGIN')
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute('ROLLBACK')
                raise
            conn.execute('COMMIT')
        finally:
            conn.close()

    @staticmethod
    def ensure_dir(path=None):
        path = path or get_db_path()
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        return path

    @staticmethod
    def enable_wal(path=None):
        """Concurrent tracking writers and readers share one file; WAL keeps them from blocking"""
        conn = Database.connect(path)
        try:
            conn.execute('PRAGMA journal_mode = WAL')
        finally:
            conn.close()


@contextmanager
def use_session(db_path, conn=None, immediate=False):
    """Reuse a caller's transaction when given one, otherwise open a fresh session"""
    if conn is not None:
        yield conn
        return
    with Database.session(db_path, immediate=immediate) as own:
        yield own
