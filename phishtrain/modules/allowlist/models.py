"""
Allowlist Models
================

Employee directory backing every campaign. Identity is the lower-cased email;
name and department are display fields that may be replaced at any time.
"""

import logging

from phishtrain.core import Config, Database
from phishtrain.core.database import get_db_path, now_timestamp, use_session

from .safety import is_domain_allowed, is_valid_email, email_domain

logger = logging.getLogger(__name__)


def init_employees_db(db_path=None):
    """Create the employees table"""
    db_path = db_path or get_db_path()
    with Database.session(db_path) as conn:
        conn.execute(f'''
            CREATE TABLE IF NOT EXISTS {Config.EMPLOYEES_TABLE} (
                email TEXT PRIMARY KEY,
                name TEXT NOT NULL DEFAULT '',
                department TEXT NOT NULL DEFAULT '',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        ''')
    logger.info("Employees table created/verified successfully")


def parse_csv(text):
    """Parse `email,name,department` lines into entry dicts. Blank lines are ignored."""
    entries = []
    for line in text.splitlines():
        if not line.strip():
            continue
        parts = [part.strip() for part in line.split(',')]
        parts += [''] * (3 - len(parts))
        email, name, department = parts[:3]
        if not email:
            continue
        entries.append({'email': email, 'name': name, 'department': department})
    return entries


class AllowlistStore:
    """Lookup and upsert of allowlisted employees"""

    def __init__(self, db_path=None):
        self.db_path = db_path or get_db_path()

    def list_all(self):
        with Database.session(self.db_path) as conn:
            rows = conn.execute(
                f'SELECT email, name, department FROM {Config.EMPLOYEES_TABLE} ORDER BY email ASC'
            ).fetchall()
        return [dict(row) for row in rows]

    def lookup(self, emails, conn=None):
        """Return matched employees for the given addresses (case-insensitive)"""
        wanted = sorted({e.strip().lower() for e in emails if e and e.strip()})
        if not wanted:
            return []
        placeholders = ','.join('?' for _ in wanted)
        with use_session(self.db_path, conn) as c:
            rows = c.execute(
                f'SELECT email, name, department FROM {Config.EMPLOYEES_TABLE} '
                f'WHERE email IN ({placeholders}) ORDER BY email ASC',
                wanted
            ).fetchall()
        return [dict(row) for row in rows]

    def is_domain_allowed(self, email):
        return is_domain_allowed(email)

    def upsert_many(self, entries):
        """Insert or replace employees.

        Returns (saved_emails, rejected) where rejected is a list of
        {'email', 'reason'} for entries skipped by the safety checks.
        """
        saved, rejected = [], []
        now = now_timestamp()
        with Database.session(self.db_path) as conn:
            for entry in entries:
                if not isinstance(entry, dict):
                    continue
                email = entry.get('email') or ''
                if not isinstance(email, str):
                    rejected.append({'email': str(email), 'reason': 'invalid email'})
                    continue
                email = email.strip().lower()
                if not email:
                    continue
                if any(not isinstance(entry.get(key) or '', str) for key in ('name', 'department')):
                    rejected.append({'email': email, 'reason': 'invalid name or department'})
                    continue
                if not is_valid_email(email):
                    rejected.append({'email': email, 'reason': 'invalid email'})
                    continue
                if not is_domain_allowed(email):
                    logger.warning(f"Rejected allowlist entry for forbidden domain: {email}")
                    rejected.append({'email': email, 'reason': f'forbidden domain {email_domain(email)}'})
                    continue
                conn.execute(f'''
                    INSERT INTO {Config.EMPLOYEES_TABLE} (email, name, department, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(email) DO UPDATE SET
                        name = excluded.name,
                        department = excluded.department,
                        updated_at = excluded.updated_at
                ''', (email, entry.get('name') or '', entry.get('department') or '', now, now))
                saved.append(email)
        return saved, rejected
