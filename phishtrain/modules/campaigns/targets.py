"""
Target Registry
===============

Materialises campaign targets from a recipient list. Each target is a snapshot
of the employee at creation time plus a freshly issued tracking token.
Replacing a campaign's recipients deletes every existing target first, so links
already mailed out stop resolving.
"""

import logging
import sqlite3

from phishtrain.core import Config, IntegrityError, ValidationError
from phishtrain.core.database import get_db_path, use_session
from phishtrain.modules.allowlist.safety import email_domain, is_domain_allowed

from .tokens import issue_token

logger = logging.getLogger(__name__)


def _row_to_dict(row):
    d = dict(row)
    if 'delivered' in d:
        d['delivered'] = bool(d['delivered'])
    return d


class TargetStore:

    def __init__(self, db_path=None):
        self.db_path = db_path or get_db_path()

    def replace(self, campaign_id, employees, conn=None):
        """Delete all targets for the campaign and insert one per employee.

        Runs inside a single transaction: a token collision raises IntegrityError
        and leaves the previous target set untouched.
        """
        with use_session(self.db_path, conn, immediate=True) as c:
            c.execute(f'DELETE FROM {Config.TARGETS_TABLE} WHERE campaign_id = ?', (campaign_id,))
            try:
                for employee in employees:
                    token = issue_token(f"{employee['email']}{campaign_id}")
                    c.execute(f'''
                        INSERT INTO {Config.TARGETS_TABLE} (campaign_id, email, name, department, token)
                        VALUES (?, ?, ?, ?, ?)
                    ''', (campaign_id, employee['email'], employee.get('name') or '',
                          employee.get('department') or '', token))
            except sqlite3.IntegrityError as e:
                logger.critical(f"Token integrity violation for campaign {campaign_id}: {e}")
                raise IntegrityError(f"Could not issue unique tokens for campaign {campaign_id}") from e

    def list(self, campaign_id, conn=None):
        with use_session(self.db_path, conn) as c:
            rows = c.execute(
                f'SELECT * FROM {Config.TARGETS_TABLE} WHERE campaign_id = ? ORDER BY id ASC',
                (campaign_id,)
            ).fetchall()
        return [_row_to_dict(row) for row in rows]

    def count_delivered(self, campaign_id):
        with use_session(self.db_path) as c:
            return c.execute(
                f'SELECT COUNT(*) FROM {Config.TARGETS_TABLE} WHERE campaign_id = ? AND delivered = 1',
                (campaign_id,)
            ).fetchone()[0]

    def find_by_token(self, token):
        """Target dict for the token, or None for unknown/stale tokens"""
        if not token:
            return None
        with use_session(self.db_path) as c:
            row = c.execute(
                f'SELECT * FROM {Config.TARGETS_TABLE} WHERE token = ?', (token,)
            ).fetchone()
        return _row_to_dict(row) if row else None

    def mark_delivered(self, target_id):
        with use_session(self.db_path) as c:
            c.execute(f'UPDATE {Config.TARGETS_TABLE} SET delivered = 1 WHERE id = ?', (target_id,))


class TargetRegistry:
    """Validates recipients against the allowlist and owns the campaign's target set"""

    def __init__(self, targets, allowlist):
        self.targets = targets
        self.allowlist = allowlist

    def validate_recipients(self, recipient_emails, conn=None):
        """Return the allowlisted employees for the recipients or raise ValidationError.

        Nothing is written; callers use the result to create targets.
        """
        if not recipient_emails or not isinstance(recipient_emails, (list, tuple, set)):
            raise ValidationError('Recipients are required and must be on the allowlist.')

        emails = []
        for email in recipient_emails:
            if not isinstance(email, str) or not email.strip():
                raise ValidationError('Recipients must be non-empty email addresses.', [repr(email)])
            normalised = email.strip().lower()
            if normalised not in emails:
                emails.append(normalised)

        forbidden = [e for e in emails if not is_domain_allowed(e)]
        if forbidden:
            domains = sorted({email_domain(e) or '(none)' for e in forbidden})
            raise ValidationError(
                f"Recipients contain forbidden domains: {', '.join(domains)} ({', '.join(forbidden)})",
                forbidden
            )

        employees = self.allowlist.lookup(emails, conn=conn)
        found = {e['email'] for e in employees}
        missing = [e for e in emails if e not in found]
        if missing:
            raise ValidationError(
                f"All recipients must exist in the allowlist. Not found: {', '.join(missing)}",
                missing
            )
        return employees

    def set_targets(self, campaign_id, recipient_emails, conn=None):
        """Validate, then replace every target of the campaign (reissuing all tokens)"""
        employees = self.validate_recipients(recipient_emails, conn=conn)
        self.targets.replace(campaign_id, employees, conn=conn)
        logger.info(f"Campaign {campaign_id}: {len(employees)} targets issued")
        return self.targets.list(campaign_id, conn=conn)

    def find_by_token(self, token):
        return self.targets.find_by_token(token)
