"""
Campaigns Models
================

Database schema and the CampaignStore. Tables live in PHISHTRAIN_DB alongside the allowlist.

Status only moves forward (draft -> scheduled -> running -> completed); every
transition below is a conditional UPDATE so that two writers racing on the same
campaign cannot both succeed.
"""

import logging

from phishtrain.core import Config, Database
from phishtrain.core.database import get_db_path, now_timestamp, use_session

logger = logging.getLogger(__name__)

DRAFT = 'draft'
SCHEDULED = 'scheduled'
RUNNING = 'running'
COMPLETED = 'completed'

STATUSES = (DRAFT, SCHEDULED, RUNNING, COMPLETED)
EDITABLE_STATUSES = (DRAFT, SCHEDULED)
NON_TERMINAL_STATUSES = (DRAFT, SCHEDULED, RUNNING)

# Columns an operator may change while the campaign is editable
EDITABLE_FIELDS = (
    'name', 'template_key', 'subject', 'scheduled_time', 'end_time', 'from_email',
    'manager_email', 'smtp_host', 'smtp_port', 'smtp_user', 'smtp_pass',
    'approval', 'enable_sending',
)

BOOLEAN_FIELDS = ('approval', 'enable_sending', 'notified_high_clicks')


def init_campaigns_db(db_path=None):
    """Create campaigns, campaign_targets and campaign_events tables"""
    db_path = db_path or get_db_path()
    with Database.session(db_path) as conn:
        conn.execute(f'''
            CREATE TABLE IF NOT EXISTS {Config.CAMPAIGNS_TABLE} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                subject TEXT NOT NULL,
                template_key TEXT NOT NULL,
                scheduled_time TEXT,
                end_time TEXT,
                approval INTEGER NOT NULL DEFAULT 0,
                enable_sending INTEGER NOT NULL DEFAULT 0,
                smtp_host TEXT NOT NULL DEFAULT '',
                smtp_port INTEGER,
                smtp_user TEXT NOT NULL DEFAULT '',
                smtp_pass TEXT NOT NULL DEFAULT '',
                from_email TEXT NOT NULL DEFAULT '',
                manager_email TEXT NOT NULL DEFAULT '',
                notified_high_clicks INTEGER NOT NULL DEFAULT 0,
                status TEXT NOT NULL DEFAULT 'draft',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        ''')

        conn.execute(f'''
            CREATE TABLE IF NOT EXISTS {Config.TARGETS_TABLE} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                campaign_id INTEGER NOT NULL,
                email TEXT NOT NULL,
                name TEXT NOT NULL DEFAULT '',
                department TEXT NOT NULL DEFAULT '',
                token TEXT NOT NULL UNIQUE,
                delivered INTEGER NOT NULL DEFAULT 0,
                FOREIGN KEY (campaign_id) REFERENCES {Config.CAMPAIGNS_TABLE}(id)
            )
        ''')

        conn.execute(f'''
            CREATE TABLE IF NOT EXISTS {Config.EVENTS_TABLE} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                campaign_id INTEGER NOT NULL,
                email TEXT NOT NULL,
                event_type TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                ip_hash TEXT,
                simulated_entry INTEGER NOT NULL DEFAULT 0,
                FOREIGN KEY (campaign_id) REFERENCES {Config.CAMPAIGNS_TABLE}(id)
            )
        ''')

        conn.execute(f'''
            CREATE INDEX IF NOT EXISTS idx_targets_campaign
            ON {Config.TARGETS_TABLE}(campaign_id)
        ''')
        conn.execute(f'''
            CREATE INDEX IF NOT EXISTS idx_events_campaign_type
            ON {Config.EVENTS_TABLE}(campaign_id, event_type)
        ''')
        conn.execute(f'''
            CREATE INDEX IF NOT EXISTS idx_campaigns_status
            ON {Config.CAMPAIGNS_TABLE}(status)
        ''')

    logger.info("Campaigns database tables created/verified successfully")


def _row_to_dict(row):
    """Convert a sqlite3.Row to a dict with real booleans"""
    d = dict(row)
    for key in BOOLEAN_FIELDS:
        if key in d:
            d[key] = bool(d[key])
    return d


def _in_clause(values):
    return ','.join('?' for _ in values)


class CampaignStore:

    def __init__(self, db_path=None):
        self.db_path = db_path or get_db_path()

    def create(self, data, conn=None):
        """Insert a campaign row. Returns the new campaign ID."""
        now = now_timestamp()
        with use_session(self.db_path, conn) as c:
            cursor = c.execute(f'''
                INSERT INTO {Config.CAMPAIGNS_TABLE} (
                    name, subject, template_key, scheduled_time, end_time, approval,
                    enable_sending, smtp_host, smtp_port, smtp_user, smtp_pass, from_email,
                    manager_email, status, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                data['name'],
                data['subject'],
                data['template_key'],
                data.get('scheduled_time'),
                data.get('end_time'),
                int(bool(data.get('approval', False))),
                int(bool(data.get('enable_sending', False))),
                data.get('smtp_host') or '',
                data.get('smtp_port'),
                data.get('smtp_user') or '',
                data.get('smtp_pass') or '',
                data.get('from_email') or '',
                data.get('manager_email') or '',
                data.get('status', DRAFT),
                now,
                now,
            ))
            return cursor.lastrowid

    def get(self, campaign_id, conn=None):
        with use_session(self.db_path, conn) as c:
            row = c.execute(
                f'SELECT * FROM {Config.CAMPAIGNS_TABLE} WHERE id = ?', (campaign_id,)
            ).fetchone()
        return _row_to_dict(row) if row else None

    def list_all(self):
        """All campaigns, newest first, with their recipient count"""
        with Database.session(self.db_path) as conn:
            rows = conn.execute(f'''
                SELECT c.*, (
                    SELECT COUNT(*) FROM {Config.TARGETS_TABLE} t WHERE t.campaign_id = c.id
                ) AS recipient_count
                FROM {Config.CAMPAIGNS_TABLE} c
                ORDER BY c.created_at DESC, c.id DESC
            ''').fetchall()
        return [_row_to_dict(row) for row in rows]

    def update_editable(self, campaign_id, fields, conn=None):
        """Apply edits only while status is draft/scheduled. Returns True if a row changed."""
        assignments, values = [], []
        for key in EDITABLE_FIELDS:
            if key in fields:
                value = fields[key]
                if key in ('approval', 'enable_sending'):
                    value = int(bool(value))
                assignments.append(f'{key} = ?')
                values.append(value)
        assignments.append('updated_at = ?')
        values.append(now_timestamp())

        with use_session(self.db_path, conn) as c:
            cursor = c.execute(f'''
                UPDATE {Config.CAMPAIGNS_TABLE}
                SET {', '.join(assignments)}
                WHERE id = ? AND status IN ({_in_clause(EDITABLE_STATUSES)})
            ''', (*values, campaign_id, *EDITABLE_STATUSES))
            return cursor.rowcount == 1

    def approve(self, campaign_id, conn=None):
        """Set approval while the campaign is not completed. Status is untouched."""
        with use_session(self.db_path, conn) as c:
            cursor = c.execute(f'''
                UPDATE {Config.CAMPAIGNS_TABLE}
                SET approval = 1, updated_at = ?
                WHERE id = ? AND status IN ({_in_clause(NON_TERMINAL_STATUSES)})
            ''', (now_timestamp(), campaign_id, *NON_TERMINAL_STATUSES))
            return cursor.rowcount == 1

    def queue_send(self, campaign_id, now, conn=None):
        """Mark an approved, editable campaign as scheduled and sendable now.

        An already-due scheduled_time is kept; a missing or future one becomes `now`.
        """
        with use_session(self.db_path, conn) as c:
            cursor = c.execute(f'''
                UPDATE {Config.CAMPAIGNS_TABLE}
                SET status = ?,
                    scheduled_time = CASE
                        WHEN scheduled_time IS NOT NULL AND scheduled_time <= ? THEN scheduled_time
                        ELSE ?
                    END,
                    updated_at = ?
                WHERE id = ? AND approval = 1 AND status IN ({_in_clause(EDITABLE_STATUSES)})
            ''', (SCHEDULED, now, now, now, campaign_id, *EDITABLE_STATUSES))
            return cursor.rowcount == 1

    def mark_scheduled(self, campaign_id, conn=None):
        """draft -> scheduled once a schedule exists"""
        with use_session(self.db_path, conn) as c:
            cursor = c.execute(f'''
                UPDATE {Config.CAMPAIGNS_TABLE}
                SET status = ?, updated_at = ?
                WHERE id = ? AND status = ? AND scheduled_time IS NOT NULL
            ''', (SCHEDULED, now_timestamp(), campaign_id, DRAFT))
            return cursor.rowcount == 1

    def start_if_due(self, campaign_id, now, conn=None):
        """Compare-and-set to running. Succeeds only for an approved, due, not-yet-running
        campaign, and only for the first caller."""
        with use_session(self.db_path, conn) as c:
            cursor = c.execute(f'''
                UPDATE {Config.CAMPAIGNS_TABLE}
                SET status = ?, updated_at = ?
                WHERE id = ?
                  AND approval = 1
                  AND status IN ({_in_clause(EDITABLE_STATUSES)})
                  AND scheduled_time IS NOT NULL
                  AND scheduled_time <= ?
            ''', (RUNNING, now_timestamp(), campaign_id, *EDITABLE_STATUSES, now))
            return cursor.rowcount == 1

    def complete_if_due(self, campaign_id, now, conn=None):
        """Compare-and-set running -> completed once end_time has passed"""
        with use_session(self.db_path, conn) as c:
            cursor = c.execute(f'''
                UPDATE {Config.CAMPAIGNS_TABLE}
                SET status = ?, updated_at = ?
                WHERE id = ?
                  AND status = ?
                  AND end_time IS NOT NULL
                  AND end_time <= ?
            ''', (COMPLETED, now_timestamp(), campaign_id, RUNNING, now))
            return cursor.rowcount == 1

    def latch_high_clicks(self, campaign_id, conn=None):
        """Flip notified_high_clicks false -> true. Only one caller ever gets True."""
        with use_session(self.db_path, conn) as c:
            cursor = c.execute(f'''
                UPDATE {Config.CAMPAIGNS_TABLE}
                SET notified_high_clicks = 1, updated_at = ?
                WHERE id = ? AND notified_high_clicks = 0
            ''', (now_timestamp(), campaign_id))
            return cursor.rowcount == 1

    def due_for_running(self, now):
        with Database.session(self.db_path) as conn:
            rows = conn.execute(f'''
                SELECT * FROM {Config.CAMPAIGNS_TABLE}
                WHERE approval = 1
                  AND status IN ({_in_clause(EDITABLE_STATUSES)})
                  AND scheduled_time IS NOT NULL
                  AND scheduled_time <= ?
                ORDER BY scheduled_time ASC, id ASC
            ''', (*EDITABLE_STATUSES, now)).fetchall()
        return [_row_to_dict(row) for row in rows]

    def due_for_completion(self, now):
        with Database.session(self.db_path) as conn:
            rows = conn.execute(f'''
                SELECT * FROM {Config.CAMPAIGNS_TABLE}
                WHERE status = ?
                  AND end_time IS NOT NULL
                  AND end_time <= ?
                ORDER BY end_time ASC, id ASC
            ''', (RUNNING, now)).fetchall()
        return [_row_to_dict(row) for row in rows]
