"""
Event Recorder
==============

Append-only log of recipient interactions. Nothing here deduplicates: repeated
opens are stored as repeated rows and every rate is derived at read time.
"""

import csv
import io
import logging

from phishtrain.core import Config, hash_ip
from phishtrain.core.database import get_db_path, now_timestamp, use_session

logger = logging.getLogger(__name__)

DELIVERED = 'delivered'
OPENED = 'opened'
CLICKED = 'clicked'
SUBMITTED = 'submitted'

EVENT_TYPES = (DELIVERED, OPENED, CLICKED, SUBMITTED)

EXPORT_COLUMNS = ('email', 'event_type', 'timestamp', 'simulated_entry')


class EventStore:

    def __init__(self, db_path=None):
        self.db_path = db_path or get_db_path()

    def record(self, campaign_id, email, event_type, raw_origin=None, simulated_entry=False):
        """Append one event. raw_origin is hashed; None stores no hash."""
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {event_type}")
        with use_session(self.db_path) as conn:
            cursor = conn.execute(f'''
                INSERT INTO {Config.EVENTS_TABLE}
                (campaign_id, email, event_type, timestamp, ip_hash, simulated_entry)
                VALUES (?, ?, ?, ?, ?, ?)
            ''', (campaign_id, email, event_type, now_timestamp(), hash_ip(raw_origin),
                  int(bool(simulated_entry))))
            return cursor.lastrowid

    def aggregate(self, campaign_id, distinct=False):
        """Counts per event type; every type is present, zero when unseen.

        distinct=True counts recipients instead of rows.
        """
        measure = 'COUNT(DISTINCT email)' if distinct else 'COUNT(*)'
        counts = {event_type: 0 for event_type in EVENT_TYPES}
        with use_session(self.db_path) as conn:
            rows = conn.execute(f'''
                SELECT event_type, {measure} AS count FROM {Config.EVENTS_TABLE}
                WHERE campaign_id = ?
                GROUP BY event_type
            ''', (campaign_id,)).fetchall()
        for row in rows:
            counts[row['event_type']] = row['count']
        return counts

    def list(self, campaign_id, event_type=None):
        query = f'SELECT * FROM {Config.EVENTS_TABLE} WHERE campaign_id = ?'
        params = [campaign_id]
        if event_type:
            query += ' AND event_type = ?'
            params.append(event_type)
        query += ' ORDER BY timestamp ASC, id ASC'
        with use_session(self.db_path) as conn:
            rows = conn.execute(query, params).fetchall()
        return [dict(row, simulated_entry=bool(row['simulated_entry'])) for row in rows]

    def export_csv(self, campaign_id):
        """Event log as CSV text, oldest first"""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator='\n')
        writer.writerow(EXPORT_COLUMNS)
        for event in self.list(campaign_id):
            writer.writerow([
                event['email'], event['event_type'], event['timestamp'],
                int(event['simulated_entry']),
            ])
        return buffer.getvalue()
