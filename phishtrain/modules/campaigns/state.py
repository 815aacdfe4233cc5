"""
Campaign State Machine
======================

draft -> scheduled -> running -> completed, never backwards.

Operator actions (create, edit, approve, queue_send) are validated and applied
inside one write transaction each. The scheduler-driven promotions are
conditional updates; whichever caller wins the update performs the side effect.
"""

import logging

from phishtrain.core import Database, NotFoundError, ValidationError, db_log
from phishtrain.core.database import now_timestamp, to_db_timestamp
from phishtrain.modules.allowlist.safety import is_valid_email

from .models import (
    COMPLETED, DRAFT, EDITABLE_FIELDS, EDITABLE_STATUSES, RUNNING, SCHEDULED
)

logger = logging.getLogger(__name__)

SECRET_FIELDS = ('smtp_pass',)


def redact(campaign):
    """Campaign dict safe to return over the API"""
    if campaign is None:
        return None
    safe = dict(campaign)
    for key in SECRET_FIELDS:
        if key in safe:
            safe[key] = '********' if safe[key] else ''
    return safe


class CampaignStateMachine:

    def __init__(self, campaigns, registry, catalog, dispatcher, clock=now_timestamp):
        self.campaigns = campaigns
        self.registry = registry
        self.catalog = catalog
        self.dispatcher = dispatcher
        self.clock = clock

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _clean_fields(self, data, current=None):
        """Normalise editable fields present in `data`. Raises ValidationError."""
        fields = {}
        for key in EDITABLE_FIELDS:
            if key in data:
                fields[key] = data[key]

        for key in ('name', 'template_key', 'subject', 'manager_email', 'from_email'):
            if key in fields and fields[key] is not None and not isinstance(fields[key], str):
                raise ValidationError(f'{key} must be a string', [key])

        if 'name' in fields:
            name = (fields['name'] or '').strip()
            if not name:
                raise ValidationError('Campaign name is required.', ['name'])
            fields['name'] = name

        if 'template_key' in fields:
            if not self.catalog.find_by_key(fields['template_key']):
                raise ValidationError('Invalid template', [str(fields['template_key'])])

        if 'subject' in fields:
            fields['subject'] = (fields['subject'] or '').strip()

        for key in ('scheduled_time', 'end_time'):
            if key in fields:
                try:
                    fields[key] = to_db_timestamp(fields[key])
                except (TypeError, ValueError, AttributeError):
                    raise ValidationError(f'Invalid {key}', [key])

        if 'smtp_port' in fields:
            port = fields['smtp_port']
            if port in (None, ''):
                fields['smtp_port'] = None
            else:
                try:
                    fields['smtp_port'] = int(port)
                except (TypeError, ValueError):
                    raise ValidationError('Invalid smtp_port', ['smtp_port'])
                if not 0 < fields['smtp_port'] < 65536:
                    raise ValidationError('Invalid smtp_port', ['smtp_port'])

        for key in ('manager_email', 'from_email'):
            if key in fields:
                value = (fields[key] or '').strip()
                if value and not is_valid_email(value):
                    raise ValidationError(f'Invalid {key}', [value])
                fields[key] = value

        merged = dict(current or {})
        merged.update(fields)
        start, end = merged.get('scheduled_time'), merged.get('end_time')
        if start and end and end <= start:
            raise ValidationError('end_time must be after scheduled_time', ['end_time'])

        return fields

    def _require(self, campaign_id, conn=None):
        campaign = self.campaigns.get(campaign_id, conn=conn)
        if not campaign:
            raise NotFoundError(f'Campaign {campaign_id} not found')
        return campaign

    # ------------------------------------------------------------------
    # Operator actions
    # ------------------------------------------------------------------

    def create(self, data):
        """Create a campaign with its targets. Starts scheduled iff scheduled_time is given."""
        if not data.get('name') or not data.get('template_key'):
            raise ValidationError('name and template_key are required.',
                                  [k for k in ('name', 'template_key') if not data.get(k)])
        fields = self._clean_fields(data)
        template = self.catalog.find_by_key(fields['template_key'])
        fields['subject'] = fields.get('subject') or template['subject']
        # New campaigns always wait for an explicit approval and opt-in to real sending
        fields['approval'] = False
        fields['enable_sending'] = False
        fields['status'] = SCHEDULED if fields.get('scheduled_time') else DRAFT

        with Database.session(self.campaigns.db_path, immediate=True) as conn:
            campaign_id = self.campaigns.create(fields, conn=conn)
            self.registry.set_targets(campaign_id, data.get('recipients'), conn=conn)
            campaign = self.campaigns.get(campaign_id, conn=conn)

        logger.info(f"Campaign {campaign_id} created ({campaign['status']})")
        db_log('info', 'campaigns', f"Campaign created: {campaign['name']}",
               {'id': campaign_id, 'status': campaign['status']})
        return campaign

    def edit(self, campaign_id, changes):
        """Edit fields and/or replace recipients while the campaign is draft or scheduled"""
        with Database.session(self.campaigns.db_path, immediate=True) as conn:
            campaign = self._require(campaign_id, conn)
            if campaign['status'] not in EDITABLE_STATUSES:
                raise ValidationError('Cannot edit running or completed campaigns', ['status'])

            fields = self._clean_fields(changes, current=campaign)
            if 'subject' in fields and not fields['subject']:
                template_key = fields.get('template_key', campaign['template_key'])
                fields['subject'] = self.catalog.find_by_key(template_key)['subject']

            if fields and not self.campaigns.update_editable(campaign_id, fields, conn=conn):
                raise ValidationError('Cannot edit running or completed campaigns', ['status'])

            if changes.get('recipients') is not None:
                self.registry.set_targets(campaign_id, changes['recipients'], conn=conn)

            self.campaigns.mark_scheduled(campaign_id, conn=conn)
            campaign = self.campaigns.get(campaign_id, conn=conn)

        db_log('info', 'campaigns', f'Campaign edited: {campaign_id}',
               {'fields': sorted(fields), 'recipients_replaced': changes.get('recipients') is not None})
        return campaign

    def approve(self, campaign_id):
        campaign = self._require(campaign_id)
        if campaign['status'] == COMPLETED or not self.campaigns.approve(campaign_id):
            raise ValidationError('Completed campaigns cannot be approved', ['status'])
        logger.info(f"Campaign {campaign_id} approved")
        db_log('info', 'campaigns', f'Campaign approved: {campaign_id}')
        return self.campaigns.get(campaign_id)

    def queue_send(self, campaign_id):
        """Manual "send now": approved campaigns become scheduled and due immediately"""
        campaign = self._require(campaign_id)
        if not campaign['approval']:
            raise ValidationError('Campaign must be approved before sending', ['approval'])
        if not self.campaigns.queue_send(campaign_id, self.clock()):
            raise ValidationError('Campaign has already started', ['status'])
        logger.info(f"Campaign {campaign_id} queued for sending")
        db_log('info', 'campaigns', f'Campaign queued for sending: {campaign_id}')
        return self.campaigns.get(campaign_id)

    # ------------------------------------------------------------------
    # Scheduler-driven promotions
    # ------------------------------------------------------------------

    def promote_to_running(self, campaign_id):
        """Start and dispatch a due campaign. Returns the dispatch summary, or None if not started."""
        if not self.campaigns.start_if_due(campaign_id, self.clock()):
            return None
        logger.info(f"Campaign {campaign_id} is running")
        db_log('info', 'campaigns', f'Campaign running: {campaign_id}')
        return self.dispatcher.dispatch_campaign(campaign_id) or {'sent': 0, 'failed': 0}

    def promote_to_completed(self, campaign_id):
        """Debrief a running campaign past its end_time, then mark it completed"""
        campaign = self.campaigns.get(campaign_id)
        now = self.clock()
        if (not campaign or campaign['status'] != RUNNING
                or not campaign['end_time'] or campaign['end_time'] > now):
            return False
        self.dispatcher.send_debrief(campaign_id)
        completed = self.campaigns.complete_if_due(campaign_id, now)
        if completed:
            logger.info(f"Campaign {campaign_id} completed")
            db_log('info', 'campaigns', f'Campaign completed: {campaign_id}')
        return completed
