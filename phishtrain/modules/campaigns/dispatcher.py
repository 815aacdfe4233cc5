"""
Dispatcher
==========

Sends one personalised simulation email per target and records delivery.
A failed send is logged and skipped; the rest of the batch still goes out
and the failed target keeps delivered = false. There is no automatic retry.
"""

import logging

from phishtrain.core import Result, TransportError, db_log

from .events import DELIVERED
from .renderer import render_debrief, render_simulation

logger = logging.getLogger(__name__)


class Dispatcher:

    def __init__(self, campaigns, targets, events, catalog, email_service,
                 tracking_base_url, debrief_url):
        self.campaigns = campaigns
        self.targets = targets
        self.events = events
        self.catalog = catalog
        self.email_service = email_service
        self.tracking_base_url = tracking_base_url
        self.debrief_url = debrief_url

    def send_one(self, campaign, transport, to, subject, text, html):
        """Hand one message to the transport. Always returns a Result."""
        try:
            result = transport.send(to, self.email_service.sender_for(campaign), subject, text, html)
        except Exception as e:
            result = Result.fail(TransportError(str(e)))
        if not result:
            logger.warning(f"Campaign {campaign['id']}: send to {to} failed: {result.error}")
        return result

    def dispatch_campaign(self, campaign_id):
        """Send the campaign to every undelivered target.

        Returns {'sent', 'failed'} or None when the campaign or its template is missing.
        """
        campaign = self.campaigns.get(campaign_id)
        if not campaign:
            logger.warning(f"Dispatch skipped: campaign {campaign_id} not found")
            return None
        template = self.catalog.find_by_key(campaign['template_key'])
        if not template:
            logger.warning(f"Dispatch skipped: campaign {campaign_id} has unknown template "
                           f"{campaign['template_key']!r}")
            db_log('warning', 'campaigns', 'Dispatch skipped: unknown template',
                   {'campaign_id': campaign_id, 'template_key': campaign['template_key']})
            return None

        transport = self.email_service.create_transport(campaign)
        transport_name = getattr(transport, 'name', type(transport).__name__)
        sent = failed = 0
        for target in self.targets.list(campaign_id):
            if target['delivered']:
                continue
            message = render_simulation(template, target, self.tracking_base_url)
            result = self.send_one(campaign, transport, target['email'], campaign['subject'],
                                   message['text'], message['html'])
            if not result:
                failed += 1
                continue
            try:
                self.events.record(campaign_id, target['email'], DELIVERED)
                self.targets.mark_delivered(target['id'])
            except Exception as e:
                # Mail went out but delivery was not stored; target stays undelivered
                logger.error(f"Campaign {campaign_id}: delivery to {target['email']} not recorded: {e}")
                db_log('error', 'campaigns', 'Delivery not recorded',
                       {'campaign_id': campaign_id, 'email': target['email'], 'error': str(e)})
                failed += 1
                continue
            sent += 1

        logger.info(f"Campaign {campaign_id} dispatched via {transport_name}: "
                    f"{sent} sent, {failed} failed")
        db_log('info', 'campaigns', 'Campaign dispatched',
               {'campaign_id': campaign_id, 'sent': sent, 'failed': failed, 'transport': transport_name})
        return {'sent': sent, 'failed': failed}

    def send_debrief(self, campaign_id):
        """Send the wrap-up message to every target, delivered or not. Records no events."""
        campaign = self.campaigns.get(campaign_id)
        if not campaign:
            logger.warning(f"Debrief skipped: campaign {campaign_id} not found")
            return None

        targets = self.targets.list(campaign_id)
        if not targets:
            return {'sent': 0, 'failed': 0}

        subject, text, html = render_debrief(campaign, self.debrief_url)
        transport = self.email_service.create_transport(campaign)
        sent = failed = 0
        for target in targets:
            if self.send_one(campaign, transport, target['email'], subject, text, html):
                sent += 1
            else:
                failed += 1

        logger.info(f"Campaign {campaign_id} debrief: {sent} sent, {failed} failed")
        db_log('info', 'campaigns', 'Debrief sent',
               {'campaign_id': campaign_id, 'sent': sent, 'failed': failed})
        return {'sent': sent, 'failed': failed}
