"""
Analytics Aggregator
====================

Point-in-time funnel figures derived from the event log, plus the one-time
manager alert when the click rate reaches the configured threshold.
"""

import logging
import threading

from flask import current_app

from phishtrain.core import db_log

from .events import CLICKED, DELIVERED, OPENED, SUBMITTED
from .renderer import render_manager_alert

logger = logging.getLogger(__name__)


def _rate(numerator, denominator):
    if not denominator:
        return 0
    return min(1.0, numerator / denominator)


class AnalyticsAggregator:

    def __init__(self, campaigns, events, dispatcher, threshold=0.5):
        self.campaigns = campaigns
        self.events = events
        self.dispatcher = dispatcher
        self.threshold = threshold

    def analytics(self, campaign_id):
        """
        Event counts and funnel rates for a campaign.

        delivered/opened/clicked/submitted are raw event counts (repeat opens
        count again) and the rates are taken from those same counts:
            openRate   = opened / delivered
            clickRate  = clicked / delivered
            submitRate = submitted / clicked
        each 0 when its denominator is 0 and capped at 1.
        `recipients` holds the distinct-recipient count per event type.
        """
        counts = self.events.aggregate(campaign_id)
        return {
            'delivered': counts[DELIVERED],
            'opened': counts[OPENED],
            'clicked': counts[CLICKED],
            'submitted': counts[SUBMITTED],
            'openRate': _rate(counts[OPENED], counts[DELIVERED]),
            'clickRate': _rate(counts[CLICKED], counts[DELIVERED]),
            'submitRate': _rate(counts[SUBMITTED], counts[CLICKED]),
            'recipients': self.events.aggregate(campaign_id, distinct=True),
        }

    def on_click(self, campaign_id, background=False):
        """Evaluate the high-click rule after a click. Returns True if this call won the alert latch.

        The latch is a conditional update, so under concurrent clicks exactly one
        caller wins it and only the winner sends. With background=True the alert
        goes out on a short-lived daemon thread so the caller is not held by SMTP.
        """
        stats = self.analytics(campaign_id)
        if not stats['delivered'] or stats['clicked'] / stats['delivered'] < self.threshold:
            return False

        campaign = self.campaigns.get(campaign_id)
        if not campaign or campaign['notified_high_clicks']:
            return False
        if not campaign.get('manager_email'):
            return False

        if not self.campaigns.latch_high_clicks(campaign_id):
            return False

        if background:
            self._send_alert_in_background(campaign, stats)
        else:
            self._send_alert(campaign, stats)
        return True

    def _send_alert(self, campaign, stats):
        manager_email = campaign['manager_email']
        subject, text, html = render_manager_alert(campaign, stats)
        transport = self.dispatcher.email_service.create_transport(campaign)
        result = self.dispatcher.send_one(campaign, transport, manager_email, subject, text, html)

        logger.info(f"Campaign {campaign['id']}: high-click alert to {manager_email} "
                    f"({'sent' if result else 'failed'})")
        db_log('info' if result else 'error', 'campaigns', 'High-click manager alert',
               {'campaign_id': campaign['id'], 'clickRate': stats['clickRate'], 'sent': bool(result)})
        return result

    def _send_alert_in_background(self, campaign, stats):
        try:
            app = current_app._get_current_object()
        except RuntimeError:
            app = None

        def run():
            try:
                if app is not None:
                    with app.app_context():
                        self._send_alert(campaign, stats)
                else:
                    self._send_alert(campaign, stats)
            except Exception:
                logger.exception(f"Campaign {campaign['id']}: high-click alert failed")

        thread = threading.Thread(target=run, name=f"phishtrain-alert-{campaign['id']}", daemon=True)
        thread.start()
        return thread
