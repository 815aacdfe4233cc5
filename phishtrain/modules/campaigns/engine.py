"""
Campaign Engine
===============

Wires the stores and components together. One engine per Flask app, stored on
the PhishTrain extension; routes reach it through get_engine().
"""

from flask import current_app

from phishtrain.modules.allowlist.models import AllowlistStore
from phishtrain.modules.email.email_service import EmailService

from .analytics import AnalyticsAggregator
from .catalog import TemplateCatalog
from .dispatcher import Dispatcher
from .events import EventStore
from .models import CampaignStore
from .scheduler import CampaignScheduler
from .state import CampaignStateMachine
from .targets import TargetRegistry, TargetStore


class CampaignEngine:

    def __init__(self, db_path, email_service=None, catalog=None, tracking_base_url='',
                 debrief_url='', interval=60, threshold=0.5, app=None):
        self.db_path = db_path
        self.email_service = email_service or EmailService()
        self.catalog = catalog or TemplateCatalog()

        self.allowlist = AllowlistStore(db_path)
        self.campaigns = CampaignStore(db_path)
        self.targets = TargetStore(db_path)
        self.events = EventStore(db_path)

        self.registry = TargetRegistry(self.targets, self.allowlist)
        self.dispatcher = Dispatcher(self.campaigns, self.targets, self.events, self.catalog,
                                     self.email_service, tracking_base_url, debrief_url)
        self.state = CampaignStateMachine(self.campaigns, self.registry, self.catalog, self.dispatcher)
        self.analytics = AnalyticsAggregator(self.campaigns, self.events, self.dispatcher, threshold)
        self.scheduler = CampaignScheduler(self.state, self.campaigns, interval=interval, app=app)

    @classmethod
    def from_app(cls, app, db_path):
        email_service = EmailService(app)
        base_url = app.config.get('BASE_URL', 'http://localhost:5000')
        return cls(
            db_path,
            email_service=email_service,
            tracking_base_url=app.config.get('PUBLIC_TRACKING_URL') or base_url,
            debrief_url=app.config.get('DEBRIEF_URL', 'https://intranet/security-awareness'),
            interval=int(app.config.get('SCHEDULER_INTERVAL_SECONDS', 60)),
            threshold=float(app.config.get('HIGH_CLICK_THRESHOLD', 0.5)),
            app=app,
        )


def get_engine():
    return current_app.extensions['phishtrain'].engine
