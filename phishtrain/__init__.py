"""
PhishTrain - Phishing Awareness Campaign Engine
===============================================

A Flask extension that runs internal phishing-awareness simulations:
- Employee allowlist with a consumer-domain deny-list
- Campaign lifecycle (draft -> scheduled -> running -> completed)
- Per-recipient tracking tokens, open/click/submit tracking
- Background scheduler for dispatch and debriefs
- Funnel analytics, CSV export and a one-time high-click manager alert

Usage:
    from flask import Flask
    from phishtrain import PhishTrain

    app = Flask(__name__)
    PhishTrain(app)
"""

import logging
import os

import click
from flask import current_app
from flask.cli import AppGroup
from flask_cors import CORS

from .core import Config, Database, LoggingService
from .modules.allowlist import allowlist_bp
from .modules.allowlist.models import init_employees_db
from .modules.campaigns import campaigns_bp
from .modules.campaigns.engine import CampaignEngine
from .modules.campaigns.models import init_campaigns_db
from .modules.ops import ops_health_bp
from .modules.tracking import tracking_bp

__version__ = '0.1.0'

logger = logging.getLogger(__name__)

# app.config keys seeded from Config when the app does not set them
CONFIG_DEFAULTS = (
    'DB_DIR', 'BASE_URL', 'PUBLIC_TRACKING_URL', 'DEBRIEF_URL', 'ADMIN_ORIGIN', 'MAIL_FROM',
    'SMTP_TIMEOUT_SECONDS', 'DO_NOT_SEND_DOMAINS', 'SCHEDULER_INTERVAL_SECONDS',
    'PHISHTRAIN_SCHEDULER_ENABLED', 'HIGH_CLICK_THRESHOLD',
)

MODULES = (
    ('allowlist', allowlist_bp),
    ('campaigns', campaigns_bp),
    ('tracking', tracking_bp),
    ('ops', ops_health_bp),
)

phishtrain_cli = AppGroup('phishtrain', help='Campaign engine maintenance commands.')


@phishtrain_cli.command('tick')
def tick_command():
    """Run one scheduler pass now."""
    result = current_app.extensions['phishtrain'].engine.scheduler.tick()
    click.echo(f"started={result['started']} completed={result['completed']}")


@phishtrain_cli.command('cleanup-logs')
@click.option('--days', default=30, show_default=True, help='Keep log rows newer than this.')
def cleanup_logs_command(days):
    """Delete persistent log rows older than --days."""
    deleted = LoggingService.cleanup_old_logs(days_to_keep=days)
    click.echo(f"deleted={deleted}")


class PhishTrain:
    """
    Flask extension wiring the campaign engine into an app.

    Args:
        app: Flask application (optional, for the init_app pattern)
        config: dict of settings applied to app.config before defaults
    """

    def __init__(self, app=None, config=None):
        self._config = dict(config or {})
        self._registered_modules = []
        self.engine = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self._apply_config(app)
        db_path = self._setup_database(app)

        self.engine = CampaignEngine.from_app(app, db_path)
        self._register_modules(app)
        CORS(app, resources={r"/api/*": {"origins": app.config['ADMIN_ORIGIN']}})
        app.cli.add_command(phishtrain_cli)

        app.extensions['phishtrain'] = self

        if self._scheduler_enabled(app):
            self.engine.scheduler.start()

        logger.info(f"PhishTrain initialised (modules: {', '.join(self._registered_modules)})")

    def _apply_config(self, app):
        for key, value in self._config.items():
            app.config[key] = value
        for key in CONFIG_DEFAULTS:
            app.config.setdefault(key, getattr(Config, key))
        app.config.setdefault(
            'PHISHTRAIN_DB',
            os.getenv('PHISHTRAIN_DB') or os.path.join(app.config['DB_DIR'], 'phishtrain.db')
        )

    def _setup_database(self, app):
        """Create the database directory and every engine table"""
        db_path = Database.ensure_dir(app.config['PHISHTRAIN_DB'])
        Database.enable_wal(db_path)
        LoggingService._ensure_logs_table(db_path)
        init_employees_db(db_path)
        init_campaigns_db(db_path)
        return db_path

    def _register_modules(self, app):
        for name, blueprint in MODULES:
            if blueprint.name in app.blueprints:
                continue
            app.register_blueprint(blueprint)
            self._registered_modules.append(name)

    def _scheduler_enabled(self, app):
        if app.config.get('TESTING') or not app.config.get('PHISHTRAIN_SCHEDULER_ENABLED'):
            return False
        # Under the debug reloader only the child process serves requests
        if app.debug and os.environ.get('WERKZEUG_RUN_MAIN') != 'true':
            return False
        return True

    def get_registered_modules(self):
        return list(self._registered_modules)


__all__ = ['PhishTrain', '__version__']
