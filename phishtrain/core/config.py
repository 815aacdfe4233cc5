import os
from dotenv import load_dotenv

load_dotenv(override=True)


def _split_csv(value):
    return [part.strip().lower() for part in value.split(',') if part.strip()]


class Config:
    """
    Base configuration for PhishTrain.
    Deployments should provide database paths and mail settings via environment variables.
    """
    # Flask settings
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY')

    # Get DB_DIR from environment, or use a default if not set
    DB_DIR = os.getenv('DB_DIR', os.path.join(os.getcwd(), 'databases'))
    PHISHTRAIN_DB = os.getenv('PHISHTRAIN_DB', os.path.join(DB_DIR, 'phishtrain.db'))

    # Public URLs
    BASE_URL = os.getenv('BASE_URL', 'http://localhost:5000')
    PUBLIC_TRACKING_URL = os.getenv('PUBLIC_TRACKING_URL', BASE_URL)
    DEBRIEF_URL = os.getenv('DEBRIEF_URL', 'https://intranet/security-awareness')

    # Admin console origin for the JSON API
    ADMIN_ORIGIN = os.getenv('ADMIN_ORIGIN', '*')

    # Mail settings
    MAIL_FROM = os.getenv('MAIL_FROM', 'security-training@example.com')
    SMTP_TIMEOUT_SECONDS = int(os.getenv('SMTP_TIMEOUT_SECONDS', '30'))

    # Simulations must never reach real third-party inboxes
    DO_NOT_SEND_DOMAINS = _split_csv(
        os.getenv('DO_NOT_SEND_DOMAINS', 'gmail.com,yahoo.com,outlook.com,hotmail.com')
    )

    # Scheduler
    SCHEDULER_INTERVAL_SECONDS = int(os.getenv('SCHEDULER_INTERVAL_SECONDS', '60'))
    PHISHTRAIN_SCHEDULER_ENABLED = os.getenv('PHISHTRAIN_SCHEDULER_ENABLED', '1') == '1'

    # Manager alert when clicks / delivered crosses this ratio
    HIGH_CLICK_THRESHOLD = float(os.getenv('HIGH_CLICK_THRESHOLD', '0.5'))

    # Table names
    EMPLOYEES_TABLE = "employees"
    CAMPAIGNS_TABLE = "campaigns"
    TARGETS_TABLE = "campaign_targets"
    EVENTS_TABLE = "campaign_events"
    LOGS_TABLE = "app_logs"

    port = int(os.getenv('PORT', '5000'))


def get_setting(key, default=None):
    """Resolve a setting: Flask app.config -> Config class -> environment (3-tier pattern)"""
    try:
        from flask import current_app
        val = current_app.config.get(key)
        if val is not None:
            return val
    except RuntimeError:
        pass
    val = getattr(Config, key, None)
    if val is not None:
        return val
    return os.getenv(key, default)
