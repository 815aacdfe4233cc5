"""
Campaigns Module
================

Provides:
- Campaign lifecycle: draft -> scheduled -> running -> completed
- Per-recipient tracking tokens and delivery status
- Dispatch of simulation emails, debriefs and high-click manager alerts
- Funnel analytics and CSV export of the event log
- Background scheduler for time-based transitions
"""

from flask import Blueprint

campaigns_bp = Blueprint(
    'campaigns',
    __name__,
    url_prefix='/api'
)

from . import routes
