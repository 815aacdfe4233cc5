"""
Allowlist Module
================

Provides:
- The employee allowlist: the only recipients a campaign may target
- Consumer-domain deny-list so simulations never reach third-party inboxes
- JSON and CSV import routes for the admin console
"""

from flask import Blueprint

allowlist_bp = Blueprint(
    'allowlist',
    __name__,
    url_prefix='/api/allowlist'
)

from . import routes
