"""
Tracking Module
===============

Recipient-facing endpoints reached from simulation emails.

Features:
- Open pixel: GET /track/open/<token> and /track/open/<token>.gif
- Click redirect: GET /track/click/<token> -> /landing/<token>
- Simulated credential page: GET /landing/<token>
- Form submit: POST /landing/<token>/submit (field values are never read or stored)

Every endpoint answers normally for unknown or stale tokens so that nothing
about internal state leaks to the recipient.
"""

from flask import Blueprint

tracking_bp = Blueprint(
    'tracking',
    __name__,
    template_folder='templates'
)

from . import routes
