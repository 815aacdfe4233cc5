"""
Tracking Routes
===============
"""

import base64
import logging

from flask import Response, current_app, redirect, render_template, request, url_for

from phishtrain.core import db_log
from phishtrain.modules.campaigns.engine import get_engine
from phishtrain.modules.campaigns.events import CLICKED, OPENED, SUBMITTED
from . import tracking_bp

logger = logging.getLogger(__name__)

# 1x1 transparent GIF
PIXEL_GIF = base64.b64decode('R0lGODlhAQABAIAAAAAAAP///ywAAAAAAQABAAACAUwAOw==')

INVALID_TOKEN = 'invalid'


def get_client_ip():
    """Get client IP address from request"""
    if request.headers.get('X-Forwarded-For'):
        return request.headers.get('X-Forwarded-For').split(',')[0].strip()
    elif request.headers.get('X-Real-IP'):
        return request.headers.get('X-Real-IP')
    else:
        return request.remote_addr


def _log_failure(action, token, error):
    logger.error(f"Failed to record {action}: {error}")
    db_log('error', 'tracking', f'Failed to record {action}',
           {'token_prefix': (token or '')[:8], 'error': str(error),
            'error_type': type(error).__name__})


def _lookup(token):
    if not token or token == INVALID_TOKEN:
        return None
    return get_engine().registry.find_by_token(token)


def _inactive_page(heading, message):
    return render_template('tracking/inactive.html', heading=heading, message=message)


@tracking_bp.route('/track/open/<token>.gif', methods=['GET'])
@tracking_bp.route('/track/open/<token>', methods=['GET'])
def track_open(token):
    """Pixel load. Always returns the GIF."""
    try:
        target = _lookup(token)
        if target:
            get_engine().events.record(target['campaign_id'], target['email'], OPENED,
                                       raw_origin=get_client_ip())
    except Exception as e:
        _log_failure('open', token, e)

    response = Response(PIXEL_GIF, mimetype='image/gif')
    response.headers['Cache-Control'] = 'no-store, no-cache, must-revalidate, max-age=0'
    return response


@tracking_bp.route('/track/click/<token>', methods=['GET'])
def track_click(token):
    """Record the click, evaluate the high-click alert, then send the browser to the landing page"""
    target = None
    try:
        target = _lookup(token)
        if target:
            engine = get_engine()
            engine.events.record(target['campaign_id'], target['email'], CLICKED,
                                 raw_origin=get_client_ip())
            engine.analytics.on_click(target['campaign_id'], background=True)
    except Exception as e:
        _log_failure('click', token, e)

    if target:
        return redirect(url_for('tracking.landing', token=target['token']))
    return redirect(url_for('tracking.landing', token=INVALID_TOKEN))


@tracking_bp.route('/landing/<token>', methods=['GET'])
def landing(token):
    debug = request.args.get('debug') == 'true'
    try:
        target = _lookup(token)
    except Exception as e:
        _log_failure('landing view', token, e)
        target = None

    if not target:
        return _inactive_page('Simulation Completed', 'This phishing awareness exercise is not active.')
    return render_template('tracking/landing.html', target=target, token=token, debug=debug)


@tracking_bp.route('/landing/<token>/submit', methods=['POST'])
def landing_submit(token):
    """Record a simulated credential entry. The submitted form is deliberately ignored."""
    try:
        target = _lookup(token)
    except Exception as e:
        _log_failure('submission', token, e)
        target = None

    if not target:
        return _inactive_page('Simulation Complete', 'This training link is no longer active.')

    try:
        get_engine().events.record(target['campaign_id'], target['email'], SUBMITTED,
                                   raw_origin=get_client_ip(), simulated_entry=True)
    except Exception as e:
        _log_failure('submission', token, e)

    debrief_url = current_app.config.get('DEBRIEF_URL') or get_engine().dispatcher.debrief_url
    return render_template('tracking/thank_you.html', debrief_url=debrief_url)
