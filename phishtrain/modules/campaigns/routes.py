"""
Campaigns Routes
================

Admin JSON API for the operator console.

- GET  /api/templates
- GET  /api/campaigns
- POST /api/campaigns
- GET  /api/campaigns/<id>
- PUT  /api/campaigns/<id>
- POST /api/campaigns/<id>/approve
- POST /api/campaigns/<id>/send
- GET  /api/campaigns/<id>/analytics
- GET  /api/campaigns/<id>/export
"""

import logging

from flask import Response, jsonify, request
from werkzeug.exceptions import HTTPException

from phishtrain.core import IntegrityError, NotFoundError, ValidationError, db_log
from . import campaigns_bp
from .engine import get_engine
from .state import redact

logger = logging.getLogger(__name__)


@campaigns_bp.errorhandler(ValidationError)
def _validation_error(e):
    body = {'error': str(e)}
    if e.offenders:
        body['offenders'] = e.offenders
    return jsonify(body), 400


@campaigns_bp.errorhandler(NotFoundError)
def _not_found(e):
    return jsonify({'error': str(e)}), 404


@campaigns_bp.errorhandler(IntegrityError)
def _integrity_error(e):
    logger.critical(f"Integrity error: {e}")
    db_log('critical', 'campaigns', 'Integrity error', {'error': str(e), 'path': request.path})
    return jsonify({'error': str(e)}), 500


@campaigns_bp.errorhandler(Exception)
def _unexpected_error(e):
    if isinstance(e, HTTPException):
        return e
    logger.exception(f"Unhandled error on {request.path}")
    db_log('error', 'campaigns', 'Unhandled API error',
           {'error': str(e), 'error_type': type(e).__name__, 'path': request.path})
    return jsonify({'error': 'Internal server error'}), 500


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('JSON object body required')
    return data


def _require_campaign(campaign_id):
    campaign = get_engine().campaigns.get(campaign_id)
    if not campaign:
        raise NotFoundError('Campaign not found')
    return campaign


@campaigns_bp.route('/templates', methods=['GET'])
def list_templates():
    return jsonify(get_engine().catalog.list()), 200


@campaigns_bp.route('/campaigns', methods=['GET'])
def list_campaigns():
    campaigns = get_engine().campaigns.list_all()
    return jsonify([redact(c) for c in campaigns]), 200


@campaigns_bp.route('/campaigns', methods=['POST'])
def create_campaign():
    campaign = get_engine().state.create(_json_body())
    return jsonify(redact(campaign)), 201


@campaigns_bp.route('/campaigns/<int:campaign_id>', methods=['GET'])
def get_campaign(campaign_id):
    engine = get_engine()
    campaign = redact(_require_campaign(campaign_id))
    campaign['targets'] = [
        {k: t[k] for k in ('id', 'email', 'name', 'department', 'delivered')}
        for t in engine.targets.list(campaign_id)
    ]
    campaign['recipient_count'] = len(campaign['targets'])
    return jsonify(campaign), 200


@campaigns_bp.route('/campaigns/<int:campaign_id>', methods=['PUT'])
def edit_campaign(campaign_id):
    campaign = get_engine().state.edit(campaign_id, _json_body())
    return jsonify(redact(campaign)), 200


@campaigns_bp.route('/campaigns/<int:campaign_id>/approve', methods=['POST'])
def approve_campaign(campaign_id):
    campaign = get_engine().state.approve(campaign_id)
    return jsonify(redact(campaign)), 200


@campaigns_bp.route('/campaigns/<int:campaign_id>/send', methods=['POST'])
def send_campaign(campaign_id):
    campaign = get_engine().state.queue_send(campaign_id)
    return jsonify({'message': 'Campaign queued for sending', 'campaign': redact(campaign)}), 200


@campaigns_bp.route('/campaigns/<int:campaign_id>/analytics', methods=['GET'])
def campaign_analytics(campaign_id):
    _require_campaign(campaign_id)
    return jsonify(get_engine().analytics.analytics(campaign_id)), 200


@campaigns_bp.route('/campaigns/<int:campaign_id>/export', methods=['GET'])
def export_campaign(campaign_id):
    _require_campaign(campaign_id)
    csv_text = get_engine().events.export_csv(campaign_id)
    return Response(
        csv_text,
        mimetype='text/csv',
        headers={'Content-Disposition': 'attachment; filename="campaign-results.csv"'}
    )
