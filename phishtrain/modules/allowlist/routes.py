"""
Allowlist Routes
================

- GET  /api/allowlist         -- employees + deny-listed domains
- POST /api/allowlist         -- upsert {employees: [...]}
- POST /api/allowlist/upload  -- CSV body, one `email,name,department` per line
"""

import logging

from flask import request, jsonify

from phishtrain.core import db_log
from . import allowlist_bp
from .models import AllowlistStore, parse_csv
from .safety import get_do_not_send_domains

logger = logging.getLogger(__name__)


@allowlist_bp.route('', methods=['GET'])
def list_allowlist():
    try:
        employees = AllowlistStore().list_all()
        return jsonify({'employees': employees, 'doNotSendDomains': get_do_not_send_domains()}), 200
    except Exception as e:
        logger.error(f"Error listing allowlist: {e}")
        return jsonify({'error': str(e)}), 500


@allowlist_bp.route('', methods=['POST'])
def save_allowlist():
    data = request.get_json(silent=True) or {}
    employees = data.get('employees')
    if not isinstance(employees, list):
        return jsonify({'error': 'employees array required'}), 400

    try:
        store = AllowlistStore()
        saved, rejected = store.upsert_many(employees)
        db_log('info', 'allowlist', 'Allowlist updated', {'saved': len(saved), 'rejected': len(rejected)})
        return jsonify({'employees': store.list_all(), 'rejected': rejected}), 200
    except Exception as e:
        logger.error(f"Error saving allowlist: {e}")
        db_log('error', 'allowlist', 'Error saving allowlist', {'error': str(e)})
        return jsonify({'error': str(e)}), 500


@allowlist_bp.route('/upload', methods=['POST'])
def upload_allowlist():
    csv_text = request.get_data(as_text=True)
    if not csv_text or not csv_text.strip():
        return jsonify({'error': 'CSV body required'}), 400

    try:
        saved, rejected = AllowlistStore().upsert_many(parse_csv(csv_text))
        db_log('info', 'allowlist', 'Allowlist CSV imported', {'imported': len(saved), 'rejected': len(rejected)})
        return jsonify({'imported': len(saved), 'rejected': rejected}), 200
    except Exception as e:
        logger.error(f"Error importing allowlist CSV: {e}")
        db_log('error', 'allowlist', 'Error importing allowlist CSV', {'error': str(e)})
        return jsonify({'error': str(e)}), 500
