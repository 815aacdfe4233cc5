"""
Ops Routes
==========

Public health endpoint.
"""

import logging

from flask import jsonify

from phishtrain.core import Database
from phishtrain.modules.campaigns.engine import get_engine
from . import ops_health_bp

logger = logging.getLogger(__name__)


def _check_database(db_path):
    """Run a trivial query against the engine database."""
    try:
        conn = Database.connect(db_path)
        try:
            conn.execute('SELECT 1').fetchone()
        finally:
            conn.close()
        return 'ok'
    except Exception as e:
        logger.error(f"Health check database error: {e}")
        return f'error: {e}'


@ops_health_bp.route('/')
@ops_health_bp.route('')
def health_check():
    """Public health endpoint for uptime monitors."""
    engine = get_engine()
    database = _check_database(engine.db_path)
    status = 'ok' if database == 'ok' else 'critical'
    data = {
        'status': status,
        'database': database,
        'scheduler': engine.scheduler.status(),
    }
    return jsonify(data), 200 if status == 'ok' else 503
