"""
Ops Module
==========

Public liveness endpoint for uptime monitors and orchestrators.

Usage:
    from phishtrain.modules.ops import ops_health_bp

    app.register_blueprint(ops_health_bp)  # Registers at /healthz
"""

from flask import Blueprint

ops_health_bp = Blueprint(
    'ops_health',
    __name__,
    url_prefix='/healthz'
)

from . import routes
