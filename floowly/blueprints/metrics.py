"""
Prometheus metrics endpoint.

Exposes /metrics with HTTP request metrics and quote transition counters.
Restrict it to the internal network or the monitoring system.
"""
from flask import Blueprint, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from floowly.metrics import registry

metrics_bp = Blueprint('metrics', __name__)


@metrics_bp.route('/metrics')
def metrics():
    """Prometheus-formatted metrics (not authenticated)."""
    return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)
