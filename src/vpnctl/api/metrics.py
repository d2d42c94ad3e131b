"""Prometheus-compatible metrics endpoint.

``GET /metrics`` returns the in-process counters in text format.
"""

from __future__ import annotations

from flask import Blueprint, make_response

from vpnctl.app.context import get_container

metrics_bp = Blueprint("metrics", __name__)


@metrics_bp.route("", methods=["GET"])
def get_metrics():
    collector = get_container().metrics_collector
    if collector is None:
        return "# No metrics available\n", 200, {"Content-Type": "text/plain"}

    response = make_response(collector.export())
    response.headers["Content-Type"] = "text/plain; version=0.0.4; charset=utf-8"
    return response
