"""Tests for the Prometheus metrics endpoint."""

from __future__ import annotations

import pytest

from vpnctl.api.metrics import metrics_bp
from vpnctl.metrics.collector import MetricsCollector


@pytest.fixture()
def metrics_client(app):
    app.register_blueprint(metrics_bp, url_prefix="/metrics")
    return app.test_client()


class TestMetricsRoute:
    def test_no_collector(self, metrics_client, container):
        container.metrics_collector = None
        resp = metrics_client.get("/metrics")
        assert resp.status_code == 200
        assert resp.get_data(as_text=True) == "# No metrics available\n"

    def test_exports_counters(self, metrics_client, container):
        container.metrics_collector = MetricsCollector()
        container.metrics_collector.increment("vpnctl_connect_total", labels={"outcome": "allowed"})
        resp = metrics_client.get("/metrics")
        assert resp.headers["Content-Type"].startswith("text/plain; version=0.0.4")
        assert 'vpnctl_connect_total{outcome="allowed"} 1' in resp.get_data(as_text=True)
