"""Tests for vpnctl.app.middleware -- request hooks."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest
from flask import Flask

from vpnctl.app.middleware import register_request_hooks
from vpnctl.metrics.collector import MetricsCollector


@pytest.fixture()
def app():
    app = Flask("t")
    register_request_hooks(app)

    @app.route("/ok")
    def ok():
        return "ok"

    @app.route("/bad")
    def bad():
        return "bad", 400

    return app


class TestRequestHooks:
    def test_generates_request_id(self, app):
        resp = app.test_client().get("/ok")
        assert len(resp.headers["X-Request-ID"]) == 32

    def test_passes_through_request_id(self, app):
        resp = app.test_client().get("/ok", headers={"X-Request-ID": "abc-123"})
        assert resp.headers["X-Request-ID"] == "abc-123"

    def test_security_headers(self, app):
        resp = app.test_client().get("/ok")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "DENY"
        assert "default-src 'none'" in resp.headers["Content-Security-Policy"]

    def test_counts_requests_when_collector_present(self, app):
        container = MagicMock()
        container.metrics_collector = MetricsCollector()
        app.extensions["container"] = container

        app.test_client().get("/ok")
        app.test_client().get("/bad")

        collector = container.metrics_collector
        labels_ok = {"method": "GET", "status": "200"}
        assert collector.get("vpnctl_http_requests_total", labels=labels_ok) == 1
        labels_bad = {"method": "GET", "status": "400"}
        assert collector.get("vpnctl_http_requests_total", labels=labels_bad) == 1

    def test_access_log_level_follows_status(self, app, caplog):
        with caplog.at_level(logging.INFO, logger="vpnctl.access"):
            app.test_client().get("/ok")
            app.test_client().get("/bad")
        levels = [r.levelno for r in caplog.records if r.name == "vpnctl.access"]
        assert levels == [logging.INFO, logging.WARNING]
        assert caplog.records[-1].status == 400
