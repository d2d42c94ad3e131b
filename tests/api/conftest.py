"""Fixtures for the HTTP route tests: a bare app over a mocked container."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from flask import Flask

from vpnctl.api import register_blueprints
from vpnctl.app.auth import LoginRateLimiter
from vpnctl.app.errors import register_error_handlers


@pytest.fixture()
def container(settings):
    c = MagicMock()
    c.settings = settings
    c.auth_limiter = LoginRateLimiter()
    return c


@pytest.fixture()
def app(container):
    app = Flask("vpnctl-test")
    register_error_handlers(app)
    app.extensions["container"] = container
    register_blueprints(app)
    return app


@pytest.fixture()
def client(app):
    return app.test_client()
