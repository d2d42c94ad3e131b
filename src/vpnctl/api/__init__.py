"""HTTP API layer: Flask blueprint registration.

Call :func:`register_blueprints` during application startup to wire
every route blueprint into the Flask app.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flask import Flask

_log = logging.getLogger(__name__)


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints on the Flask application."""
    from vpnctl.api.certificates import certificates_bp  # noqa: PLC0415
    from vpnctl.api.connections import connections_bp  # noqa: PLC0415
    from vpnctl.api.log import log_bp  # noqa: PLC0415
    from vpnctl.api.system_messages import system_messages_bp  # noqa: PLC0415
    from vpnctl.api.users import users_bp  # noqa: PLC0415

    app.register_blueprint(connections_bp, url_prefix="/connections")
    app.register_blueprint(log_bp, url_prefix="/log")
    app.register_blueprint(users_bp, url_prefix="/users")
    app.register_blueprint(certificates_bp, url_prefix="/certificates")
    app.register_blueprint(system_messages_bp, url_prefix="/system-messages")

    _log.debug("API blueprints registered")
