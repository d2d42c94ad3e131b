"""Flask application factory for vpnctl.

Usage::

    from vpnctl.app import create_app
    from vpnctl.config import get_config
    from vpnctl.db import init_database

    db  = init_database(get_config().settings.database)
    app = create_app(config=get_config(), database=db)
"""

from __future__ import annotations

import atexit
import logging
from typing import TYPE_CHECKING

from flask import Flask, jsonify

if TYPE_CHECKING:
    from flask.typing import ResponseReturnValue
    from pypgkit import Database

    from vpnctl.config.vpnctl_config import VpnctlConfig
    from vpnctl.fleet.registry import ChannelFactory

log = logging.getLogger(__name__)

_MAX_REQUEST_BODY_BYTES = 64 * 1024


def create_app(
    config: VpnctlConfig | None = None,
    database: Database | None = None,
    *,
    channel_factory: ChannelFactory | None = None,
    start_workers: bool = True,
) -> Flask:
    """Create and configure the vpnctl Flask application.

    Parameters
    ----------
    config:
        Loaded :class:`VpnctlConfig`.  Falls back to :func:`get_config`
        when ``None``.
    database:
        Initialised :class:`Database` singleton.  When provided, the
        dependency container is wired up and the API blueprints are
        registered.  When ``None`` only the probes are served.
    channel_factory:
        Overrides the channel class named in ``fleet.channel_class``.
    start_workers:
        Start the retention worker thread.

    Returns
    -------
    Flask
        Fully configured WSGI application.

    """
    if config is None:
        from vpnctl.config import get_config  # noqa: PLC0415

        config = get_config()

    settings = config.settings

    app = Flask("vpnctl")
    app.config["VPNCTL_SETTINGS"] = settings
    app.config["VPNCTL_CONFIG"] = config
    app.config["MAX_CONTENT_LENGTH"] = _MAX_REQUEST_BODY_BYTES

    from vpnctl.app.errors import register_error_handlers  # noqa: PLC0415

    register_error_handlers(app)

    from vpnctl.app.middleware import register_request_hooks  # noqa: PLC0415

    register_request_hooks(app)

    _register_health(app)

    if database is not None:
        from vpnctl.app.context import Container  # noqa: PLC0415

        container = Container(database, settings, channel_factory=channel_factory)
        app.extensions["container"] = container

        if start_workers:
            container.cleanup_worker.start()
            atexit.register(container.cleanup_worker.stop)

        from vpnctl.api import register_blueprints  # noqa: PLC0415

        register_blueprints(app)

        if settings.metrics.enabled:
            from vpnctl.api.metrics import metrics_bp  # noqa: PLC0415

            app.register_blueprint(metrics_bp, url_prefix=settings.metrics.path)
            log.info("Metrics endpoint registered at %s", settings.metrics.path)

    log.info("Flask application created")
    return app


# ---------------------------------------------------------------------------
# Infrastructure endpoints
# ---------------------------------------------------------------------------


def _register_health(app: Flask) -> None:
    """Register ``/livez``, ``/healthz`` and ``/readyz`` probes."""
    from vpnctl import __version__  # noqa: PLC0415

    @app.route("/livez")
    def livez() -> ResponseReturnValue:
        return jsonify({"alive": True, "version": __version__}), 200

    @app.route("/healthz")
    def healthz() -> ResponseReturnValue:
        """Return detailed health status."""
        result: dict = {"status": "ok", "version": __version__}
        checks: dict = {}

        container = app.extensions.get("container")
        if container is not None:
            try:
                container.db.fetch_value("SELECT 1")
                checks["database"] = "connected"
            except Exception:  # noqa: BLE001
                checks["database"] = "disconnected"
                result["status"] = "degraded"

            checks["fleet"] = (
                "configured" if container.fleet_dispatcher is not None else "unconfigured"
            )

            t = getattr(container.cleanup_worker, "_thread", None)
            if t is not None:
                alive = t.is_alive()
                result["workers"] = {"cleanup_worker": "alive" if alive else "dead"}
                if not alive:
                    result["status"] = "degraded"

        if checks:
            result["checks"] = checks

        code = 200 if result["status"] == "ok" else 503
        return jsonify(result), code

    @app.route("/readyz")
    def readyz() -> ResponseReturnValue:
        container = app.extensions.get("container")
        if container is None:
            return jsonify({"ready": False, "reason": "Container not initialized"}), 503

        try:
            container.db.fetch_value("SELECT 1")
        except Exception:  # noqa: BLE001
            return jsonify({"ready": False, "reason": "Database not connected"}), 503

        return jsonify({"ready": True}), 200
