"""Serve subcommand: start the vpnctl API server."""

from __future__ import annotations

import logging

log = logging.getLogger(__name__)


def run_serve(config, args) -> None:
    """Start the vpnctl API server."""
    from vpnctl.app import create_app  # noqa: PLC0415
    from vpnctl.db import init_database  # noqa: PLC0415

    db = init_database(config.settings.database)
    app = create_app(config=config, database=db)

    if args.dev:
        log.info("Starting development server (not for production)")
        app.run(
            host=config.settings.server.bind,
            port=config.settings.server.port,
            debug=True,
            use_reloader=False,
        )
    else:
        from vpnctl.server.gunicorn_app import run_gunicorn  # noqa: PLC0415

        run_gunicorn(app, config.settings.server)
