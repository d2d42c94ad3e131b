"""Database management subcommands."""

from __future__ import annotations

import logging
import sys

log = logging.getLogger(__name__)

_TABLES = ("users", "certificates", "connection_log", "user_messages", "system_messages")


def run_db(config, args) -> None:
    """Handle db subcommands."""
    if args.db_command == "status":
        _db_status(config)
    elif args.db_command == "init":
        _db_init(config)
    else:
        sys.stderr.write("usage: vpnctl db {status,init}\n")
        sys.exit(1)


def _db_status(config) -> None:
    """Check database connectivity and schema status."""
    from vpnctl.db import init_database  # noqa: PLC0415

    try:
        db = init_database(config.settings.database, apply_schema=False)
        db.fetch_value("SELECT 1")
        present = db.fetch_value(
            "SELECT count(*) FROM information_schema.tables "
            "WHERE table_schema = 'public' AND table_name = ANY(%s)",
            (list(_TABLES),),
        )
    except Exception as exc:
        log.exception("Database status check failed")
        sys.stderr.write(f"database: unreachable ({exc})\n")
        sys.exit(1)

    sys.stdout.write(f"database: reachable\nschema:   {present}/{len(_TABLES)} tables present\n")
    if present != len(_TABLES):
        sys.exit(2)


def _db_init(config) -> None:
    """Apply the bundled schema."""
    from vpnctl.db import init_database  # noqa: PLC0415

    try:
        init_database(config.settings.database, apply_schema=True)
    except Exception as exc:
        log.exception("Schema initialisation failed")
        sys.stderr.write(f"schema initialisation failed: {exc}\n")
        sys.exit(1)
    sys.stdout.write("schema applied\n")
