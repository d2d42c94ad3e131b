"""Connection log subcommands.

Usage::

    vpnctl -c config.yaml log find 10.42.42.2 2026-03-01T12:00:00Z
    vpnctl -c config.yaml log purge --days 30
"""

from __future__ import annotations

import ipaddress
import json
import sys
from datetime import UTC, datetime, timedelta


def run_log(config, args) -> None:
    """Dispatch to the appropriate log sub-handler."""
    sub = getattr(args, "log_command", None)
    if sub not in ("find", "purge"):
        sys.stderr.write("usage: vpnctl log {find,purge}\n")
        sys.exit(1)

    from vpnctl.db import init_database  # noqa: PLC0415
    from vpnctl.repositories import ConnectionLogRepository  # noqa: PLC0415
    from vpnctl.services import ConnectionLedger  # noqa: PLC0415

    db = init_database(config.settings.database)
    ledger = ConnectionLedger(ConnectionLogRepository(db), database=db)

    if sub == "find":
        _find(ledger, args.ip, args.at)
    else:
        _purge(ledger, args.days)


def _find(ledger, ip: str, at: str) -> None:
    from vpnctl.api.serializers import serialize_connection  # noqa: PLC0415
    from vpnctl.services import LedgerConsistencyViolation  # noqa: PLC0415

    try:
        ip = str(ipaddress.ip_address(ip))
        instant = datetime.fromisoformat(at)
    except ValueError as exc:
        sys.stderr.write(f"invalid argument: {exc}\n")
        sys.exit(1)
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)

    try:
        record = ledger.find_covering(ip, instant)
    except LedgerConsistencyViolation as exc:
        sys.stderr.write(f"{exc}\n")
        sys.exit(2)

    if record is None:
        sys.stdout.write("null\n")
        sys.exit(4)
    sys.stdout.write(json.dumps(serialize_connection(record), indent=2) + "\n")


def _purge(ledger, days: int) -> None:
    if days < 1:
        sys.stderr.write("--days must be at least 1\n")
        sys.exit(1)
    horizon = datetime.now(UTC) - timedelta(days=days)
    deleted = ledger.purge_closed_before(horizon)
    sys.stdout.write(f"deleted {deleted} closed connection log entr{'y' if deleted == 1 else 'ies'}\n")
