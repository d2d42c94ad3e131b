"""vpnctl command-line entry point.

Usage::

    vpnctl -c /etc/vpnctl/config.yaml
    vpnctl -c config.yaml --dev
    vpnctl -c config.yaml --validate-only
    vpnctl -c config.yaml serve --dev
    vpnctl -c config.yaml db status
    vpnctl -c config.yaml db init
    vpnctl -c config.yaml fleet list
    vpnctl -c config.yaml fleet kill <common-name>
    vpnctl -c config.yaml log find <ip> <iso-time>
    vpnctl -c config.yaml log purge --days 30
    python -m vpnctl -c config.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

log = logging.getLogger(__name__)


def _get_version() -> str:
    from vpnctl import __version__  # noqa: PLC0415

    return __version__


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vpnctl",
        description="vpnctl -- control plane for a fleet of VPN processes",
    )
    parser.add_argument(
        "-c",
        "--config",
        required=True,
        metavar="PATH",
        help="Path to the configuration file (YAML or JSON).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (full tracebacks, verbose logging).",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Validate the configuration file and exit.",
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        default=False,
        help="Use Flask's development server instead of gunicorn.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the vpnctl API server")
    serve_parser.add_argument("--dev", action="store_true", default=False, dest="dev")

    # db
    db_parser = subparsers.add_parser("db", help="Database management")
    db_sub = db_parser.add_subparsers(dest="db_command")
    db_sub.add_parser("status", help="Check database connectivity and schema")
    db_sub.add_parser("init", help="Apply the bundled schema")

    # fleet
    fleet_parser = subparsers.add_parser("fleet", help="Query and control VPN processes")
    fleet_sub = fleet_parser.add_subparsers(dest="fleet_command")
    fleet_sub.add_parser("endpoints", help="Print every management endpoint")
    fleet_sub.add_parser("list", help="List connected clients on every process")
    kill = fleet_sub.add_parser("kill", help="Disconnect a client from every process")
    kill.add_argument("common_name", help="Certificate common name to disconnect")

    # log
    log_parser = subparsers.add_parser("log", help="Connection log queries")
    log_sub = log_parser.add_subparsers(dest="log_command")
    find = log_sub.add_parser("find", help="Find who held an address at a given time")
    find.add_argument("ip", help="IPv4 or IPv6 address")
    find.add_argument("at", help="ISO 8601 instant (naive values are UTC)")
    purge = log_sub.add_parser("purge", help="Delete closed entries older than N days")
    purge.add_argument("--days", type=int, required=True, help="Retention in days")

    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    sys.stderr.write(f"vpnctl: error: {message}\n")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, dispatches."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # -- resolve config path ---
    config_path = Path(args.config)
    if not config_path.is_file():
        _print_error(f"configuration file not found: {config_path}")
        sys.exit(1)

    # -- bootstrap logging early (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # -- load & validate config ---
    try:
        from vpnctl.config import ConfigValidationError, VpnctlConfig  # noqa: PLC0415

        config = VpnctlConfig(
            config_file=str(config_path),
            schema_file="bundled",
        )
    except ConfigValidationError as exc:
        _print_error(str(exc))
        sys.exit(1)
    except Exception as exc:
        if args.debug:
            raise
        _print_error(f"failed to load configuration: {exc}")
        sys.exit(1)

    # -- replace bootstrap logging with structured logging ---
    from vpnctl.logging import configure_logging  # noqa: PLC0415

    configure_logging(config.settings.logging)

    if args.validate_only:
        _print_settings_summary(config)
        sys.exit(0)

    command = args.command

    if command == "db":
        from vpnctl.cli.commands.db import run_db  # noqa: PLC0415

        run_db(config, args)
    elif command == "fleet":
        from vpnctl.cli.commands.fleet import run_fleet  # noqa: PLC0415

        run_fleet(config, args)
    elif command == "log":
        from vpnctl.cli.commands.log import run_log  # noqa: PLC0415

        run_log(config, args)
    else:
        # No subcommand means serve
        from vpnctl.cli.commands.serve import run_serve  # noqa: PLC0415

        _print_settings_summary(config)
        try:
            run_serve(config, args)
        except Exception as exc:
            if args.debug:
                raise
            _print_error(f"server startup failed: {exc}")
            sys.exit(1)


def _print_settings_summary(config) -> None:
    """Print a short summary of the loaded configuration."""
    s = config.settings
    lines = [
        f"config:     {config._config_path}",  # noqa: SLF001
        f"listen:     {s.server.bind}:{s.server.port} ({s.server.workers} workers)",
        f"database:   {s.database.user}@{s.database.host}:{s.database.port}/{s.database.database}",
        f"profiles:   {', '.join(p.id for p in s.profiles) or '(none)'}",
        f"channel:    {s.fleet.channel_class or '(not configured)'}",
        f"api:        {len(s.api.clients)} client(s)",
    ]
    sys.stdout.write("\n".join(lines) + "\n")
