"""Fleet subcommands: query and control the VPN processes directly.

Usage::

    vpnctl -c config.yaml fleet endpoints
    vpnctl -c config.yaml fleet list
    vpnctl -c config.yaml fleet kill <common-name>

Output is JSON on stdout.  The exit status is 3 when at least one
endpoint failed, so scripts can tell partial from complete results.
"""

from __future__ import annotations

import json
import sys

_PARTIAL_EXIT = 3


def run_fleet(config, args) -> None:
    """Dispatch to the appropriate fleet sub-handler."""
    from vpnctl.fleet import AddressingRangeError  # noqa: PLC0415

    sub = getattr(args, "fleet_command", None)
    try:
        if sub == "endpoints":
            _endpoints(config)
        elif sub == "list":
            _list(config)
        elif sub == "kill":
            _kill(config, args.common_name)
        else:
            sys.stderr.write("usage: vpnctl fleet {endpoints,list,kill}\n")
            sys.exit(1)
    except AddressingRangeError as exc:
        sys.stderr.write(f"invalid profile addressing: {exc}\n")
        sys.exit(1)


def _endpoints(config) -> None:
    from vpnctl.fleet import profile_endpoints  # noqa: PLC0415

    settings = config.settings
    _write(
        [
            {"profile_id": ep.profile_id, "process_index": ep.process_index, "address": ep.address}
            for profile in settings.profiles
            for ep in profile_endpoints(profile, settings.fleet.base_port)
        ],
    )


def _build_dispatcher(config):
    from vpnctl.fleet import FleetDispatcher  # noqa: PLC0415
    from vpnctl.fleet.registry import ChannelLoadError, load_channel_factory  # noqa: PLC0415

    settings = config.settings
    try:
        factory = load_channel_factory(settings.fleet)
    except ChannelLoadError as exc:
        sys.stderr.write(f"{exc}\n")
        sys.exit(1)
    if factory is None:
        sys.stderr.write("fleet.channel_class is not configured\n")
        sys.exit(1)

    return FleetDispatcher(
        settings.profiles,
        factory,
        base_port=settings.fleet.base_port,
        timeout_seconds=settings.fleet.timeout_seconds,
        max_workers=settings.fleet.max_workers,
    )


def _list(config) -> None:
    from vpnctl.api.serializers import serialize_fleet_listing  # noqa: PLC0415

    listing = _build_dispatcher(config).list_all_connections()
    _write(serialize_fleet_listing(listing))
    if listing.failures:
        sys.exit(_PARTIAL_EXIT)


def _kill(config, common_name: str) -> None:
    from vpnctl.api.serializers import serialize_kill_result  # noqa: PLC0415
    from vpnctl.logging import security_events  # noqa: PLC0415

    result = _build_dispatcher(config).kill_by_identity(common_name)
    security_events.fleet_kill_issued(common_name, result.disconnected, len(result.failures))
    _write(serialize_kill_result(result))
    if result.failures:
        sys.exit(_PARTIAL_EXIT)


def _write(payload) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, default=str) + "\n")
