"""Connection notification and fleet routes.

* ``POST /connections/connect`` and ``/connections/disconnect`` are
  called by VPN server nodes as clients come and go.
* ``GET /connections`` and ``POST /connections/kill`` are called by
  the admin portal and fan out over every termination process.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from flask import Blueprint, jsonify

from vpnctl.api import validation as v
from vpnctl.api.serializers import serialize_fleet_listing, serialize_kill_result
from vpnctl.app.auth import require_role
from vpnctl.app.context import get_container
from vpnctl.app.errors import CONNECTION_DENIED, FLEET_UNAVAILABLE, NOT_FOUND, ApiProblem
from vpnctl.core.types import ClientRole
from vpnctl.logging import security_events
from vpnctl.services.connection import CONNECT_ERROR_PREFIX, UnknownProfileError

if TYPE_CHECKING:
    from flask.typing import ResponseReturnValue

    from vpnctl.fleet.dispatcher import FleetDispatcher

log = logging.getLogger(__name__)

connections_bp = Blueprint("connections", __name__)


def _dispatcher() -> FleetDispatcher:
    dispatcher = get_container().fleet_dispatcher
    if dispatcher is None:
        raise ApiProblem(
            FLEET_UNAVAILABLE,
            "No process control channel is configured (fleet.channel_class)",
            503,
        )
    return dispatcher


@connections_bp.route("/connect", methods=["POST"])
@require_role(ClientRole.SERVER_NODE)
def connect() -> ResponseReturnValue:
    data = v.json_body()
    profile_id = v.profile_id(v.require(data, "profile_id"))
    common_name = v.common_name(v.require(data, "common_name"))
    ip4 = v.ip4(v.require(data, "ip4"))
    ip6 = v.ip6(v.require(data, "ip6"))
    connected_at = v.unix_time(v.require(data, "connected_at"), "connected_at")

    try:
        decision = get_container().connection_service.connect(
            profile_id,
            common_name,
            ip4,
            ip6,
            connected_at,
            now=datetime.now(UTC),
        )
    except UnknownProfileError as exc:
        raise ApiProblem(NOT_FOUND, str(exc), 404) from None

    if not decision.allowed:
        raise ApiProblem(
            CONNECTION_DENIED,
            CONNECT_ERROR_PREFIX + decision.detail,
            403,
            extra={"reason": str(decision.reason)},
        )
    return jsonify({"ok": True}), 200


@connections_bp.route("/disconnect", methods=["POST"])
@require_role(ClientRole.SERVER_NODE)
def disconnect() -> ResponseReturnValue:
    data = v.json_body()
    closed = get_container().connection_service.disconnect(
        v.profile_id(v.require(data, "profile_id")),
        v.common_name(v.require(data, "common_name")),
        v.ip4(v.require(data, "ip4")),
        v.ip6(v.require(data, "ip6")),
        v.unix_time(v.require(data, "connected_at"), "connected_at"),
        v.unix_time(v.require(data, "disconnected_at"), "disconnected_at"),
        v.non_negative_int(v.require(data, "bytes_transferred"), "bytes_transferred"),
    )
    return jsonify({"ok": True, "closed": closed}), 200


@connections_bp.route("", methods=["GET"])
@require_role(ClientRole.ADMIN_PORTAL)
def list_connections() -> ResponseReturnValue:
    listing = _dispatcher().list_all_connections()
    return jsonify(serialize_fleet_listing(listing)), 200


@connections_bp.route("/kill", methods=["POST"])
@require_role(ClientRole.ADMIN_PORTAL)
def kill() -> ResponseReturnValue:
    data = v.json_body()
    common_name = v.common_name(v.require(data, "common_name"))
    result = _dispatcher().kill_by_identity(common_name)
    security_events.fleet_kill_issued(common_name, result.disconnected, len(result.failures))
    return jsonify(serialize_kill_result(result)), 200
