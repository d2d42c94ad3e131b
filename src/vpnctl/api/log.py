"""Connection log (audit) routes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import Blueprint, jsonify, request

from vpnctl.api import validation as v
from vpnctl.api.serializers import serialize_connection
from vpnctl.app.auth import require_role
from vpnctl.app.context import get_container
from vpnctl.core.types import ClientRole

if TYPE_CHECKING:
    from flask.typing import ResponseReturnValue

log_bp = Blueprint("log", __name__)


@log_bp.route("", methods=["GET"])
@require_role(ClientRole.ADMIN_PORTAL)
def find_covering() -> ResponseReturnValue:
    """Who held ``ip`` at instant ``at``?  Returns the record or ``null``."""
    ip = v.ip_address(v.require(request.args, "ip"))
    at = v.iso_datetime(v.require(request.args, "at"), "at")
    record = get_container().ledger.find_covering(ip, at)
    return jsonify(serialize_connection(record) if record is not None else None), 200


@log_bp.route("/<profile_id>", methods=["GET"])
@require_role(ClientRole.ADMIN_PORTAL)
def closed_entries(profile_id: str) -> ResponseReturnValue:
    records = get_container().ledger.closed_entries(v.profile_id(profile_id))
    return jsonify([serialize_connection(r) for r in records]), 200
