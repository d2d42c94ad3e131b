"""Certificate binding routes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import Blueprint, jsonify

from vpnctl.api import validation as v
from vpnctl.api.serializers import serialize_certificate
from vpnctl.app.auth import require_role
from vpnctl.app.context import get_container
from vpnctl.core.types import ClientRole

if TYPE_CHECKING:
    from flask.typing import ResponseReturnValue

certificates_bp = Blueprint("certificates", __name__)


@certificates_bp.route("", methods=["POST"])
@require_role(ClientRole.ADMIN_PORTAL)
def add_certificate() -> ResponseReturnValue:
    data = v.json_body()
    client_id = data.get("client_id")
    binding = get_container().account_service.add_certificate(
        v.common_name(v.require(data, "common_name")),
        v.user_id(v.require(data, "user_id")),
        v.display_name(v.require(data, "display_name")),
        v.iso_datetime(v.require(data, "valid_from"), "valid_from"),
        v.iso_datetime(v.require(data, "valid_to"), "valid_to"),
        client_id=v.client_id(client_id) if client_id is not None else None,
    )
    return jsonify(serialize_certificate(binding)), 201


@certificates_bp.route("/<common_name>", methods=["DELETE"])
@require_role(ClientRole.ADMIN_PORTAL)
def delete_certificate(common_name: str) -> ResponseReturnValue:
    get_container().account_service.delete_certificate(v.common_name(common_name))
    return "", 204
