"""System message (announcement) routes."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from flask import Blueprint, jsonify, request

from vpnctl.api import validation as v
from vpnctl.api.serializers import serialize_system_message
from vpnctl.app.auth import require_role
from vpnctl.app.context import get_container
from vpnctl.app.errors import MALFORMED, ApiProblem
from vpnctl.core.types import ClientRole

if TYPE_CHECKING:
    from flask.typing import ResponseReturnValue

system_messages_bp = Blueprint("system_messages", __name__)

_MAX_MESSAGE_LENGTH = 4096


@system_messages_bp.route("", methods=["GET"])
@require_role(ClientRole.ADMIN_PORTAL)
def list_system_messages() -> ResponseReturnValue:
    message_type = request.args.get("type")
    messages = get_container().system_message_service.list_messages(message_type)
    return jsonify([serialize_system_message(m) for m in messages]), 200


@system_messages_bp.route("", methods=["POST"])
@require_role(ClientRole.ADMIN_PORTAL)
def add_system_message() -> ResponseReturnValue:
    data = v.json_body()
    message_type = v.require(data, "type")
    message = v.require(data, "message")
    if not isinstance(message_type, str) or not message_type.isidentifier():
        raise ApiProblem(MALFORMED, "invalid type")
    if not isinstance(message, str) or not message.strip() or len(message) > _MAX_MESSAGE_LENGTH:
        raise ApiProblem(MALFORMED, "invalid message")
    created = get_container().system_message_service.add(
        message_type,
        message,
        datetime.now(UTC),
    )
    return jsonify(serialize_system_message(created)), 201


@system_messages_bp.route("/<int:message_id>", methods=["DELETE"])
@require_role(ClientRole.ADMIN_PORTAL)
def delete_system_message(message_id: int) -> ResponseReturnValue:
    get_container().system_message_service.delete(message_id)
    return "", 204
