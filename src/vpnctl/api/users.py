"""User administration routes for the admin portal."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from flask import Blueprint, jsonify, request

from vpnctl.api import validation as v
from vpnctl.api.serializers import (
    serialize_account,
    serialize_certificate,
    serialize_user_message,
)
from vpnctl.app.auth import require_role
from vpnctl.app.context import get_container
from vpnctl.core.types import ClientRole

if TYPE_CHECKING:
    from flask.typing import ResponseReturnValue

users_bp = Blueprint("users", __name__)


@users_bp.route("", methods=["GET"])
@require_role(ClientRole.ADMIN_PORTAL)
def list_users() -> ResponseReturnValue:
    accounts = get_container().account_service.list_accounts()
    return jsonify([serialize_account(a) for a in accounts]), 200


@users_bp.route("/<user_id>", methods=["GET"])
@require_role(ClientRole.ADMIN_PORTAL)
def get_user(user_id: str) -> ResponseReturnValue:
    account = get_container().account_service.get_account(v.user_id(user_id))
    return jsonify(serialize_account(account)), 200


@users_bp.route("/<user_id>", methods=["DELETE"])
@require_role(ClientRole.ADMIN_PORTAL)
def delete_user(user_id: str) -> ResponseReturnValue:
    get_container().account_service.delete(v.user_id(user_id))
    return "", 204


@users_bp.route("/<user_id>/disable", methods=["POST"])
@require_role(ClientRole.ADMIN_PORTAL)
def disable_user(user_id: str) -> ResponseReturnValue:
    account = get_container().account_service.disable(v.user_id(user_id), datetime.now(UTC))
    return jsonify(serialize_account(account)), 200


@users_bp.route("/<user_id>/enable", methods=["POST"])
@require_role(ClientRole.ADMIN_PORTAL)
def enable_user(user_id: str) -> ResponseReturnValue:
    account = get_container().account_service.enable(v.user_id(user_id), datetime.now(UTC))
    return jsonify(serialize_account(account)), 200


@users_bp.route("/<user_id>/session", methods=["POST"])
@require_role(ClientRole.ADMIN_PORTAL)
def update_session(user_id: str) -> ResponseReturnValue:
    """Store the expiry and permissions of a fresh portal login."""
    data = v.json_body()
    account = get_container().account_service.update_session_info(
        v.user_id(user_id),
        v.iso_datetime(v.require(data, "session_expires_at"), "session_expires_at"),
        v.permission_list(data.get("permission_list", [])),
        datetime.now(UTC),
    )
    return jsonify(serialize_account(account)), 200


@users_bp.route("/<user_id>/messages", methods=["GET"])
@require_role(ClientRole.ADMIN_PORTAL)
def user_messages(user_id: str) -> ResponseReturnValue:
    messages = get_container().account_service.messages(v.user_id(user_id))
    return jsonify([serialize_user_message(m) for m in messages]), 200


@users_bp.route("/<user_id>/certificates", methods=["GET"])
@require_role(ClientRole.ADMIN_PORTAL)
def user_certificates(user_id: str) -> ResponseReturnValue:
    bindings = get_container().account_service.certificates(v.user_id(user_id))
    return jsonify([serialize_certificate(b) for b in bindings]), 200


@users_bp.route("/<user_id>/certificates", methods=["DELETE"])
@require_role(ClientRole.ADMIN_PORTAL)
def delete_client_certificates(user_id: str) -> ResponseReturnValue:
    """Revoke every binding a given OAuth client obtained for the user."""
    deleted = get_container().account_service.delete_client_certificates(
        v.user_id(user_id),
        v.client_id(v.require(request.args, "client_id")),
    )
    return jsonify({"deleted": deleted}), 200
