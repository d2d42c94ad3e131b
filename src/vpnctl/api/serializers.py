"""JSON serialization for API responses.

Each function takes a model entity and produces a dictionary suitable
for ``flask.jsonify``.  Timestamps are ISO 8601 strings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datetime import datetime

    from vpnctl.fleet.channel import ClientSession
    from vpnctl.fleet.dispatcher import FleetListing, KillResult
    from vpnctl.models import (
        Account,
        CertificateBinding,
        ConnectionRecord,
        SystemMessage,
        UserMessage,
    )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def serialize_account(account: Account) -> dict[str, Any]:
    return {
        "user_id": account.id,
        "is_disabled": account.disabled,
        "is_federated": account.federated,
        "permission_list": list(account.permissions),
        "session_expires_at": _iso(account.session_expires_at),
        "last_authenticated_at": _iso(account.last_authenticated_at),
        "created_at": _iso(account.created_at),
    }


def serialize_certificate(binding: CertificateBinding) -> dict[str, Any]:
    return {
        "common_name": binding.common_name,
        "user_id": binding.user_id,
        "display_name": binding.display_name,
        "valid_from": _iso(binding.valid_from),
        "valid_to": _iso(binding.valid_to),
        "client_id": binding.client_id,
    }


def serialize_connection(record: ConnectionRecord) -> dict[str, Any]:
    return {
        "user_id": record.user_id,
        "profile_id": record.profile_id,
        "common_name": record.common_name,
        "ip4": record.ip4,
        "ip6": record.ip6,
        "connected_at": _iso(record.connected_at),
        "disconnected_at": _iso(record.disconnected_at),
        "bytes_transferred": record.bytes_transferred,
        "client_lost": record.client_lost,
    }


def serialize_user_message(message: UserMessage) -> dict[str, Any]:
    return {
        "id": message.id,
        "type": message.type.value,
        "message": message.message,
        "date_time": _iso(message.created_at),
    }


def serialize_system_message(message: SystemMessage) -> dict[str, Any]:
    return {
        "id": message.id,
        "type": message.type,
        "message": message.message,
        "date_time": _iso(message.created_at),
    }


def serialize_session(session: ClientSession) -> dict[str, Any]:
    return {
        "common_name": session.common_name,
        "real_address": session.real_address,
        "virtual_address": list(session.virtual_addresses),
        "bytes_in": session.bytes_in,
        "bytes_out": session.bytes_out,
        "connected_since": _iso(session.connected_since),
    }


def serialize_fleet_listing(listing: FleetListing) -> dict[str, Any]:
    """Sessions grouped per profile, plus the endpoints that failed."""
    return {
        "profiles": [
            {
                "profile_id": entry.profile_id,
                "connections": [serialize_session(s) for s in entry.sessions],
            }
            for entry in listing.profiles
        ],
        "failures": [f.to_dict() for f in listing.failures],
    }


def serialize_kill_result(result: KillResult) -> dict[str, Any]:
    return {
        "disconnected": result.disconnected,
        "failures": [f.to_dict() for f in result.failures],
    }
