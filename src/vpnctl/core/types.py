"""Enumerated types for the vpnctl persistence and decision layers.

All enums inherit from :class:`enum.StrEnum` so their ``.value`` is a
plain string that psycopg serialises as TEXT and JSON round-trips
naturally.
"""

from __future__ import annotations

from enum import StrEnum

# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class DenyReason(StrEnum):
    UNKNOWN_CERTIFICATE = "unknown_certificate"
    SESSION_EXPIRED = "session_expired"
    ACCOUNT_DISABLED = "account_disabled"
    ALREADY_CONNECTED = "already_connected"
    ACL_FORBIDDEN = "acl_forbidden"


# ---------------------------------------------------------------------------
# User messages
# ---------------------------------------------------------------------------


class MessageType(StrEnum):
    NOTIFICATION = "notification"
    ERROR = "error"


# ---------------------------------------------------------------------------
# Fleet
# ---------------------------------------------------------------------------


class EndpointFailureKind(StrEnum):
    UNREACHABLE = "unreachable"
    TIMEOUT = "timeout"
    PROTOCOL = "protocol"


# ---------------------------------------------------------------------------
# API client roles
# ---------------------------------------------------------------------------


class ClientRole(StrEnum):
    SERVER_NODE = "vpn-server-node"
    ADMIN_PORTAL = "vpn-admin-portal"
