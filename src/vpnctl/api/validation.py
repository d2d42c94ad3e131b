"""Input validation for API request bodies and query strings.

Every helper returns the parsed value or raises a ``400 malformed``
:class:`~vpnctl.app.errors.ApiProblem` naming the offending field.
"""

from __future__ import annotations

import ipaddress
import re
from datetime import UTC, datetime
from typing import Any

from flask import request

from vpnctl.app.errors import MALFORMED, ApiProblem

_PROFILE_ID_RE = re.compile(r"^[a-zA-Z0-9-.]+$")
_COMMON_NAME_RE = re.compile(r"^[a-zA-Z0-9-.@_]+$")
_USER_ID_RE = re.compile(r"^[^\s\x00-\x1f\x7f]{1,255}$")
_PERMISSION_RE = re.compile(r"^[^\s\x00-\x1f\x7f]{1,255}$")


def _malformed(detail: str) -> ApiProblem:
    return ApiProblem(MALFORMED, detail)


def json_body() -> dict[str, Any]:
    """Return the request's JSON object body."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise _malformed("Request body must be a JSON object")
    return data


def require(data: dict[str, Any], name: str) -> Any:  # noqa: ANN401
    if name not in data or data[name] is None:
        raise _malformed(f"missing required field '{name}'")
    return data[name]


def _match(value: Any, pattern: re.Pattern, name: str) -> str:  # noqa: ANN401
    if not isinstance(value, str) or not pattern.fullmatch(value):
        raise _malformed(f"invalid {name}")
    return value


def profile_id(value: Any) -> str:  # noqa: ANN401
    return _match(value, _PROFILE_ID_RE, "profile_id")


def common_name(value: Any) -> str:  # noqa: ANN401
    return _match(value, _COMMON_NAME_RE, "common_name")


def user_id(value: Any) -> str:  # noqa: ANN401
    return _match(value, _USER_ID_RE, "user_id")


def client_id(value: Any) -> str:  # noqa: ANN401
    return _match(value, _USER_ID_RE, "client_id")


def ip4(value: Any) -> str:  # noqa: ANN401
    if not isinstance(value, str):
        raise _malformed("invalid ip4")
    try:
        return str(ipaddress.IPv4Address(value))
    except (ipaddress.AddressValueError, TypeError, ValueError):
        raise _malformed("invalid ip4") from None


def ip6(value: Any) -> str:  # noqa: ANN401
    if not isinstance(value, str):
        raise _malformed("invalid ip6")
    try:
        return str(ipaddress.IPv6Address(value))
    except (ipaddress.AddressValueError, TypeError, ValueError):
        raise _malformed("invalid ip6") from None


def ip_address(value: Any) -> str:  # noqa: ANN401
    """Either family, normalised."""
    if not isinstance(value, str):
        raise _malformed("invalid ip")
    try:
        return str(ipaddress.ip_address(value))
    except (TypeError, ValueError):
        raise _malformed("invalid ip") from None


def non_negative_int(value: Any, name: str) -> int:  # noqa: ANN401
    if isinstance(value, str) and value.isascii() and value.isdigit():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise _malformed(f"invalid {name}: expected a non-negative integer")
    return value


def unix_time(value: Any, name: str) -> datetime:  # noqa: ANN401
    """Unix seconds to an aware UTC datetime."""
    seconds = non_negative_int(value, name)
    try:
        return datetime.fromtimestamp(seconds, tz=UTC)
    except (OverflowError, OSError, ValueError):
        raise _malformed(f"invalid {name}: timestamp out of range") from None


def iso_datetime(value: Any, name: str) -> datetime:  # noqa: ANN401
    """ISO 8601 instant; naive values are taken as UTC."""
    if not isinstance(value, str):
        raise _malformed(f"invalid {name}: expected an ISO 8601 timestamp")
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise _malformed(f"invalid {name}: expected an ISO 8601 timestamp") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def permission_list(value: Any) -> list[str]:  # noqa: ANN401
    if not isinstance(value, list) or not all(
        isinstance(p, str) and _PERMISSION_RE.fullmatch(p) for p in value
    ):
        raise _malformed("invalid permission_list: expected a list of strings")
    return value


def display_name(value: Any) -> str:  # noqa: ANN401
    if not isinstance(value, str) or not value.strip() or len(value) > 255:
        raise _malformed("invalid display_name")
    return value
