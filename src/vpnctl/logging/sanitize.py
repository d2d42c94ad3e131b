"""Sensitive data sanitization for log output.

Provides :func:`sanitize_for_logs`, which redacts credentials (API
client secrets, HTTP ``Authorization`` values, database passwords)
from data structures before they are written to log files.
"""

from __future__ import annotations

import re
from typing import Any

# Mapping keys whose values are always credentials
_SECRET_KEYS = frozenset({"secret", "password", "authorization", "token"})

# "Basic <b64>" / "Bearer <token>" anywhere in a string
_AUTH_VALUE_RE = re.compile(r"\b(Basic|Bearer)\s+[A-Za-z0-9+/=._~-]+")


def sanitize_header_value(value: str) -> str:
    """Replace the credential part of an HTTP auth value with ``[REDACTED]``."""
    return _AUTH_VALUE_RE.sub(lambda m: f"{m.group(1)} [REDACTED]", value)


def sanitize_for_logs(data: Any) -> Any:  # noqa: ANN401
    """Recursively sanitize credentials in *data*.

    Handles dicts, lists/tuples and plain strings.  Everything else
    passes through unchanged.
    """
    if isinstance(data, dict):
        return {
            k: "[REDACTED]" if str(k).lower() in _SECRET_KEYS else sanitize_for_logs(v)
            for k, v in data.items()
        }

    if isinstance(data, (list, tuple)):
        return type(data)(sanitize_for_logs(item) for item in data)

    if isinstance(data, str):
        return sanitize_header_value(data)

    return data
