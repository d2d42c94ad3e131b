"""HTTP Basic authentication and role checks for API clients.

Clients (the admin portal, each VPN server node) are configured under
``api.clients`` with a shared secret and a list of roles.  Repeated
failures from one address/name pair trigger a temporary lockout.
"""

from __future__ import annotations

import functools
import hmac
import logging
import threading
import time
from typing import TYPE_CHECKING, Any

from flask import g, request

from vpnctl.app.errors import FORBIDDEN, RATE_LIMITED, UNAUTHORIZED, ApiProblem
from vpnctl.logging import security_events

if TYPE_CHECKING:
    from collections.abc import Callable

    from vpnctl.config.settings import ApiClientSettings

log = logging.getLogger(__name__)

_WWW_AUTHENTICATE = {"WWW-Authenticate": 'Basic realm="vpnctl"'}


class LoginRateLimiter:
    """In-memory lockout for failed client authentications.

    Tracks failures per key and blocks the key for *lockout_seconds*
    once *max_attempts* failures fall within *window_seconds*.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        window_seconds: int = 300,
        lockout_seconds: int = 300,
    ) -> None:
        self._max_attempts = max_attempts
        self._window = window_seconds
        self._lockout = lockout_seconds
        self._attempts: dict[str, list[float]] = {}
        self._lockouts: dict[str, float] = {}
        self._lock = threading.Lock()

    def check(self, key: str) -> None:
        """Raise ``ApiProblem`` (429) if *key* is locked out."""
        now = time.monotonic()
        with self._lock:
            lockout_until = self._lockouts.get(key, 0)
            if now < lockout_until:
                remaining = int(lockout_until - now) + 1
                raise ApiProblem(
                    RATE_LIMITED,
                    f"Too many failed authentication attempts. Try again in {remaining} seconds.",
                    status=429,
                    headers={"Retry-After": str(remaining)},
                )

    def record_failure(self, key: str) -> None:
        now = time.monotonic()
        with self._lock:
            cutoff = now - self._window
            attempts = [t for t in self._attempts.get(key, []) if t > cutoff]
            attempts.append(now)
            self._attempts[key] = attempts
            if len(attempts) >= self._max_attempts:
                self._lockouts[key] = now + self._lockout
                security_events.api_auth_lockout(key)

    def record_success(self, key: str) -> None:
        with self._lock:
            self._attempts.pop(key, None)
            self._lockouts.pop(key, None)


def _find_client(
    clients: tuple[ApiClientSettings, ...],
    name: str,
) -> ApiClientSettings | None:
    for client in clients:
        if client.name == name:
            return client
    return None


def _authenticate() -> ApiClientSettings:
    from vpnctl.app.context import get_container  # noqa: PLC0415

    container = get_container()
    auth = request.authorization
    if auth is None or auth.type != "basic" or not auth.username:
        raise ApiProblem(
            UNAUTHORIZED,
            "Missing or invalid Authorization header",
            status=401,
            headers=_WWW_AUTHENTICATE,
        )

    client_ip = request.remote_addr or "unknown"
    key = f"{client_ip}:{auth.username}"
    limiter = container.auth_limiter
    limiter.check(key)

    client = _find_client(container.settings.api.clients, auth.username)
    secret = (auth.password or "").encode()
    # Unknown names still go through compare_digest, against a dummy
    expected = client.secret.encode() if client is not None else b"\0" * 32
    if not hmac.compare_digest(secret, expected) or client is None:
        limiter.record_failure(key)
        security_events.api_auth_failed(auth.username, client_ip)
        raise ApiProblem(
            UNAUTHORIZED,
            "Invalid client credentials",
            status=401,
            headers=_WWW_AUTHENTICATE,
        )

    limiter.record_success(key)
    return client


def require_role(*roles: str) -> Callable:
    """Authenticate the client and require one of *roles*.

    The authenticated client is stored on ``g.api_client``.
    """
    required = {str(r) for r in roles}

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
            client = _authenticate()
            if not required & set(client.roles):
                raise ApiProblem(
                    FORBIDDEN,
                    f"Client '{client.name}' lacks a required role: {', '.join(sorted(required))}",
                    status=403,
                )
            g.api_client = client
            return fn(*args, **kwargs)

        return wrapper

    return decorator
