"""Structured security event logger.

Emits standardized security events for SIEM integration.
All events are logged to the ``vpnctl.security`` logger with
a consistent ``event_id`` field for filtering and alerting.

Credentials in extra fields are redacted via
:func:`~vpnctl.logging.sanitize.sanitize_for_logs` before emission.
"""

from __future__ import annotations

import logging
from typing import Any

from vpnctl.logging.sanitize import sanitize_for_logs

security_log = logging.getLogger("vpnctl.security")


def _emit(
    event_id: str,
    message: str,
    *args: Any,  # noqa: ANN401
    account_id: str | None = None,
    severity: str = "INFO",
    **extra: Any,  # noqa: ANN401
) -> None:
    """Emit a structured security event."""
    data: dict[str, object] = {
        "event_id": event_id,
        "severity": severity,
    }
    if account_id is not None:
        data["account_id"] = account_id
    data.update(sanitize_for_logs(extra))
    level = getattr(logging, severity.upper(), logging.INFO)
    security_log.log(level, message, *args, extra=data)


def connection_denied(
    profile_id: str,
    common_name: str,
    reason: str,
    account_id: str | None = None,
) -> None:
    """Log a rejected connect notification."""
    _emit(
        "vpnctl.security.connection_denied",
        "Connection denied: profile=%s, common_name=%s, reason=%s",
        profile_id,
        common_name,
        reason,
        account_id=account_id,
        severity="WARNING",
        profile_id=profile_id,
        common_name=common_name,
        reason=reason,
    )


def connection_reconciled(profile_id: str, ip4: str, ip6: str, count: int) -> None:
    """Log stale open ledger rows closed as lost on address reuse."""
    _emit(
        "vpnctl.security.connection_reconciled",
        "Closed %d lost connection(s): profile=%s, ip4=%s, ip6=%s",
        count,
        profile_id,
        ip4,
        ip6,
        severity="WARNING",
        profile_id=profile_id,
        ip4=ip4,
        ip6=ip6,
        reconciled=count,
    )


def fleet_kill_issued(common_name: str, disconnected: int, failures: int) -> None:
    _emit(
        "vpnctl.security.fleet_kill_issued",
        "Kill issued for %s: disconnected=%d, failed_endpoints=%d",
        common_name,
        disconnected,
        failures,
        severity="WARNING",
        common_name=common_name,
        disconnected=disconnected,
        failed_endpoints=failures,
    )


def account_disabled(account_id: str) -> None:
    _emit(
        "vpnctl.security.account_disabled",
        "Account disabled: %s",
        account_id,
        account_id=account_id,
        severity="WARNING",
    )


def account_enabled(account_id: str) -> None:
    _emit(
        "vpnctl.security.account_enabled",
        "Account enabled: %s",
        account_id,
        account_id=account_id,
    )


def account_deleted(account_id: str) -> None:
    _emit(
        "vpnctl.security.account_deleted",
        "Account deleted: %s",
        account_id,
        account_id=account_id,
        severity="WARNING",
    )


def ledger_consistency_violation(ip: str, instant: str, record_ids: list[int]) -> None:
    """Log overlapping ledger intervals for one address."""
    _emit(
        "vpnctl.security.ledger_consistency_violation",
        "Ledger consistency violation: %d records cover %s at %s",
        len(record_ids),
        ip,
        instant,
        severity="CRITICAL",
        ip=ip,
        instant=instant,
        record_ids=record_ids,
    )


def api_auth_failed(client_name: str, ip_address: str) -> None:
    """Log a failed HTTP Basic authentication attempt."""
    _emit(
        "vpnctl.security.api_auth_failed",
        "API authentication failed: client=%s, ip=%s",
        client_name,
        ip_address,
        severity="WARNING",
    )


def api_auth_lockout(key: str) -> None:
    _emit(
        "vpnctl.security.api_auth_lockout",
        "API authentication lockout triggered: %s",
        key,
        severity="WARNING",
    )
