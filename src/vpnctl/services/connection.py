"""Connection service: handle connect and disconnect notifications.

Termination processes report every client connect and disconnect.
A connect is authorized and, when allowed, recorded in the ledger; a
refusal is written to the account's message feed as
``"[CONNECT] ERROR: <detail>"`` so the user can see why.  A disconnect
only closes the ledger row.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from vpnctl.core.types import MessageType
from vpnctl.db.unit_of_work import UnitOfWork
from vpnctl.logging import security_events

if TYPE_CHECKING:
    from datetime import datetime

    from pypgkit import Database

    from vpnctl.config.settings import ProfileSettings
    from vpnctl.repositories.certificate import CertificateRepository
    from vpnctl.repositories.message import UserMessageRepository
    from vpnctl.services.authorization import AuthorizationEngine, Decision
    from vpnctl.services.ledger import ConnectionLedger

log = logging.getLogger(__name__)

CONNECT_ERROR_PREFIX = "[CONNECT] ERROR: "


class UnknownProfileError(LookupError):
    """A notification named a profile that is not configured."""

    def __init__(self, profile_id: str) -> None:
        self.profile_id = profile_id
        super().__init__(f"profile '{profile_id}' is not configured")


class ConnectionService:
    """Glue between node notifications, the authorization engine and the ledger."""

    def __init__(  # noqa: PLR0913
        self,
        profiles: tuple[ProfileSettings, ...],
        engine: AuthorizationEngine,
        ledger: ConnectionLedger,
        certificate_repo: CertificateRepository,
        message_repo: UserMessageRepository,
        database: Database | None = None,
        metrics: Any = None,  # noqa: ANN401
    ) -> None:
        self._profiles = {p.id: p for p in profiles}
        self._engine = engine
        self._ledger = ledger
        self._certificates = certificate_repo
        self._messages = message_repo
        self._db = database
        self._metrics = metrics

    def _profile(self, profile_id: str) -> ProfileSettings:
        try:
            return self._profiles[profile_id]
        except KeyError:
            raise UnknownProfileError(profile_id) from None

    def connect(  # noqa: PLR0913
        self,
        profile_id: str,
        common_name: str,
        ip4: str,
        ip6: str,
        connected_at: datetime,
        now: datetime,
    ) -> Decision:
        """Authorize a connect and, when allowed, record it.

        Authorization and recording run under a per-account advisory
        lock so that concurrent connects for one account are decided
        one after the other and the already-connected check holds.  All
        reads use the transaction's connection, so a connect holds one
        pooled connection at a time.
        """
        profile = self._profile(profile_id)

        with UnitOfWork(self._db) as uow:
            binding = self._certificates.find_by_common_name(common_name, uow=uow)
            if binding is not None:
                uow.advisory_lock("account", binding.user_id)
            decision = self._engine.authorize(profile, common_name, now, uow=uow)
            if decision.allowed:
                self._ledger.record_connect(
                    profile_id,
                    common_name,
                    ip4,
                    ip6,
                    connected_at,
                    uow=uow,
                )

        if self._metrics:
            outcome = "allowed" if decision.allowed else str(decision.reason)
            self._metrics.increment("vpnctl_connect_total", labels={"outcome": outcome})

        if not decision.allowed:
            self._report_denial(profile_id, common_name, decision, now)
        return decision

    def _report_denial(
        self,
        profile_id: str,
        common_name: str,
        decision: Decision,
        now: datetime,
    ) -> None:
        log.info(
            "Connection denied: profile=%s, common_name=%s, reason=%s: %s",
            profile_id,
            common_name,
            decision.reason,
            decision.detail,
        )
        security_events.connection_denied(
            profile_id,
            common_name,
            str(decision.reason),
            account_id=decision.account_id,
        )
        if decision.account_id is not None:
            self._messages.add(
                decision.account_id,
                MessageType.NOTIFICATION,
                CONNECT_ERROR_PREFIX + decision.detail,
                now,
            )

    def disconnect(  # noqa: PLR0913
        self,
        profile_id: str,
        common_name: str,
        ip4: str,
        ip6: str,
        connected_at: datetime,
        disconnected_at: datetime,
        bytes_transferred: int,
    ) -> bool:
        """Close the ledger row.  Returns whether a row was closed.

        The profile is not checked against configuration: rows opened
        before a profile was removed must still be closable.
        """
        closed = self._ledger.record_disconnect(
            profile_id,
            common_name,
            ip4,
            ip6,
            connected_at,
            disconnected_at,
            bytes_transferred,
        )
        if self._metrics:
            self._metrics.increment(
                "vpnctl_disconnect_total",
                labels={"matched": "true" if closed else "false"},
            )
        return closed
