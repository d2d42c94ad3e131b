"""Connection ledger: authoritative connect/disconnect history.

A termination process can die mid-session without ever reporting the
disconnect.  When its address is later handed out again, the new
connect is the only signal that the old session is gone, so
:meth:`ConnectionLedger.record_connect` closes any open row for the
same (profile, ip4, ip6) triple as *lost* before inserting the new one.

Both writes run in a single transaction holding an advisory lock on
the triple, so two connects for a freed address cannot both observe
"no open row" and both insert one.
"""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING, Any

from vpnctl.db.unit_of_work import UnitOfWork
from vpnctl.logging import security_events

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import datetime

    from pypgkit import Database

    from vpnctl.models.connection import ConnectionRecord
    from vpnctl.repositories.connection_log import ConnectionLogRepository

log = logging.getLogger(__name__)

_LOCK_NAMESPACE = "connection"


class LedgerConsistencyViolation(RuntimeError):
    """More than one ledger row covers the same address at one instant.

    Reconcile-on-connect makes this impossible for writes that went
    through the ledger; seeing it means the table was altered some
    other way.  It is reported, never repaired.
    """

    def __init__(self, ip: str, instant: datetime, records: list[ConnectionRecord]) -> None:
        self.ip = ip
        self.instant = instant
        self.records = records
        super().__init__(
            f"{len(records)} connection log records cover {ip} at {instant.isoformat()}",
        )


class ConnectionLedger:
    """Record and query the connection history."""

    def __init__(
        self,
        connection_log_repo: ConnectionLogRepository,
        database: Database | None = None,
        metrics: Any = None,  # noqa: ANN401
    ) -> None:
        self._log = connection_log_repo
        self._db = database
        self._metrics = metrics

    @contextlib.contextmanager
    def _unit(self, uow: UnitOfWork | None) -> Iterator[UnitOfWork]:
        if uow is not None:
            yield uow
            return
        with UnitOfWork(self._db) as own:
            yield own

    def record_connect(  # noqa: PLR0913
        self,
        profile_id: str,
        common_name: str,
        ip4: str,
        ip6: str,
        at: datetime,
        *,
        uow: UnitOfWork | None = None,
    ) -> ConnectionRecord:
        """Reconcile the address triple, then open a new row.

        Pass *uow* to join a transaction the caller already holds;
        otherwise a new one is opened and committed here.
        """
        with self._unit(uow) as tx:
            tx.advisory_lock(_LOCK_NAMESPACE, profile_id, ip4, ip6)
            lost = self._log.close_lost(tx, profile_id, ip4, ip6, at)
            record = self._log.insert_open(tx, profile_id, common_name, ip4, ip6, at)

        if lost:
            log.warning(
                "Reconciled %d lost connection(s) on %s (%s, %s)",
                lost,
                profile_id,
                ip4,
                ip6,
            )
            security_events.connection_reconciled(profile_id, ip4, ip6, lost)
            if self._metrics:
                self._metrics.increment("vpnctl_connections_reconciled_total", amount=lost)

        log.info(
            "Connection opened: profile=%s, common_name=%s, ip4=%s, ip6=%s",
            profile_id,
            common_name,
            ip4,
            ip6,
        )
        return record

    def record_disconnect(  # noqa: PLR0913
        self,
        profile_id: str,
        common_name: str,
        ip4: str,
        ip6: str,
        connected_at: datetime,
        disconnected_at: datetime,
        bytes_transferred: int,
    ) -> bool:
        """Close the row matching the full tuple.

        Returns whether a row was closed.  ``False`` covers both a
        duplicate notification and a row that was reconciled away or
        never existed; callers treat either as success.
        """
        with self._unit(None) as tx:
            tx.advisory_lock(_LOCK_NAMESPACE, profile_id, ip4, ip6)
            closed = self._log.close_matching(
                tx,
                profile_id,
                common_name,
                ip4,
                ip6,
                connected_at,
                disconnected_at,
                bytes_transferred,
            )
        if not closed:
            log.debug(
                "Disconnect matched no open connection: profile=%s, common_name=%s, "
                "ip4=%s, ip6=%s, connected_at=%s",
                profile_id,
                common_name,
                ip4,
                ip6,
                connected_at.isoformat(),
            )
        return closed > 0

    def find_covering(self, ip: str, instant: datetime) -> ConnectionRecord | None:
        """Return the record that held *ip* at *instant*, if any.

        Raises
        ------
        LedgerConsistencyViolation
            If more than one record covers the address.

        """
        records = self._log.find_covering(ip, instant)
        if len(records) > 1:
            log.critical(
                "Ledger consistency violation: %d records cover %s at %s",
                len(records),
                ip,
                instant.isoformat(),
            )
            security_events.ledger_consistency_violation(
                ip,
                instant.isoformat(),
                [r.id for r in records],
            )
            raise LedgerConsistencyViolation(ip, instant, records)
        return records[0] if records else None

    def purge_closed_before(self, horizon: datetime) -> int:
        deleted = self._log.purge_closed_before(horizon)
        if deleted:
            log.info(
                "Purged %d closed connection(s) older than %s",
                deleted,
                horizon.isoformat(),
            )
        return deleted

    def closed_entries(self, profile_id: str) -> list[ConnectionRecord]:
        return self._log.closed_by_profile(profile_id)

    def has_open_connection(self, account_id: str, *, uow: UnitOfWork | None = None) -> bool:
        return self._log.has_open_for_user(account_id, uow=uow)
