"""Connection log repository: the storage half of the connection ledger."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pypgkit import BaseRepository, Database

from vpnctl.models.connection import ConnectionRecord

if TYPE_CHECKING:
    from datetime import datetime

    from vpnctl.db.unit_of_work import UnitOfWork


class ConnectionLogRepository(BaseRepository[ConnectionRecord]):
    table_name = "connection_log"
    primary_key = "id"

    def _row_to_entity(self, row: dict) -> ConnectionRecord:
        return ConnectionRecord(
            id=row["id"],
            user_id=row.get("user_id"),
            profile_id=row["profile_id"],
            common_name=row["common_name"],
            ip4=row["ip4"],
            ip6=row["ip6"],
            connected_at=row["connected_at"],
            disconnected_at=row.get("disconnected_at"),
            bytes_transferred=row.get("bytes_transferred"),
            client_lost=row.get("client_lost", False),
        )

    def _entity_to_row(self, entity: ConnectionRecord) -> dict:
        return {
            "user_id": entity.user_id,
            "profile_id": entity.profile_id,
            "common_name": entity.common_name,
            "ip4": entity.ip4,
            "ip6": entity.ip6,
            "connected_at": entity.connected_at,
            "disconnected_at": entity.disconnected_at,
            "bytes_transferred": entity.bytes_transferred,
            "client_lost": entity.client_lost,
        }

    # -- writes (must be called within a UnitOfWork holding the triple lock) --

    def close_lost(
        self,
        uow: UnitOfWork,
        profile_id: str,
        ip4: str,
        ip6: str,
        at: datetime,
    ) -> int:
        """Close every open row for the address triple as lost.

        Returns the number of rows reconciled.
        """
        return uow.execute(
            "UPDATE connection_log "
            "SET disconnected_at = %s, client_lost = TRUE "
            "WHERE profile_id = %s AND ip4 = %s AND ip6 = %s "
            "  AND disconnected_at IS NULL",
            (at, profile_id, ip4, ip6),
        )

    def insert_open(
        self,
        uow: UnitOfWork,
        profile_id: str,
        common_name: str,
        ip4: str,
        ip6: str,
        at: datetime,
    ) -> ConnectionRecord:
        """Insert an open row, resolving the owner from the certificate binding."""
        row = uow.fetch_one(
            "INSERT INTO connection_log "
            "(user_id, profile_id, common_name, ip4, ip6, connected_at) "
            "VALUES ("
            "  (SELECT user_id FROM certificates WHERE common_name = %s), "
            "  %s, %s, %s, %s, %s"
            ") RETURNING *",
            (common_name, profile_id, common_name, ip4, ip6, at),
        )
        return self._row_to_entity(row)

    def close_matching(
        self,
        uow: UnitOfWork,
        profile_id: str,
        common_name: str,
        ip4: str,
        ip6: str,
        connected_at: datetime,
        disconnected_at: datetime,
        bytes_transferred: int,
    ) -> int:
        """Close the open row matching the full tuple.

        Already-closed rows are left untouched, so repeating the call
        is harmless.  Returns the number of rows closed.
        """
        return uow.execute(
            "UPDATE connection_log "
            "SET disconnected_at = %s, bytes_transferred = %s "
            "WHERE profile_id = %s AND common_name = %s "
            "  AND ip4 = %s AND ip6 = %s AND connected_at = %s "
            "  AND disconnected_at IS NULL",
            (disconnected_at, bytes_transferred, profile_id, common_name, ip4, ip6, connected_at),
        )

    # -- reads --

    def find_covering(self, ip: str, instant: datetime) -> list[ConnectionRecord]:
        """Rows whose address is *ip* and whose interval contains *instant*.

        Returns a list; more than one entry means the ledger is
        inconsistent and is for the caller to report.
        """
        db = Database.get_instance()
        rows = db.fetch_all(
            "SELECT * FROM connection_log "
            "WHERE (ip4 = %s OR ip6 = %s) "
            "  AND connected_at < %s "
            "  AND (disconnected_at IS NULL OR disconnected_at > %s) "
            "ORDER BY connected_at",
            (ip, ip, instant, instant),
            as_dict=True,
        )
        return [self._row_to_entity(r) for r in rows]

    def closed_by_profile(self, profile_id: str) -> list[ConnectionRecord]:
        db = Database.get_instance()
        rows = db.fetch_all(
            "SELECT * FROM connection_log "
            "WHERE profile_id = %s AND disconnected_at IS NOT NULL "
            "ORDER BY connected_at",
            (profile_id,),
            as_dict=True,
        )
        return [self._row_to_entity(r) for r in rows]

    def has_open_for_user(self, user_id: str, *, uow: UnitOfWork | None = None) -> bool:
        """Whether *user_id* holds an open row on any profile."""
        sql = (
            "SELECT 1 AS open FROM connection_log "
            "WHERE user_id = %s AND disconnected_at IS NULL "
            "LIMIT 1"
        )
        if uow is not None:
            return uow.fetch_one(sql, (user_id,)) is not None
        db = Database.get_instance()
        return db.fetch_one(sql, (user_id,), as_dict=True) is not None

    # -- retention --

    def purge_closed_before(self, horizon: datetime) -> int:
        """Delete closed rows that connected before *horizon*.

        Open rows are never touched, however old.
        """
        db = Database.get_instance()
        return db.execute(
            "DELETE FROM connection_log "
            "WHERE disconnected_at IS NOT NULL AND connected_at < %s",
            (horizon,),
        )
