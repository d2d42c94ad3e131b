"""ConnectionRecord entity: one row of the connection ledger."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ConnectionRecord:
    id: int | None
    user_id: str | None
    profile_id: str
    common_name: str
    ip4: str
    ip6: str
    connected_at: datetime
    disconnected_at: datetime | None = None
    bytes_transferred: int | None = None
    client_lost: bool = False

    @property
    def is_open(self) -> bool:
        return self.disconnected_at is None

    def covers(self, ip: str, instant: datetime) -> bool:
        """Whether this record held *ip* at *instant*."""
        if ip not in (self.ip4, self.ip6):
            return False
        if not self.connected_at < instant:
            return False
        return self.disconnected_at is None or self.disconnected_at > instant
