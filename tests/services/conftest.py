"""Service test helpers: in-memory connection log and a no-op unit of work."""

from __future__ import annotations

import dataclasses
from unittest.mock import MagicMock

import pytest

from vpnctl.models import ConnectionRecord


class FakeUnitOfWork:
    """Stands in for UnitOfWork; records the advisory locks taken."""

    instances: list = []

    def __init__(self, database=None) -> None:
        self.database = database
        self.locks: list[tuple] = []
        self.committed = False
        FakeUnitOfWork.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.committed = exc_type is None

    def advisory_lock(self, *parts) -> None:
        self.locks.append(parts)


class InMemoryConnectionLog:
    """Implements the ConnectionLogRepository surface over a list."""

    def __init__(self, bindings: dict[str, str] | None = None) -> None:
        self.rows: list[ConnectionRecord] = []
        self.bindings = bindings if bindings is not None else {}
        self._next_id = 1

    def _replace(self, index: int, **changes) -> None:
        self.rows[index] = dataclasses.replace(self.rows[index], **changes)

    def close_lost(self, uow, profile_id, ip4, ip6, at) -> int:
        count = 0
        for i, r in enumerate(self.rows):
            if r.is_open and (r.profile_id, r.ip4, r.ip6) == (profile_id, ip4, ip6):
                self._replace(i, disconnected_at=at, client_lost=True)
                count += 1
        return count

    def insert_open(self, uow, profile_id, common_name, ip4, ip6, at) -> ConnectionRecord:
        record = ConnectionRecord(
            id=self._next_id,
            user_id=self.bindings.get(common_name),
            profile_id=profile_id,
            common_name=common_name,
            ip4=ip4,
            ip6=ip6,
            connected_at=at,
        )
        self._next_id += 1
        self.rows.append(record)
        return record

    def close_matching(
        self, uow, profile_id, common_name, ip4, ip6, connected_at, disconnected_at, nbytes
    ) -> int:
        count = 0
        for i, r in enumerate(self.rows):
            key = (r.profile_id, r.common_name, r.ip4, r.ip6, r.connected_at)
            if r.is_open and key == (profile_id, common_name, ip4, ip6, connected_at):
                self._replace(i, disconnected_at=disconnected_at, bytes_transferred=nbytes)
                count += 1
        return count

    def find_covering(self, ip, instant) -> list[ConnectionRecord]:
        return sorted(
            (r for r in self.rows if r.covers(ip, instant)),
            key=lambda r: r.connected_at,
        )

    def closed_by_profile(self, profile_id) -> list[ConnectionRecord]:
        return [r for r in self.rows if r.profile_id == profile_id and not r.is_open]

    def has_open_for_user(self, user_id, uow=None) -> bool:
        return any(r.user_id == user_id and r.is_open for r in self.rows)

    def purge_closed_before(self, horizon) -> int:
        keep = [r for r in self.rows if r.is_open or r.connected_at >= horizon]
        deleted = len(self.rows) - len(keep)
        self.rows = keep
        return deleted


@pytest.fixture()
def fake_uow(monkeypatch):
    """Patch UnitOfWork in the ledger and connection service."""
    FakeUnitOfWork.instances = []
    monkeypatch.setattr("vpnctl.services.ledger.UnitOfWork", FakeUnitOfWork)
    monkeypatch.setattr("vpnctl.services.connection.UnitOfWork", FakeUnitOfWork)
    return FakeUnitOfWork


@pytest.fixture()
def connection_log():
    return InMemoryConnectionLog()


@pytest.fixture()
def metrics():
    from vpnctl.metrics.collector import MetricsCollector

    return MetricsCollector()


@pytest.fixture()
def ledger(connection_log, fake_uow, metrics):
    from vpnctl.services.ledger import ConnectionLedger

    return ConnectionLedger(connection_log, database=MagicMock(), metrics=metrics)
