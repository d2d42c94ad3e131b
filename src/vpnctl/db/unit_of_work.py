"""Unit of Work: serialised read-modify-write on a single transaction.

PyPGKit's :class:`BaseRepository` CRUD methods each acquire their own
connection from the pool, so a reconcile-then-insert sequence issued
through them is neither atomic nor serialised.  This wrapper provides
explicit transaction control plus transaction-scoped advisory locks
for operations that must not interleave.

Usage::

    from vpnctl.db import UnitOfWork

    db = Database.get_instance()
    with UnitOfWork(db) as uow:
        uow.advisory_lock("connection", profile_id, ip4, ip6)
        uow.execute("UPDATE connection_log SET ...", (...))
        row = uow.fetch_one("INSERT INTO connection_log ... RETURNING *", (...))
        # COMMIT on clean exit; ROLLBACK on exception
"""

from __future__ import annotations

from typing import Any, Self

from psycopg.rows import dict_row
from pypgkit import Database


def lock_key(*parts: object) -> str:
    """Join *parts* into the textual key hashed for an advisory lock."""
    return "|".join(str(p) for p in parts)


class UnitOfWork:
    """Transaction-scoped helper for serialised multi-statement writes.

    Wraps :meth:`Database.transaction` and exposes low-level SQL helpers
    that all operate on the **same connection** within a single
    transaction.  The caller is responsible for building correct SQL.
    """

    def __init__(self, database: Database | None = None) -> None:
        self._db = database or Database.get_instance()
        self._conn = None

    # -- context manager -----------------------------------------------------

    def __enter__(self) -> Self:
        self._tx = self._db.transaction()
        self._conn = self._tx.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._tx.__exit__(exc_type, exc_val, exc_tb)
        self._conn = None

    # -- locking -------------------------------------------------------------

    def advisory_lock(self, *parts: object) -> None:
        """Block until the transaction holds the advisory lock for *parts*.

        The lock is released automatically at COMMIT or ROLLBACK.  Keys
        are hashed to 64 bits by PostgreSQL, so two different keys may
        (rarely) share a lock; that only costs concurrency.
        """
        assert self._conn is not None, "UnitOfWork must be used as a context manager"
        with self._conn.cursor() as cur:
            cur.execute(
                "SELECT pg_advisory_xact_lock(hashtextextended(%s, 0))",
                (lock_key(*parts),),
            )

    def try_advisory_lock(self, *parts: object) -> bool:
        """Take the advisory lock for *parts* if it is free; never wait.

        Held until COMMIT or ROLLBACK, on this transaction's connection.
        """
        row = self.fetch_one(
            "SELECT pg_try_advisory_xact_lock(hashtextextended(%s, 0)) AS acquired",
            (lock_key(*parts),),
        )
        return bool(row and row["acquired"])

    # -- helpers -------------------------------------------------------------

    def execute(self, sql: str, params: tuple | list | None = None) -> int:
        """Execute arbitrary SQL and return the rowcount.

        Use for DELETE, custom UPDATE, or DDL statements.
        """
        assert self._conn is not None, "UnitOfWork must be used as a context manager"
        with self._conn.cursor() as cur:
            cur.execute(sql, params)
            return cur.rowcount

    def fetch_one(
        self,
        sql: str,
        params: tuple | list | None = None,
    ) -> dict[str, Any] | None:
        """Execute a query and return the first row as a dict, or None."""
        assert self._conn is not None, "UnitOfWork must be used as a context manager"
        with self._conn.cursor(row_factory=dict_row) as cur:
            cur.execute(sql, params)
            return cur.fetchone()
