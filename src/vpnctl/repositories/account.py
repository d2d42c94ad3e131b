"""Account repository."""

from __future__ import annotations

from typing import TYPE_CHECKING

from psycopg.types.json import Jsonb
from pypgkit import BaseRepository, Database

from vpnctl.models.account import Account, is_federated_identity

if TYPE_CHECKING:
    from datetime import datetime

    from vpnctl.db.unit_of_work import UnitOfWork


class AccountRepository(BaseRepository[Account]):
    table_name = "users"
    primary_key = "user_id"

    def _row_to_entity(self, row: dict) -> Account:
        return Account(
            id=row["user_id"],
            disabled=row["is_disabled"],
            federated=row["is_federated"],
            permissions=tuple(row.get("permissions") or ()),
            session_expires_at=row.get("session_expires_at"),
            last_authenticated_at=row.get("last_authenticated_at"),
            created_at=row["created_at"],
        )

    def _entity_to_row(self, entity: Account) -> dict:
        return {
            "user_id": entity.id,
            "is_disabled": entity.disabled,
            "is_federated": entity.federated,
            "permissions": Jsonb(list(entity.permissions)),
            "session_expires_at": entity.session_expires_at,
            "last_authenticated_at": entity.last_authenticated_at,
        }

    def find_account(self, user_id: str, *, uow: UnitOfWork | None = None) -> Account | None:
        if uow is None:
            return self.find_by_id(user_id)
        row = uow.fetch_one("SELECT * FROM users WHERE user_id = %s", (user_id,))
        return self._row_to_entity(row) if row is not None else None

    def ensure(self, user_id: str) -> Account:
        """Return the account for *user_id*, creating it on first reference.

        The federated classification is decided here, once, and never
        re-derived from the identity string afterwards.
        """
        db = Database.get_instance()
        db.execute(
            "INSERT INTO users (user_id, is_federated) VALUES (%s, %s) "
            "ON CONFLICT (user_id) DO NOTHING",
            (user_id, is_federated_identity(user_id)),
        )
        row = db.fetch_one(
            "SELECT * FROM users WHERE user_id = %s",
            (user_id,),
            as_dict=True,
        )
        return self._row_to_entity(row)

    def list_all(self) -> list[Account]:
        """Every account, ordered by identity."""
        db = Database.get_instance()
        rows = db.fetch_all(
            "SELECT * FROM users ORDER BY user_id",
            as_dict=True,
        )
        return [self._row_to_entity(r) for r in rows]

    def set_disabled(self, user_id: str, disabled: bool) -> Account | None:
        """Flip the disabled flag.  Returns None for an unknown account."""
        db = Database.get_instance()
        row = db.fetch_one(
            "UPDATE users SET is_disabled = %s WHERE user_id = %s RETURNING *",
            (disabled, user_id),
            as_dict=True,
        )
        return self._row_to_entity(row) if row else None

    def update_session_info(
        self,
        user_id: str,
        session_expires_at: datetime,
        permissions: list[str],
        authenticated_at: datetime,
    ) -> Account | None:
        """Store a fresh session expiry and permission list."""
        db = Database.get_instance()
        row = db.fetch_one(
            "UPDATE users "
            "SET session_expires_at = %s, permissions = %s, last_authenticated_at = %s "
            "WHERE user_id = %s "
            "RETURNING *",
            (session_expires_at, Jsonb(list(permissions)), authenticated_at, user_id),
            as_dict=True,
        )
        return self._row_to_entity(row) if row else None

    def delete_account(self, user_id: str) -> bool:
        """Delete an account.  Bindings and messages cascade."""
        db = Database.get_instance()
        return db.execute("DELETE FROM users WHERE user_id = %s", (user_id,)) > 0
