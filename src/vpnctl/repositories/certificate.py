"""Certificate binding repository."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pypgkit import BaseRepository, Database

from vpnctl.models.account import CertificateBinding

if TYPE_CHECKING:
    from vpnctl.db.unit_of_work import UnitOfWork


class CertificateRepository(BaseRepository[CertificateBinding]):
    table_name = "certificates"
    primary_key = "common_name"

    def _row_to_entity(self, row: dict) -> CertificateBinding:
        return CertificateBinding(
            common_name=row["common_name"],
            user_id=row["user_id"],
            display_name=row["display_name"],
            valid_from=row["valid_from"],
            valid_to=row["valid_to"],
            client_id=row.get("client_id"),
        )

    def _entity_to_row(self, entity: CertificateBinding) -> dict:
        return {
            "common_name": entity.common_name,
            "user_id": entity.user_id,
            "display_name": entity.display_name,
            "valid_from": entity.valid_from,
            "valid_to": entity.valid_to,
            "client_id": entity.client_id,
        }

    def find_by_common_name(
        self,
        common_name: str,
        *,
        uow: UnitOfWork | None = None,
    ) -> CertificateBinding | None:
        """Look up a binding, on *uow*'s connection when one is given."""
        if uow is None:
            return self.find_by_id(common_name)
        row = uow.fetch_one("SELECT * FROM certificates WHERE common_name = %s", (common_name,))
        return self._row_to_entity(row) if row is not None else None

    def find_by_user(self, user_id: str) -> list[CertificateBinding]:
        """Bindings owned by *user_id*, most recently issued first."""
        db = Database.get_instance()
        rows = db.fetch_all(
            "SELECT * FROM certificates WHERE user_id = %s ORDER BY valid_from DESC",
            (user_id,),
            as_dict=True,
        )
        return [self._row_to_entity(r) for r in rows]

    def delete_by_common_name(self, common_name: str) -> bool:
        db = Database.get_instance()
        return db.execute("DELETE FROM certificates WHERE common_name = %s", (common_name,)) > 0

    def delete_by_client(self, user_id: str, client_id: str) -> int:
        """Remove every binding issued to *client_id* for *user_id*."""
        db = Database.get_instance()
        return db.execute(
            "DELETE FROM certificates WHERE user_id = %s AND client_id = %s",
            (user_id, client_id),
        )
