"""User and system message repositories."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pypgkit import BaseRepository, Database

from vpnctl.core.types import MessageType
from vpnctl.models.message import SystemMessage, UserMessage

if TYPE_CHECKING:
    from datetime import datetime


class UserMessageRepository(BaseRepository[UserMessage]):
    table_name = "user_messages"
    primary_key = "id"

    def _row_to_entity(self, row: dict) -> UserMessage:
        return UserMessage(
            id=row["id"],
            user_id=row["user_id"],
            type=MessageType(row["type"]),
            message=row["message"],
            created_at=row["created_at"],
        )

    def _entity_to_row(self, entity: UserMessage) -> dict:
        return {
            "user_id": entity.user_id,
            "type": entity.type.value,
            "message": entity.message,
            "created_at": entity.created_at,
        }

    def add(
        self,
        user_id: str,
        message_type: MessageType,
        message: str,
        created_at: datetime,
    ) -> UserMessage:
        db = Database.get_instance()
        row = db.fetch_one(
            "INSERT INTO user_messages (user_id, type, message, created_at) "
            "VALUES (%s, %s, %s, %s) RETURNING *",
            (user_id, message_type.value, message, created_at),
            as_dict=True,
        )
        return self._row_to_entity(row)

    def find_by_user(self, user_id: str) -> list[UserMessage]:
        """Messages for *user_id*, newest first."""
        db = Database.get_instance()
        rows = db.fetch_all(
            "SELECT * FROM user_messages WHERE user_id = %s ORDER BY created_at DESC, id DESC",
            (user_id,),
            as_dict=True,
        )
        return [self._row_to_entity(r) for r in rows]

    def purge_before(self, horizon: datetime) -> int:
        db = Database.get_instance()
        return db.execute(
            "DELETE FROM user_messages WHERE created_at < %s",
            (horizon,),
        )


class SystemMessageRepository(BaseRepository[SystemMessage]):
    table_name = "system_messages"
    primary_key = "id"

    def _row_to_entity(self, row: dict) -> SystemMessage:
        return SystemMessage(
            id=row["id"],
            type=row["type"],
            message=row["message"],
            created_at=row["created_at"],
        )

    def _entity_to_row(self, entity: SystemMessage) -> dict:
        return {
            "type": entity.type,
            "message": entity.message,
            "created_at": entity.created_at,
        }

    def add(self, message_type: str, message: str, created_at: datetime) -> SystemMessage:
        db = Database.get_instance()
        row = db.fetch_one(
            "INSERT INTO system_messages (type, message, created_at) "
            "VALUES (%s, %s, %s) RETURNING *",
            (message_type, message, created_at),
            as_dict=True,
        )
        return self._row_to_entity(row)

    def list_messages(self, message_type: str | None = None) -> list[SystemMessage]:
        """System messages, newest first, optionally of one type."""
        db = Database.get_instance()
        if message_type is not None:
            rows = db.fetch_all(
                "SELECT * FROM system_messages WHERE type = %s ORDER BY created_at DESC, id DESC",
                (message_type,),
                as_dict=True,
            )
        else:
            rows = db.fetch_all(
                "SELECT * FROM system_messages ORDER BY created_at DESC, id DESC",
                as_dict=True,
            )
        return [self._row_to_entity(r) for r in rows]

    def delete_message(self, message_id: int) -> bool:
        db = Database.get_instance()
        return db.execute("DELETE FROM system_messages WHERE id = %s", (message_id,)) > 0
