"""Portal-wide announcements (message of the day and similar)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from vpnctl.app.errors import NOT_FOUND, ApiProblem

if TYPE_CHECKING:
    from datetime import datetime

    from vpnctl.models.message import SystemMessage
    from vpnctl.repositories.message import SystemMessageRepository


class SystemMessageService:
    def __init__(self, system_message_repo: SystemMessageRepository) -> None:
        self._messages = system_message_repo

    def add(self, message_type: str, message: str, now: datetime) -> SystemMessage:
        return self._messages.add(message_type, message, now)

    def list_messages(self, message_type: str | None = None) -> list[SystemMessage]:
        return self._messages.list_messages(message_type)

    def delete(self, message_id: int) -> None:
        if not self._messages.delete_message(message_id):
            raise ApiProblem(NOT_FOUND, f"System message {message_id} does not exist", 404)
