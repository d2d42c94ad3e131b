"""User and system message entities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from vpnctl.core.types import MessageType

_EPOCH = datetime(1970, 1, 1)


@dataclass(frozen=True)
class UserMessage:
    id: int | None
    user_id: str
    type: MessageType
    message: str
    created_at: datetime = _EPOCH


@dataclass(frozen=True)
class SystemMessage:
    id: int | None
    type: str
    message: str
    created_at: datetime = _EPOCH
