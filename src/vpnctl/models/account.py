"""Account and CertificateBinding entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

# Sentinel for timestamps not yet assigned by the database.
_EPOCH = datetime(1970, 1, 1)

# Identities minted for guests arriving through a federated portal
# carry this delimiter between the home-portal id and the local id.
FEDERATED_ID_DELIMITER = "!!"


def is_federated_identity(user_id: str) -> bool:
    """Classify *user_id* at account creation time."""
    return FEDERATED_ID_DELIMITER in user_id


@dataclass(frozen=True)
class Account:
    id: str
    disabled: bool = False
    federated: bool = False
    permissions: tuple[str, ...] = field(default_factory=tuple)
    session_expires_at: datetime | None = None
    last_authenticated_at: datetime | None = None
    created_at: datetime = _EPOCH

    def session_expired(self, now: datetime) -> bool:
        """Whether the session lapsed strictly before *now*.

        Accounts without a recorded expiry never count as expired.
        """
        if self.session_expires_at is None:
            return False
        return self.session_expires_at < now


@dataclass(frozen=True)
class CertificateBinding:
    common_name: str
    user_id: str
    display_name: str
    valid_from: datetime
    valid_to: datetime
    client_id: str | None = None
