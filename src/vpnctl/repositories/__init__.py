"""Repository classes for the vpnctl persistence layer.

Each repository extends :class:`pypgkit.BaseRepository` with custom
query methods for the connection-control domain.
"""

from vpnctl.repositories.account import AccountRepository
from vpnctl.repositories.certificate import CertificateRepository
from vpnctl.repositories.connection_log import ConnectionLogRepository
from vpnctl.repositories.message import SystemMessageRepository, UserMessageRepository

__all__ = [
    "AccountRepository",
    "CertificateRepository",
    "ConnectionLogRepository",
    "SystemMessageRepository",
    "UserMessageRepository",
]
