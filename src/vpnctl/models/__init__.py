"""Entity models for the vpnctl persistence layer.

All models are frozen dataclasses.  Use :func:`dataclasses.replace`
for modifications (copy-on-write).
"""

from vpnctl.models.account import Account, CertificateBinding
from vpnctl.models.connection import ConnectionRecord
from vpnctl.models.message import SystemMessage, UserMessage

__all__ = [
    "Account",
    "CertificateBinding",
    "ConnectionRecord",
    "SystemMessage",
    "UserMessage",
]
