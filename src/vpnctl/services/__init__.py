"""vpnctl service layer.

Each service encapsulates the business logic of one concern and
delegates persistence to the repository layer.
"""

from vpnctl.services.account import AccountService
from vpnctl.services.authorization import AuthorizationEngine, Decision
from vpnctl.services.connection import ConnectionService, UnknownProfileError
from vpnctl.services.ledger import ConnectionLedger, LedgerConsistencyViolation
from vpnctl.services.system_message import SystemMessageService

__all__ = [
    "AccountService",
    "AuthorizationEngine",
    "ConnectionLedger",
    "ConnectionService",
    "Decision",
    "LedgerConsistencyViolation",
    "SystemMessageService",
    "UnknownProfileError",
]
