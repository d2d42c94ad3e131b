"""Database subsystem for vpnctl.

Public API::

    from vpnctl.db import init_database, UnitOfWork
"""

from vpnctl.db.init import init_database
from vpnctl.db.unit_of_work import UnitOfWork

__all__ = [
    "UnitOfWork",
    "init_database",
]
