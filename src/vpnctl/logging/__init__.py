"""Logging subsystem for vpnctl.

Public API::

    from vpnctl.logging import configure_logging

    configure_logging(settings.logging)
"""

from vpnctl.logging.setup import configure_logging

__all__ = ["configure_logging"]
