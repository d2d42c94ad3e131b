"""Flask application package for vpnctl.

Public API::

    from vpnctl.app import create_app
"""

from vpnctl.app.factory import create_app

__all__ = ["create_app"]
