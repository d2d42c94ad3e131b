"""WSGI entry point for external servers (gunicorn, uWSGI, etc.).

The config file path is read from the ``VPNCTL_CONFIG`` environment
variable.

Example::

    export VPNCTL_CONFIG=/etc/vpnctl/config.yaml
    gunicorn "vpnctl.server.wsgi:app"
"""

from __future__ import annotations

import os
import sys

_config_path = os.environ.get("VPNCTL_CONFIG")
if _config_path is None:
    sys.stderr.write("VPNCTL_CONFIG is not set\n")
    sys.exit(1)

# Bootstrap the singleton before anything else imports it.
from vpnctl.config import VpnctlConfig  # noqa: E402

_config = VpnctlConfig(config_file=_config_path, schema_file="bundled")

from vpnctl.logging import configure_logging  # noqa: E402

configure_logging(_config.settings.logging)

from vpnctl.db import init_database  # noqa: E402

_db = init_database(_config.settings.database)

from vpnctl.app import create_app  # noqa: E402

app = create_app(config=_config, database=_db)
