"""Root conftest for the vpnctl test suite."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
import yaml

# ---------------------------------------------------------------------------
# Make ``src/`` importable without installing the package
# ---------------------------------------------------------------------------
_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

ADMIN_SECRET = "portal-secret-0123456789"
NODE_SECRET = "node-secret-0123456789ab"


# ---------------------------------------------------------------------------
# Config data shared by multiple test modules
# ---------------------------------------------------------------------------


@pytest.fixture()
def minimal_config_data() -> dict:
    """Return a dict containing the minimum required config fields."""
    return {
        "database": {"database": "vpnctl_test", "user": "testuser"},
    }


@pytest.fixture()
def full_config_data() -> dict:
    """Config with two profiles and both client roles."""
    return {
        "database": {"database": "vpnctl_test", "user": "testuser"},
        "api": {
            "clients": {
                "portal": {"secret": ADMIN_SECRET, "roles": ["vpn-admin-portal"]},
                "node-a": {"secret": NODE_SECRET, "roles": ["vpn-server-node"]},
            },
            "max_failed_attempts": 3,
            "lockout_seconds": 60,
        },
        "profiles": [
            {"id": "employees", "profile_number": 1, "process_count": 2},
            {
                "id": "admins",
                "profile_number": 3,
                "process_count": 2,
                "enable_acl": True,
                "acl_permissions": ["admin"],
            },
        ],
        "retention": {"enabled": False},
    }


@pytest.fixture()
def tmp_config_file(tmp_path: Path, minimal_config_data: dict) -> Path:
    """Write *minimal_config_data* to a temp YAML file and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        yaml.safe_dump(minimal_config_data, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    return cfg


@pytest.fixture()
def settings(full_config_data: dict):
    """Typed settings built from *full_config_data* (no file, no validation)."""
    from vpnctl.config.settings import build_settings

    return build_settings(full_config_data)


# ---------------------------------------------------------------------------
# ConfigKit singleton cleanup -- autouse so every test gets a fresh slate
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fresh_config():
    """Reset the VpnctlConfig singleton before and after every test."""
    from vpnctl.config.vpnctl_config import VpnctlConfig

    VpnctlConfig.reset()
    yield
    VpnctlConfig.reset()


# ---------------------------------------------------------------------------
# Logger state -- configure_logging() detaches "vpnctl" from the root logger
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def restore_vpnctl_loggers():
    """Undo any configure_logging() call so caplog keeps working."""
    import logging

    names = ("vpnctl", "vpnctl.security", "vpnctl.access")
    saved = {
        n: (logging.getLogger(n).level, logging.getLogger(n).propagate, list(logging.getLogger(n).handlers))
        for n in names
    }
    yield
    for name, (level, propagate, handlers) in saved.items():
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            if handler not in handlers:
                handler.close()
        logger.setLevel(level)
        logger.propagate = propagate
        logger.handlers[:] = handlers


# ---------------------------------------------------------------------------
# HTTP Basic credentials for the clients in *full_config_data*
# ---------------------------------------------------------------------------


def _basic_header(user: str, password: str) -> dict:
    import base64

    token = base64.b64encode(f"{user}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture()
def basic_auth():
    """Return a helper building an ``Authorization`` header."""
    return _basic_header


@pytest.fixture()
def admin_headers() -> dict:
    return _basic_header("portal", ADMIN_SECRET)


@pytest.fixture()
def node_headers() -> dict:
    return _basic_header("node-a", NODE_SECRET)
