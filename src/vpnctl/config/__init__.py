"""Configuration subsystem for vpnctl.

Public API::

    from vpnctl.config import get_config, VpnctlConfig

    # At startup (CLI only):
    VpnctlConfig(config_file="config.yaml", schema_file="bundled")

    # Everywhere else:
    cfg      = get_config()
    profiles = cfg.settings.profiles          # typed access
    custom   = cfg.get("fleet.channel_options")  # dynamic dot-path
"""

from vpnctl.config.settings import (
    ApiClientSettings,
    ApiSettings,
    AuditLogSettings,
    DatabaseSettings,
    FleetSettings,
    LoggingSettings,
    MetricsSettings,
    ProfileSettings,
    RetentionSettings,
    ServerSettings,
    VpnctlSettings,
)
from vpnctl.config.vpnctl_config import (
    ConfigValidationError,
    VpnctlConfig,
    get_config,
)

__all__ = [
    "ApiClientSettings",
    "ApiSettings",
    "AuditLogSettings",
    "ConfigValidationError",
    "DatabaseSettings",
    "FleetSettings",
    "LoggingSettings",
    "MetricsSettings",
    "ProfileSettings",
    "RetentionSettings",
    "ServerSettings",
    "VpnctlConfig",
    "VpnctlSettings",
    "get_config",
]
