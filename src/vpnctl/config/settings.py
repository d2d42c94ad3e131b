"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
JSON Schema defaults exist only for documentation -- these builders
are what the application actually reads.

Access pattern::

    from vpnctl.config import get_config

    fleet = get_config().settings.fleet
    print(fleet.base_port, fleet.timeout_seconds)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ServerSettings:
    """HTTP server configuration (bind address, workers, timeouts)."""

    bind: str
    port: int
    workers: int
    worker_class: str
    timeout: int
    graceful_timeout: int
    keepalive: int
    max_requests: int
    max_requests_jitter: int


def _build_server(data: dict | None) -> ServerSettings:
    d = data or {}
    return ServerSettings(
        bind=d.get("bind", "127.0.0.1"),
        port=d.get("port", 8041),
        workers=d.get("workers", 4),
        worker_class=d.get("worker_class", "sync"),
        timeout=d.get("timeout", 30),
        graceful_timeout=d.get("graceful_timeout", 30),
        keepalive=d.get("keepalive", 2),
        max_requests=d.get("max_requests", 0),
        max_requests_jitter=d.get("max_requests_jitter", 0),
    )


# ---------------------------------------------------------------------------
# API clients
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ApiClientSettings:
    """One HTTP Basic client (portal, server node) allowed to call the API."""

    name: str
    secret: str
    roles: tuple[str, ...]


@dataclass(frozen=True)
class ApiSettings:
    clients: tuple[ApiClientSettings, ...]
    max_failed_attempts: int
    lockout_seconds: int


def _build_api(data: dict | None) -> ApiSettings:
    d = data or {}
    clients = tuple(
        ApiClientSettings(
            name=name,
            secret=entry["secret"],
            roles=tuple(entry.get("roles", [])),
        )
        for name, entry in (d.get("clients") or {}).items()
    )
    return ApiSettings(
        clients=clients,
        max_failed_attempts=d.get("max_failed_attempts", 5),
        lockout_seconds=d.get("lockout_seconds", 300),
    )


# ---------------------------------------------------------------------------
# Fleet
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FleetSettings:
    """Process control fan-out settings."""

    base_port: int
    timeout_seconds: float
    max_workers: int
    channel_class: str | None
    channel_options: dict[str, Any]


def _build_fleet(data: dict | None) -> FleetSettings:
    d = data or {}
    return FleetSettings(
        base_port=d.get("base_port", 11940),
        timeout_seconds=d.get("timeout_seconds", 5.0),
        max_workers=d.get("max_workers", 16),
        channel_class=d.get("channel_class"),
        channel_options=dict(d.get("channel_options") or {}),
    )


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProfileSettings:
    """A VPN profile and the termination processes that serve it.

    ``process_count`` mirrors the number of protocol/port pairs the
    profile is deployed with: one termination process per pair.
    """

    id: str
    profile_number: int
    management_ip: str
    process_count: int
    enable_acl: bool
    acl_permissions: tuple[str, ...]
    display_name: str


def _build_profile(data: dict) -> ProfileSettings:
    return ProfileSettings(
        id=data["id"],
        profile_number=data["profile_number"],
        management_ip=data.get("management_ip", "127.0.0.1"),
        process_count=data.get("process_count", 1),
        enable_acl=data.get("enable_acl", False),
        acl_permissions=tuple(data.get("acl_permissions", [])),
        display_name=data.get("display_name", data["id"]),
    )


def _build_profiles(data: list | None) -> tuple[ProfileSettings, ...]:
    return tuple(_build_profile(entry) for entry in (data or []))


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuditLogSettings:
    """Audit log output settings (file, rotation)."""

    enabled: bool
    file: str | None
    max_file_size_bytes: int
    backup_count: int


@dataclass(frozen=True)
class LoggingSettings:
    """Application logging configuration (level, format, audit)."""

    level: str
    format: str
    audit: AuditLogSettings


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    a = d.get("audit") or {}
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=d.get("format", "json"),
        audit=AuditLogSettings(
            enabled=a.get("enabled", True),
            file=a.get("file"),
            max_file_size_bytes=a.get("max_file_size_bytes", 104857600),
            backup_count=a.get("backup_count", 10),
        ),
    )


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """PostgreSQL connection and pool settings."""

    host: str
    port: int
    database: str
    user: str
    password: str
    sslmode: str
    min_connections: int
    max_connections: int
    connection_timeout: float
    auto_setup: bool


def _build_database(data: dict | None) -> DatabaseSettings:
    d = data or {}
    return DatabaseSettings(
        host=d.get("host", "localhost"),
        port=d.get("port", 5432),
        database=d["database"],
        user=d["user"],
        password=d.get("password", ""),
        sslmode=d.get("sslmode", "prefer"),
        min_connections=d.get("min_connections", 2),
        max_connections=d.get("max_connections", 10),
        connection_timeout=d.get("connection_timeout", 30.0),
        auto_setup=d.get("auto_setup", False),
    )


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MetricsSettings:
    enabled: bool
    path: str


def _build_metrics(data: dict | None) -> MetricsSettings:
    d = data or {}
    return MetricsSettings(
        enabled=d.get("enabled", False),
        path=d.get("path", "/metrics"),
    )


# ---------------------------------------------------------------------------
# Data Retention
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RetentionSettings:
    enabled: bool
    connection_log_max_age_days: int
    user_message_max_age_days: int
    cleanup_interval_seconds: int
    cleanup_loop_interval_seconds: int


def _build_retention(data: dict | None) -> RetentionSettings:
    d = data or {}
    return RetentionSettings(
        enabled=d.get("enabled", True),
        connection_log_max_age_days=d.get("connection_log_max_age_days", 30),
        user_message_max_age_days=d.get("user_message_max_age_days", 30),
        cleanup_interval_seconds=d.get("cleanup_interval_seconds", 3600),
        cleanup_loop_interval_seconds=d.get("cleanup_loop_interval_seconds", 60),
    )


# ---------------------------------------------------------------------------
# Root settings aggregate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VpnctlSettings:
    server: ServerSettings
    api: ApiSettings
    fleet: FleetSettings
    profiles: tuple[ProfileSettings, ...]
    logging: LoggingSettings
    database: DatabaseSettings
    metrics: MetricsSettings
    retention: RetentionSettings

    def profile(self, profile_id: str) -> ProfileSettings | None:
        """Return the profile with *profile_id*, or ``None``."""
        for p in self.profiles:
            if p.id == profile_id:
                return p
        return None


def build_settings(data: dict) -> VpnctlSettings:
    """Build the full typed settings tree from raw config data.

    Called once during :class:`VpnctlConfig` initialization after
    schema validation and environment-variable resolution.
    """
    return VpnctlSettings(
        server=_build_server(data.get("server")),
        api=_build_api(data.get("api")),
        fleet=_build_fleet(data.get("fleet")),
        profiles=_build_profiles(data.get("profiles")),
        logging=_build_logging(data.get("logging")),
        database=_build_database(data.get("database")),
        metrics=_build_metrics(data.get("metrics")),
        retention=_build_retention(data.get("retention")),
    )
