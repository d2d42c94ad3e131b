"""vpnctl configuration loader built on ConfigKit.

Lifecycle::

    # 1. CLI creates the singleton (once, at startup)
    VpnctlConfig(config_file="/etc/vpnctl/config.yaml", schema_file="bundled")

    # 2. Any module retrieves it afterwards
    from vpnctl.config import get_config
    cfg = get_config()
    cfg.settings.fleet.base_port  # typed access

    # 3. Extension / dynamic access
    cfg.get("fleet.channel_options.password", default="")
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

from configkit import ConfigKit, ConfigKitMeta

from vpnctl.config.settings import VpnctlSettings, build_settings
from vpnctl.core.types import ClientRole

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

_CLASS_PATH_RE = re.compile(
    r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)+$",
)

_MAX_PORT = 65535
_MIN_CLIENT_SECRET_LENGTH = 16

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton reference
# ---------------------------------------------------------------------------
_instance: VpnctlConfig | None = None


def get_config() -> VpnctlConfig:
    """Return the initialised configuration singleton.

    Raises :class:`RuntimeError` if :class:`VpnctlConfig` has not been
    created yet (i.e. the CLI entry point has not run).
    """
    if _instance is None:
        msg = (
            "Configuration not initialised. "
            "VpnctlConfig must be created with config_file= before calling get_config()."
        )
        raise RuntimeError(msg)
    return _instance


# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(Exception):
    """Raised when cross-field validation finds one or more problems."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with env var value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name = match.group(1)
    fallback = match.group(2)
    resolved = os.environ.get(var_name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    raise ConfigValidationError(
        [
            f"Environment variable '${{{var_name}}}' referenced "
            f"at '{path}' is not set and has no default",
        ],
    )


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    path: str = "",
) -> None:
    """Walk *data* in-place and resolve ``${VAR}``/``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        for key in data:
            child_path = f"{path}.{key}" if path else key
            if isinstance(data[key], str):
                data[key] = _resolve_value(data[key], child_path)
            elif isinstance(data[key], (dict, list)):
                _resolve_env_vars(data[key], child_path)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child_path = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child_path)
            elif isinstance(item, (dict, list)):
                _resolve_env_vars(item, child_path)


# ---------------------------------------------------------------------------
# Config class
# ---------------------------------------------------------------------------


class VpnctlConfig(ConfigKit):
    """Central configuration for the vpnctl control plane.

    Subclasses :class:`configkit.ConfigKit`.  The JSON schema is
    bundled at ``config/schema.json``; users supply only ``config_file``.

    After construction the typed settings tree is available at
    :pyattr:`settings` and the raw dict via :pyattr:`data` /
    :pymeth:`get`.
    """

    def __init__(
        self,
        *,
        config_file: str | Path,
        schema_file: str | Path | None = None,  # noqa: ARG002
    ) -> None:
        """Initialise the configuration singleton.

        Parameters
        ----------
        config_file:
            Path to the YAML/JSON configuration file.
        schema_file:
            Ignored.  Exists only to satisfy the
            :class:`ConfigKitMeta` singleton guard.

        """
        global _instance  # noqa: PLW0603

        super().__init__(
            config_file=config_file,
            schema_file=_SCHEMA_PATH,
        )

        self._settings: VpnctlSettings = build_settings(self.data)
        _instance = self

    # -- lifecycle overrides ------------------------------------------------

    def _load(self) -> None:
        """Load config file then resolve ``${VAR}`` env-var references.

        Runs env-var resolution **before** schema validation so that
        substituted values (e.g. ``${LOG_LEVEL:-INFO}``) are checked
        against enum constraints in the schema.
        """
        super()._load()
        _resolve_env_vars(self._data)

    # -- typed access -------------------------------------------------------

    @property
    def settings(self) -> VpnctlSettings:
        """Fully-typed, frozen settings tree."""
        return self._settings

    # -- cross-field validation ---------------------------------------------

    def additional_checks(self) -> None:  # noqa: C901, PLR0912, PLR0915
        """Semantic & cross-field validation.

        Called automatically by ConfigKit **after** schema validation
        passes.
        """
        errors: list[str] = []
        warnings: list[str] = []

        server = self.data.get("server") or {}
        fleet = self.data.get("fleet") or {}
        profiles = self.data.get("profiles") or []
        api = self.data.get("api") or {}

        # -- Profiles --
        seen_ids: set[str] = set()
        seen_numbers: dict[int, str] = {}
        base_port = fleet.get("base_port", 11940)
        total_endpoints = 0
        for idx, profile in enumerate(profiles):
            profile_id = profile.get("id", "")
            if profile_id in seen_ids:
                errors.append(f"profiles[{idx}].id '{profile_id}' is defined more than once")
            seen_ids.add(profile_id)

            number = profile.get("profile_number")
            if number in seen_numbers:
                errors.append(
                    f"profiles[{idx}].profile_number ({number}) is already used "
                    f"by profile '{seen_numbers[number]}'",
                )
            else:
                seen_numbers[number] = profile_id

            if profile.get("enable_acl") and not profile.get("acl_permissions"):
                errors.append(
                    f"profiles[{idx}].acl_permissions must list at least one "
                    "permission when enable_acl is true",
                )

            process_count = profile.get("process_count", 1)
            total_endpoints += process_count
            if number is not None and process_count > 0:
                highest = base_port + (((number - 1) << 6) | (process_count - 1))
                if highest > _MAX_PORT:
                    errors.append(
                        f"profiles[{idx}] management port {highest} exceeds "
                        f"{_MAX_PORT} (fleet.base_port={base_port})",
                    )

        if not profiles:
            warnings.append("no profiles configured -- fleet operations will be empty")

        # -- Fleet --
        channel_class = fleet.get("channel_class")
        if channel_class and not _CLASS_PATH_RE.match(channel_class):
            errors.append(
                f"fleet.channel_class '{channel_class}' is not a valid fully "
                "qualified Python class path (expected 'package.module.ClassName')",
            )
        if not channel_class and profiles:
            warnings.append(
                "fleet.channel_class is not set -- connection listing and "
                "kill requests will be rejected",
            )

        max_workers = fleet.get("max_workers", 16)
        if total_endpoints and max_workers < total_endpoints:
            warnings.append(
                f"fleet.max_workers ({max_workers}) is lower than the number of "
                f"managed endpoints ({total_endpoints}) -- fan-out will be "
                "partially serialised",
            )

        fleet_timeout = fleet.get("timeout_seconds", 5.0)
        server_timeout = server.get("timeout", 30)
        if fleet_timeout > server_timeout:
            warnings.append(
                f"fleet.timeout_seconds ({fleet_timeout}) exceeds "
                f"server.timeout ({server_timeout}) -- a slow endpoint may "
                "outlive the HTTP request",
            )

        # -- API clients --
        clients = api.get("clients") or {}
        known_roles = {r.value for r in ClientRole}
        has_node = False
        for name, entry in clients.items():
            secret = entry.get("secret", "")
            if len(secret) < _MIN_CLIENT_SECRET_LENGTH:
                errors.append(
                    f"api.clients.{name}.secret is too short "
                    f"({len(secret)} chars) -- minimum "
                    f"{_MIN_CLIENT_SECRET_LENGTH} characters required",
                )
            for role in entry.get("roles", []):
                if role not in known_roles:
                    errors.append(
                        f"api.clients.{name}.roles contains unknown role "
                        f"'{role}'. Known roles: {sorted(known_roles)}",
                    )
                if role == ClientRole.SERVER_NODE:
                    has_node = True
        if not has_node:
            warnings.append(
                "no api client has the 'vpn-server-node' role -- connect and "
                "disconnect notifications cannot be accepted",
            )

        # -- Database --
        db = self.data.get("database") or {}
        min_conn = db.get("min_connections", 2)
        max_conn = db.get("max_connections", 10)
        if min_conn > max_conn:
            errors.append(
                f"database.min_connections ({min_conn}) must be <= "
                f"database.max_connections ({max_conn})",
            )
        workers = server.get("workers", 4)
        if max_conn < workers:
            warnings.append(
                f"database.max_connections ({max_conn}) is low relative to "
                f"server.workers ({workers}) -- recommended at least 1 "
                "connection per worker",
            )

        for w in warnings:
            log.warning("Config warning: %s", w)

        if errors:
            raise ConfigValidationError(errors)

    # -- helpers ------------------------------------------------------------

    def reload_settings(self) -> VpnctlSettings:
        """Re-read the config file and rebuild settings.

        Does not reset the singleton.  Re-reads the file, resolves env
        vars, and returns a fresh :class:`VpnctlSettings` tree.
        """
        new_data = self._parse_config(self._config_path)
        _resolve_env_vars(new_data)
        return build_settings(new_data)

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton -- testing only."""
        global _instance  # noqa: PLW0603
        _instance = None
        ConfigKitMeta.reset()

    def __repr__(self) -> str:
        return f"<VpnctlConfig config_file={self._config_path}>"
