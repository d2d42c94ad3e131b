"""Process control channel registry.

Loads the channel implementation named by ``fleet.channel_class`` and
returns a factory that builds one channel per endpoint.

Usage::

    from vpnctl.fleet.registry import load_channel_factory

    factory = load_channel_factory(settings.fleet)
    channel = factory(endpoint)
"""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING

from vpnctl.fleet.channel import ProcessControlChannel

if TYPE_CHECKING:
    from collections.abc import Callable

    from vpnctl.config.settings import FleetSettings
    from vpnctl.fleet.addressing import Endpoint

    ChannelFactory = Callable[[Endpoint], ProcessControlChannel]

log = logging.getLogger(__name__)

_REQUIRED_METHODS = ("connect", "list_sessions", "kill_session", "disconnect")


class ChannelLoadError(Exception):
    """The configured channel class cannot be used."""


def load_channel_class(fqn: str) -> type[ProcessControlChannel]:
    """Import and validate a channel class by fully-qualified name.

    Parameters
    ----------
    fqn:
        e.g. ``"mycompany.vpn.management.OpenVpnManagementChannel"``

    """
    module_path, _, cls_name = fqn.rpartition(".")
    if not module_path:
        msg = (
            f"Invalid channel class '{fqn}': must be fully qualified "
            "(e.g. 'mypackage.module.ClassName')"
        )
        raise ChannelLoadError(msg)

    try:
        module = importlib.import_module(module_path)
        cls = getattr(module, cls_name)
    except (ImportError, AttributeError) as exc:
        msg = f"Failed to load channel class '{fqn}': {exc}"
        raise ChannelLoadError(msg) from exc

    _validate_class(cls, fqn)
    return cls


def load_channel_factory(fleet: FleetSettings) -> ChannelFactory | None:
    """Return a per-endpoint channel factory, or ``None`` when unconfigured."""
    if not fleet.channel_class:
        log.warning("fleet.channel_class is not set; fleet operations are unavailable")
        return None

    cls = load_channel_class(fleet.channel_class)
    options = dict(fleet.channel_options)
    timeout = fleet.timeout_seconds
    log.info("Loaded process control channel: %s", fleet.channel_class)

    def factory(endpoint: Endpoint) -> ProcessControlChannel:
        return cls(endpoint, timeout, **options)

    return factory


def _validate_class(cls: object, label: str) -> None:
    if not (isinstance(cls, type) and issubclass(cls, ProcessControlChannel)):
        msg = f"Channel class '{label}' is not a subclass of ProcessControlChannel"
        raise ChannelLoadError(msg)

    for method_name in _REQUIRED_METHODS:
        method = getattr(cls, method_name, None)
        if method is None or getattr(method, "__isabstractmethod__", False):
            msg = f"Channel class '{label}' does not implement '{method_name}()'"
            raise ChannelLoadError(msg)
