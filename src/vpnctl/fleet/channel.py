"""Abstract process control channel.

A channel is a short-lived session with the management interface of
one termination process.  Concrete channels (speaking whatever wire
protocol the deployment uses) subclass :class:`ProcessControlChannel`
and are selected with ``fleet.channel_class``.

Implementations signal failure through the :class:`ChannelError`
hierarchy.  A plain :class:`TimeoutError` or :class:`OSError` escaping
an implementation is mapped onto it by the dispatcher.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datetime import datetime

    from vpnctl.fleet.addressing import Endpoint


class ChannelError(Exception):
    """A process control operation failed for one endpoint."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class EndpointUnreachable(ChannelError):
    """The endpoint refused or dropped the connection."""


class EndpointTimeout(ChannelError):
    """The endpoint did not answer within the per-endpoint timeout."""


@dataclass(frozen=True)
class ClientSession:
    """One client session as reported by a termination process."""

    common_name: str
    real_address: str
    virtual_addresses: tuple[str, ...] = field(default_factory=tuple)
    bytes_in: int = 0
    bytes_out: int = 0
    connected_since: datetime | None = None


class ProcessControlChannel(abc.ABC):
    """Session with one termination process.

    Parameters
    ----------
    endpoint:
        The management endpoint to talk to.
    timeout_seconds:
        Upper bound for every blocking round-trip.
    options:
        ``fleet.channel_options`` from the configuration.

    """

    def __init__(
        self,
        endpoint: Endpoint,
        timeout_seconds: float,
        **options: Any,  # noqa: ANN401
    ) -> None:
        self.endpoint = endpoint
        self.timeout_seconds = timeout_seconds
        self.options = options

    @abc.abstractmethod
    def connect(self) -> None:
        """Open the session."""

    @abc.abstractmethod
    def list_sessions(self) -> list[ClientSession]:
        """Return the sessions currently served, in the process's order."""

    @abc.abstractmethod
    def kill_session(self, common_name: str) -> bool:
        """Terminate the session(s) of *common_name*.

        Returns whether the process reported a successful termination;
        ``False`` usually means it did not serve that client.
        """

    @abc.abstractmethod
    def disconnect(self) -> None:
        """Close the session.  Must be safe to call after a failure."""
