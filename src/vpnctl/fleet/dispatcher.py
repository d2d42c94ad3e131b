"""Fleet dispatcher: run one operation against every managed endpoint.

Each endpoint is contacted on its own worker thread with its own
channel.  A slow or dead endpoint only costs its own timeout; its
failure is captured in the result and the remaining endpoints still
contribute.  Nothing is retried.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from vpnctl.core.types import EndpointFailureKind
from vpnctl.fleet.addressing import DEFAULT_BASE_PORT, Endpoint, profile_endpoints
from vpnctl.fleet.channel import (
    ChannelError,
    ClientSession,
    EndpointTimeout,
    EndpointUnreachable,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from vpnctl.config.settings import ProfileSettings
    from vpnctl.fleet.channel import ProcessControlChannel

log = logging.getLogger(__name__)

_JOIN_GRACE_SECONDS = 1.0


@dataclass(frozen=True)
class EndpointFailure:
    endpoint: Endpoint
    kind: EndpointFailureKind
    detail: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "profile_id": self.endpoint.profile_id,
            "process_index": self.endpoint.process_index,
            "address": self.endpoint.address,
            "kind": self.kind.value,
            "detail": self.detail,
        }


@dataclass(frozen=True)
class EndpointResult:
    """Outcome of one endpoint task: a value or a failure, never both."""

    endpoint: Endpoint
    value: Any = None
    failure: EndpointFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass(frozen=True)
class ProfileConnections:
    profile_id: str
    sessions: list[ClientSession] = field(default_factory=list)


@dataclass(frozen=True)
class FleetListing:
    profiles: list[ProfileConnections]
    failures: list[EndpointFailure]


@dataclass(frozen=True)
class KillResult:
    disconnected: int
    failures: list[EndpointFailure]


def _classify(exc: BaseException) -> tuple[EndpointFailureKind, str]:
    if isinstance(exc, EndpointTimeout):
        return EndpointFailureKind.TIMEOUT, exc.detail
    if isinstance(exc, EndpointUnreachable):
        return EndpointFailureKind.UNREACHABLE, exc.detail
    if isinstance(exc, ChannelError):
        return EndpointFailureKind.PROTOCOL, exc.detail
    # TimeoutError is an OSError subclass: check it first
    if isinstance(exc, TimeoutError):
        return EndpointFailureKind.TIMEOUT, str(exc) or "timed out"
    if isinstance(exc, OSError):
        return EndpointFailureKind.UNREACHABLE, str(exc) or type(exc).__name__
    # anything else is a reply the channel could not make sense of
    return EndpointFailureKind.PROTOCOL, f"{type(exc).__name__}: {exc}"


class FleetDispatcher:
    """Fan list/kill operations out over every profile's processes.

    Parameters
    ----------
    profiles:
        Configured profiles, in configuration order.
    channel_factory:
        Builds a fresh, unconnected channel for an endpoint.
    base_port:
        First management port (profile 1, process 0).
    timeout_seconds:
        Per-endpoint timeout, passed to channels by the factory.  The
        join barrier stops waiting once every wave of tasks has had it
        (plus a short grace) and reports unfinished endpoints as timed out.
    max_workers:
        Upper bound on concurrent endpoint tasks.
    metrics:
        Optional :class:`~vpnctl.metrics.collector.MetricsCollector`.

    """

    def __init__(  # noqa: PLR0913
        self,
        profiles: Sequence[ProfileSettings],
        channel_factory: Callable[[Endpoint], ProcessControlChannel],
        base_port: int = DEFAULT_BASE_PORT,
        timeout_seconds: float = 5.0,
        max_workers: int = 16,
        metrics: Any = None,  # noqa: ANN401
    ) -> None:
        self._profiles = tuple(profiles)
        self._channel_factory = channel_factory
        self._base_port = base_port
        self._timeout = timeout_seconds
        self._max_workers = max_workers
        self._metrics = metrics

    def endpoints(self) -> list[Endpoint]:
        """Every managed endpoint, profile by profile.

        Raises :class:`~vpnctl.fleet.addressing.AddressingRangeError`
        for an out-of-range profile; that is a configuration error and
        aborts the operation.
        """
        return [ep for p in self._profiles for ep in profile_endpoints(p, self._base_port)]

    # -- operations ----------------------------------------------------------

    def list_all_connections(self) -> FleetListing:
        results = self._fan_out(lambda channel: channel.list_sessions())

        by_profile: dict[str, list[ClientSession]] = {p.id: [] for p in self._profiles}
        for result in results:
            if result.ok:
                by_profile[result.endpoint.profile_id].extend(result.value)

        return FleetListing(
            profiles=[ProfileConnections(pid, sessions) for pid, sessions in by_profile.items()],
            failures=[r.failure for r in results if r.failure is not None],
        )

    def kill_by_identity(self, common_name: str) -> KillResult:
        """Ask every endpoint to kill *common_name*.

        Placement is unknown, so all endpoints are asked; the result
        counts those that confirmed a termination.
        """
        results = self._fan_out(lambda channel: channel.kill_session(common_name))
        disconnected = sum(1 for r in results if r.ok and r.value)
        failures = [r.failure for r in results if r.failure is not None]
        log.info(
            "Kill %s: %d endpoint(s) disconnected, %d failed",
            common_name,
            disconnected,
            len(failures),
        )
        return KillResult(disconnected=disconnected, failures=failures)

    # -- fan-out -------------------------------------------------------------

    def _join_deadline(self, endpoint_count: int, workers: int) -> float:
        """Seconds to wait for every task before giving up on the stragglers."""
        waves = -(-endpoint_count // workers)
        return self._timeout * waves + _JOIN_GRACE_SECONDS

    def _fan_out(self, operation: Callable[[ProcessControlChannel], Any]) -> list[EndpointResult]:
        endpoints = self.endpoints()
        if not endpoints:
            return []

        workers = min(self._max_workers, len(endpoints))
        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fleet")
        try:
            futures = [pool.submit(self._run_one, ep, operation) for ep in endpoints]
            # Join barrier, bounded by the fan-out deadline
            wait(futures, timeout=self._join_deadline(len(endpoints), workers))
            return [
                f.result() if f.done() else self._overdue(ep)
                for ep, f in zip(endpoints, futures, strict=True)
            ]
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    def _run_one(
        self,
        endpoint: Endpoint,
        operation: Callable[[ProcessControlChannel], Any],
    ) -> EndpointResult:
        channel = None
        try:
            channel = self._channel_factory(endpoint)
            channel.connect()
            return EndpointResult(endpoint, value=operation(channel))
        except Exception as exc:  # noqa: BLE001
            return self._failure(endpoint, exc)
        finally:
            if channel is not None:
                try:
                    channel.disconnect()
                except Exception:  # noqa: BLE001
                    log.debug("Ignoring error while closing channel to %s", endpoint)

    def _overdue(self, endpoint: Endpoint) -> EndpointResult:
        return self._failure(endpoint, EndpointTimeout("no reply before the fan-out deadline"))

    def _failure(self, endpoint: Endpoint, exc: BaseException) -> EndpointResult:
        kind, detail = _classify(exc)
        if kind is EndpointFailureKind.TIMEOUT and self._timeout:
            detail = f"{detail} (timeout {self._timeout}s)"
        log.warning("Endpoint %s failed (%s): %s", endpoint, kind.value, detail)
        if self._metrics:
            self._metrics.increment(
                "vpnctl_endpoint_failures_total",
                labels={"kind": kind.value},
            )
        return EndpointResult(endpoint, failure=EndpointFailure(endpoint, kind, detail))
