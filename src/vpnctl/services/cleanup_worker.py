"""Retention worker: periodically purge old connection history and messages.

Single daemon thread running each task on its own interval.  A failing
task is logged and counted but does not block the others.

Usage::

    worker = CleanupWorker(ledger=ledger, message_repo=messages, settings=s, db=db)
    worker.start()
    ...
    worker.stop()
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from vpnctl.db.unit_of_work import UnitOfWork

if TYPE_CHECKING:
    from collections.abc import Callable

    from vpnctl.config.settings import VpnctlSettings
    from vpnctl.repositories.message import UserMessageRepository
    from vpnctl.services.ledger import ConnectionLedger

log = logging.getLogger(__name__)

_DEFAULT_LOOP_INTERVAL = 60  # seconds between wakeups


class _CleanupTask:
    """A named task with its own interval and last-run tracking."""

    __slots__ = ("_last_run", "consecutive_failures", "func", "interval_seconds", "name")

    def __init__(
        self,
        name: str,
        interval_seconds: int,
        func: Callable[[], None],
    ) -> None:
        self.name = name
        self.interval_seconds = interval_seconds
        self.func = func
        self._last_run: float | None = None
        self.consecutive_failures: int = 0

    def is_due(self, now: float) -> bool:
        if self._last_run is None:
            return True
        return (now - self._last_run) >= self.interval_seconds

    def run(self, now: float) -> None:
        self._last_run = now
        self.func()


class CleanupWorker:
    """Daemon thread that runs retention tasks on independent intervals.

    When a database is provided, ``pg_try_advisory_xact_lock`` ensures
    only one control-plane instance runs the sweeps at a time.
    """

    _LEADER_LOCK = ("cleanup", "leader")

    def __init__(
        self,
        ledger: ConnectionLedger | None = None,
        message_repo: UserMessageRepository | None = None,
        settings: VpnctlSettings | None = None,
        db: Any = None,  # noqa: ANN401
        metrics: Any = None,  # noqa: ANN401
    ) -> None:
        self._tasks: list[_CleanupTask] = []
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._metrics = metrics
        self._db = db
        self._loop_interval = (
            settings.retention.cleanup_loop_interval_seconds
            if settings is not None
            else _DEFAULT_LOOP_INTERVAL
        )

        if settings is None or not settings.retention.enabled:
            return
        ret = settings.retention

        if ledger is not None:
            self._tasks.append(
                _CleanupTask(
                    name="connection_log_retention",
                    interval_seconds=ret.cleanup_interval_seconds,
                    func=lambda: self._connection_log_retention(
                        ledger,
                        ret.connection_log_max_age_days,
                    ),
                )
            )
        if message_repo is not None:
            self._tasks.append(
                _CleanupTask(
                    name="user_message_retention",
                    interval_seconds=ret.cleanup_interval_seconds,
                    func=lambda: self._user_message_retention(
                        message_repo,
                        ret.user_message_max_age_days,
                    ),
                )
            )

    @property
    def task_names(self) -> list[str]:
        return [t.name for t in self._tasks]

    def start(self) -> None:
        """Start the background thread (no-op without tasks or if running)."""
        if not self._tasks:
            return
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="cleanup-worker",
            daemon=True,
        )
        self._thread.start()
        log.info("Cleanup worker started (tasks: %s)", self.task_names)

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=self._loop_interval + 5)
            log.info("Cleanup worker stopped")

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self.run_once()
            self._stop_event.wait(timeout=self._loop_interval)

    def run_once(self) -> None:
        """Run every due task once, if this instance is the leader.

        Leadership is a transaction-scoped advisory lock on one pooled
        connection, held while the tasks run and released at COMMIT.
        Without a database (tests) the instance is always the leader.
        """
        if self._db is None:
            self._run_due_tasks()
            return
        try:
            with UnitOfWork(self._db) as uow:
                if not uow.try_advisory_lock(*self._LEADER_LOCK):
                    log.debug("Cleanup leader lock held elsewhere, skipping this cycle")
                    return
                self._run_due_tasks()
        except Exception:  # noqa: BLE001
            log.warning("Cleanup leader lock unavailable, skipping this cycle", exc_info=True)

    def _run_due_tasks(self) -> None:
        now = time.monotonic()
        for task in self._tasks:
            if self._stop_event.is_set():
                break
            if task.is_due(now):
                self._execute_task(task, now)

    def _execute_task(self, task: _CleanupTask, now: float) -> None:
        try:
            task.run(now)
            task.consecutive_failures = 0
            if self._metrics:
                self._metrics.increment(
                    "vpnctl_cleanup_runs_total",
                    labels={"task": task.name},
                )
        except Exception:  # noqa: BLE001
            task.consecutive_failures += 1
            log.exception(
                "Cleanup task '%s' failed (consecutive: %d)",
                task.name,
                task.consecutive_failures,
            )
            if self._metrics:
                self._metrics.increment(
                    "vpnctl_cleanup_errors_total",
                    labels={"task": task.name},
                )

    # -- Task implementations --------------------------------------------------

    @staticmethod
    def _connection_log_retention(ledger: ConnectionLedger, max_age_days: int) -> None:
        """Purge closed connection history past retention; open rows stay."""
        horizon = datetime.now(UTC) - timedelta(days=max_age_days)
        ledger.purge_closed_before(horizon)

    @staticmethod
    def _user_message_retention(message_repo: UserMessageRepository, max_age_days: int) -> None:
        horizon = datetime.now(UTC) - timedelta(days=max_age_days)
        deleted = message_repo.purge_before(horizon)
        if deleted:
            log.info("User message retention: deleted %d old messages", deleted)
