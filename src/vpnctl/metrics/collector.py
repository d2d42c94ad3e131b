"""In-process metrics collector.

Counters live in process memory and are exported in Prometheus text
format by the ``/metrics`` endpoint.  With several gunicorn workers
each worker reports its own counters.
"""

from __future__ import annotations

import threading
import time

_HELP = {
    "vpnctl_http_requests_total": "HTTP requests served, by method and status",
    "vpnctl_connect_total": "Connect notifications, by authorization outcome",
    "vpnctl_disconnect_total": "Disconnect notifications, by whether a ledger row was closed",
    "vpnctl_connections_reconciled_total": "Open ledger rows closed as lost on address reuse",
    "vpnctl_endpoint_failures_total": "Process control endpoint failures, by kind",
    "vpnctl_cleanup_runs_total": "Retention task runs, by task",
    "vpnctl_cleanup_errors_total": "Retention task failures, by task",
}


class MetricsCollector:
    """Thread-safe counter registry."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, int] = {}
        self._start_time = time.time()

    def increment(self, name: str, amount: int = 1, labels: dict | None = None) -> None:
        key = self._make_key(name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + amount

    def get(self, name: str, labels: dict | None = None) -> int:
        key = self._make_key(name, labels)
        with self._lock:
            return self._counters.get(key, 0)

    def export(self) -> str:
        """Render every counter, grouped by metric name."""
        lines = [
            "# HELP vpnctl_uptime_seconds Time since process start",
            "# TYPE vpnctl_uptime_seconds gauge",
            f"vpnctl_uptime_seconds {time.time() - self._start_time:.1f}",
            "",
        ]

        with self._lock:
            grouped: dict[str, list[tuple[str, int]]] = {}
            for key, value in sorted(self._counters.items()):
                grouped.setdefault(key.partition("{")[0], []).append((key, value))

        for name, entries in sorted(grouped.items()):
            if name in _HELP:
                lines.append(f"# HELP {name} {_HELP[name]}")
            lines.append(f"# TYPE {name} counter")
            lines.extend(f"{key} {value}" for key, value in entries)
            lines.append("")

        return "\n".join(lines) + "\n"

    @staticmethod
    def _make_key(name: str, labels: dict | None) -> str:
        if not labels:
            return name
        label_str = ",".join(f'{k}="{v}"' for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"
