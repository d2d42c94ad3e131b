"""Tests for vpnctl.metrics.collector."""

from __future__ import annotations

import threading

from vpnctl.metrics.collector import MetricsCollector


class TestMetricsCollector:
    def test_increment_and_get(self):
        c = MetricsCollector()
        c.increment("vpnctl_connect_total", labels={"outcome": "allowed"})
        c.increment("vpnctl_connect_total", 2, labels={"outcome": "allowed"})
        assert c.get("vpnctl_connect_total", labels={"outcome": "allowed"}) == 3
        assert c.get("vpnctl_connect_total", labels={"outcome": "account_disabled"}) == 0

    def test_label_order_does_not_matter(self):
        c = MetricsCollector()
        c.increment("m", labels={"b": "2", "a": "1"})
        assert c.get("m", labels={"a": "1", "b": "2"}) == 1

    def test_export_groups_by_name(self):
        c = MetricsCollector()
        c.increment("vpnctl_connect_total", labels={"outcome": "allowed"})
        c.increment("vpnctl_connect_total", labels={"outcome": "already_connected"})
        c.increment("custom_total")

        text = c.export()

        assert text.count("# TYPE vpnctl_connect_total counter") == 1
        assert "# HELP vpnctl_connect_total" in text
        assert 'vpnctl_connect_total{outcome="allowed"} 1' in text
        assert 'vpnctl_connect_total{outcome="already_connected"} 1' in text
        assert "# TYPE custom_total counter\ncustom_total 1" in text
        assert "# HELP custom_total" not in text
        assert text.startswith("# HELP vpnctl_uptime_seconds")

    def test_thread_safety(self):
        c = MetricsCollector()

        def work():
            for _ in range(1000):
                c.increment("n")

        threads = [threading.Thread(target=work) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert c.get("n") == 8000
