"""
Unit tests for metrics helpers

Tests verify:
- get_or_create_metric reuses registered collectors
- MetricsPublisher start-up and port conflicts
- ApplicationInfo gauges
- Driver counters move with sent chunks
"""

from unittest.mock import patch

import pytest
from prometheus_client import REGISTRY, CollectorRegistry, Counter

from fullsync.driver import FullSyncDriver
from fullsync.status import FullSyncStatus
from utils.metrics import ApplicationInfo, MetricsPublisher, get_or_create_metric


class TestGetOrCreateMetric:
    """Test get_or_create_metric"""

    def test_creates_then_reuses(self):
        registry = CollectorRegistry()

        def factory():
            return Counter("test_reuse_total", "Test counter", registry=registry)

        first = get_or_create_metric(factory, "test_reuse_total", registry=registry)
        second = get_or_create_metric(factory, "test_reuse_total", registry=registry)

        assert first is second

    def test_unrelated_value_error_propagates(self):
        def factory():
            raise ValueError("bad metric definition")

        with pytest.raises(ValueError, match="bad metric"):
            get_or_create_metric(factory, "never_registered", registry=CollectorRegistry())


class TestMetricsPublisher:
    """Test MetricsPublisher"""

    @patch("utils.metrics.publisher.start_http_server")
    def test_start(self, mock_start):
        registry = CollectorRegistry()
        publisher = MetricsPublisher(port=9200, registry=registry)

        publisher.start()

        mock_start.assert_called_once_with(9200, registry=registry)
        assert publisher.is_started()

    @patch("utils.metrics.publisher.start_http_server")
    def test_start_twice_is_noop(self, mock_start):
        publisher = MetricsPublisher(port=9201)

        publisher.start()
        publisher.start()

        assert mock_start.call_count == 1

    @patch("utils.metrics.publisher.start_http_server")
    def test_port_in_use(self, mock_start):
        mock_start.side_effect = OSError("[Errno 98] Address already in use")

        with pytest.raises(RuntimeError, match="9202"):
            MetricsPublisher(port=9202).start()

    @patch("utils.metrics.publisher.start_http_server")
    def test_other_os_errors_propagate(self, mock_start):
        mock_start.side_effect = OSError("Permission denied")

        with pytest.raises(OSError, match="Permission denied"):
            MetricsPublisher(port=80).start()


class TestApplicationInfo:
    """Test ApplicationInfo"""

    def test_info_and_uptime(self):
        registry = CollectorRegistry()
        app_info = ApplicationInfo(version="9.9.9", registry=registry)

        app_info.update_uptime()

        assert registry.get_sample_value(
            "fullsync_application_info", {"name": "fullsync", "version": "9.9.9"}
        ) == 1.0
        assert registry.get_sample_value("fullsync_application_uptime_seconds") >= 0


class TestDriverMetrics:
    """Test counters exported by the driver"""

    def test_chunk_and_id_counters(self, posts_module, posts_store, sender, limits, clock):
        def sample(name, **labels):
            return REGISTRY.get_sample_value(name, labels) or 0

        chunks_before = sample("fullsync_chunks_sent_total", module="posts")
        ids_before = sample("fullsync_ids_sent_total", module="posts")
        paused_before = sample(
            "fullsync_invocations_total", module="posts", outcome="chunk_budget"
        )

        FullSyncDriver(posts_store, sender, limits, clock=clock).send_full_sync_actions(
            posts_module, None, FullSyncStatus(), 10**12
        )

        assert sample("fullsync_chunks_sent_total", module="posts") - chunks_before == 3
        assert sample("fullsync_ids_sent_total", module="posts") - ids_before == 30
        assert sample(
            "fullsync_invocations_total", module="posts", outcome="chunk_budget"
        ) - paused_before == 1
