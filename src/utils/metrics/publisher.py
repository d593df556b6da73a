"""
Prometheus HTTP endpoint for full-sync processes.

Long-running commands (``fullsync schedule``) expose ``/metrics`` so
progress counters can be scraped between invocations.
"""

import logging
import time

from prometheus_client import REGISTRY, CollectorRegistry, Gauge, Info, start_http_server

logger = logging.getLogger(__name__)


class MetricsPublisher:
    """Starts the Prometheus HTTP server once per process."""

    def __init__(self, port: int = 9091, registry: CollectorRegistry | None = None):
        """
        Args:
            port: Port to expose metrics on
            registry: Prometheus registry (default: global REGISTRY)
        """
        self.port = port
        self.registry = registry or REGISTRY
        self._server_started = False

    def start(self) -> None:
        """Start serving ``/metrics``; a second call is a no-op."""
        if self._server_started:
            logger.warning(f"Metrics server already running on port {self.port}")
            return

        try:
            start_http_server(self.port, registry=self.registry)
        except OSError as e:
            if "Address already in use" in str(e):
                raise RuntimeError(
                    f"Metrics server port {self.port} is already in use"
                ) from e
            raise

        self._server_started = True
        logger.info(f"Metrics server started on port {self.port}")

    def is_started(self) -> bool:
        return self._server_started


class ApplicationInfo:
    """Static build info plus an uptime gauge."""

    def __init__(
        self,
        app_name: str = "fullsync",
        version: str = "1.0.0",
        registry: CollectorRegistry | None = None,
    ):
        self.registry = registry or REGISTRY
        self.info = Info("fullsync_application", "Application metadata", registry=self.registry)
        self.info.info({"name": app_name, "version": version})

        self._start_time = time.time()
        self.uptime_seconds = Gauge(
            "fullsync_application_uptime_seconds",
            "Application uptime in seconds",
            registry=self.registry,
        )

    def update_uptime(self) -> None:
        self.uptime_seconds.set(self.get_uptime())

    def get_uptime(self) -> float:
        return time.time() - self._start_time
