"""
Prometheus helpers.

Usage:
    from utils.metrics import MetricsPublisher, get_or_create_metric

    CHUNKS = get_or_create_metric(
        lambda: Counter("fullsync_chunks_sent_total", "Chunks sent", ["module"]),
        "fullsync_chunks_sent_total",
    )
"""

import logging
from collections.abc import Callable
from typing import TypeVar

from prometheus_client import REGISTRY, CollectorRegistry

from .publisher import ApplicationInfo, MetricsPublisher

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_or_create_metric(
    metric_factory: Callable[[], T],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> T:
    """
    Create a metric, or return the one already registered under ``metric_name``.

    Modules can be imported more than once (test reloads, plugin loaders);
    registering the same collector twice raises ``ValueError``.
    """
    try:
        return metric_factory()
    except ValueError:
        existing = registry._names_to_collectors.get(metric_name)
        if existing is not None:
            return existing
        raise


__all__ = [
    "MetricsPublisher",
    "ApplicationInfo",
    "get_or_create_metric",
]
