"""Prometheus metrics for parallel batch processing."""

from prometheus_client import Counter, Gauge, Histogram

from utils.metrics import get_or_create_metric

PARALLEL_BATCHES_PROCESSED = get_or_create_metric(
    lambda: Counter(
        "fullsync_parallel_batches_processed_total",
        "Batch ranges processed by parallel workers",
        ["status"],  # success, failed, timeout, cancelled
    ),
    "fullsync_parallel_batches_processed_total",
)

PARALLEL_RUN_TIME = get_or_create_metric(
    lambda: Histogram(
        "fullsync_parallel_run_seconds",
        "Total time for one parallel batch run",
        ["worker_count"],
        buckets=[1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600],
    ),
    "fullsync_parallel_run_seconds",
)

PARALLEL_BATCH_TIME = get_or_create_metric(
    lambda: Histogram(
        "fullsync_parallel_batch_seconds",
        "Time to process one batch range",
        ["module"],
        buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 120, 300, 600],
    ),
    "fullsync_parallel_batch_seconds",
)

PARALLEL_ACTIVE_WORKERS = get_or_create_metric(
    lambda: Gauge(
        "fullsync_parallel_active_workers",
        "Worker threads currently processing batch ranges",
    ),
    "fullsync_parallel_active_workers",
)

PARALLEL_QUEUE_SIZE = get_or_create_metric(
    lambda: Gauge(
        "fullsync_parallel_queue_size",
        "Batch ranges waiting to be processed",
    ),
    "fullsync_parallel_queue_size",
)
