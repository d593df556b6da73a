"""
Parallel processing of batch ranges.

Features:
- Configurable worker count
- Per-batch timeout handling
- Error isolation (a failed batch does not stop the others)
- Fail-fast cancellation through per-batch tokens
- Result aggregation and Prometheus metrics
"""

from .helpers import (
    create_parallel_batch_job,
    estimate_optimal_workers,
    send_batch_range,
    split_into_chunks,
)
from .runner import CancellationError, ParallelBatchRunner

__all__ = [
    "ParallelBatchRunner",
    "CancellationError",
    "create_parallel_batch_job",
    "estimate_optimal_workers",
    "send_batch_range",
    "split_into_chunks",
]
