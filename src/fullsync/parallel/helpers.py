"""
Helpers for parallel batch runs: the standard batch worker, a job
factory and worker-count estimation.
"""

import logging
import threading
from collections.abc import Callable
from typing import Any

from ..extractor import chunks_with_preceding_end
from ..limits import require_positive_int
from ..modules.base import SyncModule
from ..partition import BatchRange
from ..store.base import IdStore
from ..transport.base import TransportSender, build_payload
from .runner import BatchWorker, CancellationError, ParallelBatchRunner

logger = logging.getLogger(__name__)


def send_batch_range(
    batch: BatchRange,
    cancellation_token: threading.Event,
    module: SyncModule,
    store: IdStore,
    sender: TransportSender,
    chunk_size: int,
    config: Any = None,
) -> dict[str, Any]:
    """
    Transmit every matching id in ``batch``, largest first, in chunks.

    Each chunk goes out as the module's full-sync action with the cursor it
    started below. The cancellation token is checked between chunks.

    Returns:
        Dictionary with 'sent' and 'chunks'

    Raises:
        CancellationError: The token was set before the range was done
        StoreUnavailable: The store failed
        TransportFailure: A chunk could not be sent
    """
    require_positive_int(chunk_size, "chunk_size")
    predicate = module.build_predicate(config)
    cursor = batch.max + 1
    sent = 0
    chunks = 0

    while True:
        if cancellation_token.is_set():
            raise CancellationError(
                f"Batch {batch.min}-{batch.max} cancelled after {sent} id(s)"
            )

        ids = store.query_ids_descending(predicate, cursor, chunk_size)
        in_range = [i for i in ids if i >= batch.min]
        if not in_range:
            break

        sender.send(module.full_sync_action_name, build_payload(in_range, cursor))
        sent += len(in_range)
        chunks += 1
        cursor = in_range[-1]

        if len(in_range) < chunk_size:
            break

    logger.debug(f"Sent {sent} id(s) of {module.name} in {chunks} chunk(s) for {batch}")
    return {"sent": sent, "chunks": chunks}


def split_into_chunks(ids: list[int], chunk_size: int, previous_end: int) -> list[dict[str, Any]]:
    """
    Split an id list into descending chunks paired with their preceding cursor.

    Example:
        >>> split_into_chunks([1, 2, 3, 4, 5], 2, 6)
        [{'ids': [5, 4], 'previous_end': 6}, {'ids': [3, 2], 'previous_end': 4}, {'ids': [1], 'previous_end': 2}]
    """
    require_positive_int(chunk_size, "chunk_size")
    ordered = sorted(ids, reverse=True)
    chunks = [ordered[i:i + chunk_size] for i in range(0, len(ordered), chunk_size)]
    return chunks_with_preceding_end(chunks, previous_end)


def create_parallel_batch_job(
    worker: BatchWorker,
    max_workers: int = 4,
    timeout_per_batch: int = 3600,
    fail_fast: bool = False,
    module_name: str = "unknown",
) -> Callable[..., dict[str, Any]]:
    """
    Bind a worker to a runner; the returned job takes the batch list.

    Example:
        >>> job = create_parallel_batch_job(send_batch_range, max_workers=4)
        >>> results = job(batches, module=posts, store=store, sender=sender, chunk_size=100)
    """
    runner = ParallelBatchRunner(
        max_workers=max_workers,
        timeout_per_batch=timeout_per_batch,
        fail_fast=fail_fast,
        module_name=module_name,
    )

    def parallel_job(batches: list[BatchRange], **kwargs) -> dict[str, Any]:
        return runner.run_batches(batches, worker, **kwargs)

    return parallel_job


def estimate_optimal_workers(
    batch_count: int,
    avg_batch_time_seconds: float = 60.0,
    total_time_budget_seconds: float = 300.0,
    max_workers: int = 10,
) -> int:
    """
    Workers needed to finish ``batch_count`` batches within the time budget.

    Example:
        >>> estimate_optimal_workers(20, 60, 300, 10)
        5
    """
    if batch_count == 0:
        return 1

    total_work_seconds = batch_count * avg_batch_time_seconds
    workers_needed = int(total_work_seconds / total_time_budget_seconds) + 1

    workers = min(workers_needed, max_workers, batch_count)
    workers = max(workers, 1)

    logger.info(
        f"Estimated optimal workers: {workers} "
        f"(batches={batch_count}, avg_time={avg_batch_time_seconds}s, "
        f"budget={total_time_budget_seconds}s)"
    )
    return workers

