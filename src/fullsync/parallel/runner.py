"""
Parallel batch runner.

Fans batch ranges from the partitioner out to a ThreadPoolExecutor. Each
worker gets one range and a cancellation token; workers never touch the
persisted full-sync status.
"""

import logging
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from datetime import UTC, datetime
from typing import Any

from opentelemetry import trace

from utils.tracing import trace_operation

from ..partition import BatchRange
from .metrics import (
    PARALLEL_ACTIVE_WORKERS,
    PARALLEL_BATCH_TIME,
    PARALLEL_BATCHES_PROCESSED,
    PARALLEL_QUEUE_SIZE,
    PARALLEL_RUN_TIME,
)

logger = logging.getLogger(__name__)

BatchWorker = Callable[..., Any]

POLL_INTERVAL_SECONDS = 1.0


class CancellationError(Exception):
    """Raised when a batch is cancelled via its cancellation token."""


class ParallelBatchRunner:
    """
    Runs a worker function over batch ranges concurrently.

    Failures are isolated per batch unless ``fail_fast`` is set, in which
    case the first failure signals every remaining batch to stop.
    """

    def __init__(
        self,
        max_workers: int = 4,
        timeout_per_batch: int = 3600,
        fail_fast: bool = False,
        module_name: str = "unknown",
    ):
        """
        Args:
            max_workers: Maximum concurrent workers
            timeout_per_batch: Seconds a batch may run before its token is set
                and it counts as timed out
            fail_fast: Stop on the first failed or timed-out batch
            module_name: Label for per-batch metrics
        """
        self.max_workers = max_workers
        self.timeout_per_batch = timeout_per_batch
        self.fail_fast = fail_fast
        self.module_name = module_name
        self._metrics_lock = threading.Lock()
        self._cancellation_tokens: dict[BatchRange, threading.Event] = {}
        self._started_at: dict[BatchRange, float] = {}

        logger.info(
            f"ParallelBatchRunner initialized: "
            f"max_workers={max_workers}, "
            f"timeout_per_batch={timeout_per_batch}s, "
            f"fail_fast={fail_fast}"
        )

    def run_batches(
        self,
        batches: Sequence[BatchRange],
        worker: BatchWorker,
        **worker_kwargs,
    ) -> dict[str, Any]:
        """
        Process every batch range with ``worker``.

        Args:
            batches: Ranges from ``get_min_max_object_ids_for_batches``
            worker: Called as ``worker(batch=..., cancellation_token=..., **worker_kwargs)``
            **worker_kwargs: Extra keyword arguments for ``worker``

        Returns:
            {
                'total_batches': int,
                'successful': int,
                'failed': int,
                'timeout': int,
                'results': list[dict],
                'errors': list[dict],
                'duration_seconds': float,
                'timestamp': str (ISO format),
                'max_workers': int
            }
        """
        with trace_operation(
            "parallel_run_batches",
            kind=trace.SpanKind.INTERNAL,
            module=self.module_name,
            batch_count=len(batches),
            max_workers=self.max_workers,
        ):
            with PARALLEL_RUN_TIME.labels(worker_count=self.max_workers).time():
                return self._run(batches, worker, worker_kwargs)

    def _run(
        self,
        batches: Sequence[BatchRange],
        worker: BatchWorker,
        worker_kwargs: dict[str, Any],
    ) -> dict[str, Any]:
        start_time = datetime.now(UTC)
        results: dict[str, Any] = {
            "total_batches": len(batches),
            "successful": 0,
            "failed": 0,
            "timeout": 0,
            "results": [],
            "errors": [],
            "max_workers": self.max_workers,
        }

        if not batches:
            logger.warning("No batch ranges to process")
            results["duration_seconds"] = 0
            results["timestamp"] = datetime.now(UTC).isoformat()
            return results

        logger.info(
            f"Processing {len(batches)} batch range(s) of {self.module_name} "
            f"with {self.max_workers} workers"
        )

        with self._metrics_lock:
            PARALLEL_QUEUE_SIZE.set(len(batches))

        self._cancellation_tokens = {batch: threading.Event() for batch in batches}
        self._started_at = {}

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_batch = {
                executor.submit(
                    self._run_batch,
                    batch,
                    worker,
                    self._cancellation_tokens[batch],
                    worker_kwargs,
                ): batch
                for batch in batches
            }

            with self._metrics_lock:
                PARALLEL_ACTIVE_WORKERS.set(min(self.max_workers, len(batches)))

            pending = set(future_to_batch)
            completed = 0
            stop = False

            while pending and not stop:
                done, pending = wait(
                    pending,
                    timeout=self._next_wait(pending, future_to_batch),
                    return_when=FIRST_COMPLETED,
                )
                expired = self._expired(pending, future_to_batch)
                pending -= expired

                for future in done:
                    completed += 1
                    self._update_progress_metrics(len(batches), completed)
                    progress = f"{completed}/{len(batches)}"
                    failed = self._record_done(future, future_to_batch[future], results, progress)
                    if failed and self.fail_fast and not stop:
                        stop = True
                        self._cancel_all()

                for future in expired:
                    # Queued batches are cancelled before the expired batch is signalled
                    if self.fail_fast and not stop:
                        stop = True
                        self._cancel_all()
                    completed += 1
                    self._update_progress_metrics(len(batches), completed)
                    progress = f"{completed}/{len(batches)}"
                    self._record_timeout(future_to_batch[future], results, progress)

        self._cancellation_tokens.clear()
        self._started_at.clear()

        with self._metrics_lock:
            PARALLEL_ACTIVE_WORKERS.set(0)
            PARALLEL_QUEUE_SIZE.set(0)

        end_time = datetime.now(UTC)
        results["duration_seconds"] = (end_time - start_time).total_seconds()
        results["timestamp"] = end_time.isoformat()

        logger.info(
            f"Parallel batch run complete: "
            f"{results['successful']} successful, "
            f"{results['failed']} failed, "
            f"{results['timeout']} timeout "
            f"out of {results['total_batches']} batches "
            f"in {results['duration_seconds']:.2f}s"
        )
        return results

    def _next_wait(self, pending, future_to_batch) -> float:
        """Seconds until the earliest running batch hits its timeout."""
        now = time.monotonic()
        wait_for = min(POLL_INTERVAL_SECONDS, self.timeout_per_batch)

        for future in pending:
            started = self._started_at.get(future_to_batch[future])
            if started is not None:
                wait_for = min(wait_for, started + self.timeout_per_batch - now)

        return max(wait_for, 0)

    def _expired(self, pending, future_to_batch) -> set:
        """Running futures whose batch has exceeded ``timeout_per_batch``."""
        now = time.monotonic()
        expired = set()

        for future in pending:
            started = self._started_at.get(future_to_batch[future])
            if started is None or future.done():
                continue
            if now - started >= self.timeout_per_batch:
                expired.add(future)

        return expired

    def _update_progress_metrics(self, total: int, completed: int) -> None:
        with self._metrics_lock:
            PARALLEL_QUEUE_SIZE.set(total - completed)
            PARALLEL_ACTIVE_WORKERS.set(min(self.max_workers, total - completed))

    def _record_done(
        self,
        future,
        batch: BatchRange,
        results: dict[str, Any],
        progress: str,
    ) -> bool:
        """Collect a finished future; returns True when the batch failed."""
        label = f"{batch.min}-{batch.max}"
        try:
            result = future.result()
        except CancellationError as e:
            results["failed"] += 1
            results["errors"].append(
                {"batch": batch.to_dict(), "error": str(e), "type": "CancellationError"}
            )
            PARALLEL_BATCHES_PROCESSED.labels(status="cancelled").inc()
            logger.info(f"Batch {label} cancelled ({progress})")
            return False
        except Exception as e:
            results["failed"] += 1
            results["errors"].append(
                {"batch": batch.to_dict(), "error": str(e), "type": type(e).__name__}
            )
            PARALLEL_BATCHES_PROCESSED.labels(status="failed").inc()
            logger.error(f"Batch {label} failed: {e} ({progress})", exc_info=True)
            return True

        results["results"].append(result)
        results["successful"] += 1
        PARALLEL_BATCHES_PROCESSED.labels(status="success").inc()
        logger.info(f"Batch {label} done ({progress})")
        return False

    def _record_timeout(self, batch: BatchRange, results: dict[str, Any], progress: str) -> None:
        # The worker sees the token at its next check; its result is discarded
        self._cancellation_tokens[batch].set()
        results["timeout"] += 1
        results["errors"].append(
            {
                "batch": batch.to_dict(),
                "error": f"Timeout after {self.timeout_per_batch}s",
                "type": "TimeoutError",
            }
        )
        PARALLEL_BATCHES_PROCESSED.labels(status="timeout").inc()
        logger.error(
            f"Batch {batch.min}-{batch.max} timed out after "
            f"{self.timeout_per_batch}s ({progress})"
        )

    def _cancel_all(self) -> None:
        logger.warning("Fail-fast enabled, cancelling remaining batches")
        for token in self._cancellation_tokens.values():
            token.set()

    def _run_batch(
        self,
        batch: BatchRange,
        worker: BatchWorker,
        cancellation_token: threading.Event,
        worker_kwargs: dict[str, Any],
    ) -> dict[str, Any]:
        with trace_operation(
            "parallel_run_single_batch",
            kind=trace.SpanKind.INTERNAL,
            module=self.module_name,
            batch_min=batch.min,
            batch_max=batch.max,
        ):
            if cancellation_token.is_set():
                raise CancellationError(
                    f"Batch {batch.min}-{batch.max} cancelled before starting"
                )

            self._started_at[batch] = time.monotonic()
            start_time = datetime.now(UTC)
            result = worker(batch=batch, cancellation_token=cancellation_token, **worker_kwargs)

            if not isinstance(result, dict):
                result = {"success": True, "data": result}

            result["batch"] = batch.to_dict()
            duration = (datetime.now(UTC) - start_time).total_seconds()
            result["duration_seconds"] = duration
            PARALLEL_BATCH_TIME.labels(module=self.module_name).observe(duration)

            logger.debug(f"Batch {batch.min}-{batch.max} finished in {duration:.2f}s")
            return result
