"""
Full-sync driver: resumable, time-boxed transmission of a module's ids.

One call to ``send_full_sync_actions`` runs until the module is finished,
the chunk budget is spent, the deadline passes, or the transport fails,
and returns the resulting status. Callers persist that status and call
again until ``finished`` is true.

The status only moves after a chunk was transmitted successfully, so a
failed or interrupted invocation can always be retried from the status it
returned.
"""

import logging
import time
from collections.abc import Callable
from typing import Any

from opentelemetry import trace
from prometheus_client import Counter, Histogram

from utils.metrics import get_or_create_metric
from utils.tracing import add_span_attributes, trace_operation

from .exceptions import StoreUnavailable, TransportFailure
from .extractor import cursor_for, next_chunk
from .limits import LimitsSource
from .modules.base import SyncModule
from .status import FullSyncStatus
from .store.base import IdStore
from .transport.base import TransportSender, build_payload

logger = logging.getLogger(__name__)


CHUNKS_SENT = get_or_create_metric(
    lambda: Counter(
        "fullsync_chunks_sent_total",
        "Chunks transmitted successfully",
        ["module"],
    ),
    "fullsync_chunks_sent_total",
)

IDS_SENT = get_or_create_metric(
    lambda: Counter(
        "fullsync_ids_sent_total",
        "Record ids transmitted successfully",
        ["module"],
    ),
    "fullsync_ids_sent_total",
)

INVOCATIONS = get_or_create_metric(
    lambda: Counter(
        "fullsync_invocations_total",
        "Driver invocations by outcome",
        ["module", "outcome"],  # finished, chunk_budget, deadline, transport_failure, store_failure, already_finished
    ),
    "fullsync_invocations_total",
)

INVOCATION_TIME = get_or_create_metric(
    lambda: Histogram(
        "fullsync_invocation_seconds",
        "Wall-clock time of one driver invocation",
        ["module"],
        buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
    ),
    "fullsync_invocation_seconds",
)


class FullSyncDriver:
    """
    Composes extraction, transmission and status updates into one
    budgeted invocation.

    At most one driver may run per module and target at a time; nothing
    here locks the status.
    """

    def __init__(
        self,
        store: IdStore,
        sender: TransportSender,
        limits: LimitsSource,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            store: Backing-store id queries
            sender: Transport for full-sync actions
            limits: Per-module chunk size and chunk budget
            clock: Returns the current time in epoch seconds
        """
        self.store = store
        self.sender = sender
        self.limits = limits
        self.clock = clock

    def send_full_sync_actions(
        self,
        module: SyncModule,
        config: Any,
        status: FullSyncStatus,
        send_until: float,
    ) -> FullSyncStatus:
        """
        Transmit chunks of ``module`` until a budget runs out or nothing is left.

        Args:
            module: Module being synchronized
            config: Full-sync configuration selecting the records in scope
            status: Status returned by the previous invocation (never mutated)
            send_until: Epoch seconds after which no new chunk is started

        Returns:
            The updated status

        Raises:
            ConfigurationMissing: No limits configured for the module
            InvalidLimits: Configured limits are not positive integers
            StoreUnavailable: The store failed; the exception's ``status``
                carries the progress of the chunks already sent
        """
        if status.finished:
            logger.debug(f"Full sync of {module.name} already finished")
            INVOCATIONS.labels(module=module.name, outcome="already_finished").inc()
            return status

        limits = self.limits.limits_for(module.name)
        action_name = module.full_sync_action_name

        with trace_operation(
            "full_sync_invocation",
            kind=trace.SpanKind.INTERNAL,
            module=module.name,
            chunk_size=limits.chunk_size,
            max_chunks=limits.max_chunks,
            last_sent=status.last_sent,
        ):
            with INVOCATION_TIME.labels(module=module.name).time():
                status, outcome = self._run(
                    module, config, status, send_until, limits.chunk_size,
                    limits.max_chunks, action_name,
                )

            add_span_attributes(outcome=outcome, sent=status.sent)

        INVOCATIONS.labels(module=module.name, outcome=outcome).inc()
        message = (
            f"Full sync of {module.name} finished" if outcome == "finished"
            else f"Full sync of {module.name} paused: {outcome}"
        )
        logger.info(
            message,
            extra={
                "module_name": module.name,
                "last_sent": status.last_sent,
                "sent": status.sent,
            },
        )
        return status

    def _run(
        self,
        module: SyncModule,
        config: Any,
        status: FullSyncStatus,
        send_until: float,
        chunk_size: int,
        max_chunks: int,
        action_name: str,
    ) -> tuple[FullSyncStatus, str]:
        chunks_sent = 0

        while True:
            try:
                chunk = next_chunk(module, self.store, config, status, chunk_size)
            except StoreUnavailable as e:
                e.status = status
                INVOCATIONS.labels(module=module.name, outcome="store_failure").inc()
                logger.warning(
                    f"Store failed for {module.name} after {chunks_sent} chunk(s) "
                    f"(last_sent={status.last_sent}, sent={status.sent})"
                )
                raise

            if not chunk:
                return status.finish(), "finished"

            # Budgets are checked after the fetch; the fetched chunk is dropped
            # and fetched again by the next invocation.
            if chunks_sent >= max_chunks:
                return status, "chunk_budget"
            if self.clock() >= send_until:
                return status, "deadline"

            previous_cursor = cursor_for(module, status)
            try:
                self.sender.send(action_name, build_payload(chunk, previous_cursor))
            except TransportFailure as e:
                logger.warning(
                    f"Transport failed for {module.name} below {previous_cursor}: {e}"
                )
                return status, "transport_failure"

            status = status.advance(chunk)
            chunks_sent += 1
            CHUNKS_SENT.labels(module=module.name).inc()
            IDS_SENT.labels(module=module.name).inc(len(chunk))

            logger.debug(
                f"Sent {len(chunk)} id(s) of {module.name} "
                f"({chunk[0]}..{chunk[-1]}), total {status.sent}"
            )
