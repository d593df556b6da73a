"""
Chunk extraction: the next descending slice of ids below a cursor.

Extraction is a pure read. Walking downwards from the largest id means
rows inserted during a long full sync land above the cursor and are left
to incremental sync, while the cursor range itself stays stable.
"""

import logging
from collections.abc import Iterable
from typing import Any

from opentelemetry import trace

from utils.tracing import trace_operation

from .limits import require_positive_int
from .modules.base import SyncModule
from .status import FullSyncStatus
from .store.base import IdStore

logger = logging.getLogger(__name__)


def cursor_for(module: SyncModule, status: FullSyncStatus) -> int:
    """Exclusive upper bound of the next chunk."""
    if status.last_sent is None:
        return module.initial_last_sent()
    return status.last_sent


def next_chunk(
    module: SyncModule,
    store: IdStore,
    config: Any,
    status: FullSyncStatus,
    chunk_size: int,
) -> list[int]:
    """
    Return up to ``chunk_size`` ids in scope for ``config``, all below the
    status cursor, largest first. An empty list means traversal is over.

    Raises:
        InvalidLimits: If ``chunk_size`` is not a positive integer
        StoreUnavailable: If the store cannot answer
    """
    require_positive_int(chunk_size, "chunk_size")
    upper_bound = cursor_for(module, status)

    with trace_operation(
        "full_sync_next_chunk",
        kind=trace.SpanKind.INTERNAL,
        module=module.name,
        upper_bound=upper_bound,
        chunk_size=chunk_size,
    ):
        ids = store.query_ids_descending(
            module.build_predicate(config), upper_bound, chunk_size
        )

    logger.debug(f"Fetched {len(ids)} id(s) below {upper_bound} for {module.name}")
    return ids


def chunks_with_preceding_end(
    chunks: Iterable[list[int]], previous_end: int
) -> list[dict[str, Any]]:
    """
    Pair each descending chunk with the cursor it started below.

    Example:
        >>> chunks_with_preceding_end([[9, 8], [7, 6]], 10)
        [{'ids': [9, 8], 'previous_end': 10}, {'ids': [7, 6], 'previous_end': 8}]
    """
    paired = []
    for chunk in chunks:
        paired.append({"ids": chunk, "previous_end": previous_end})
        previous_end = chunk[-1]
    return paired
