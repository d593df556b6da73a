"""
Id-space partitioning into batch ranges for parallel bulk work.

Ranges are built from the ids that actually exist, so each window holds
about ``batch_size`` records however sparse the id space is. Windows are
ascending and never overlap. Each window spans the smallest to the largest
matching id it holds.

If matching rows disappear while partitioning, the remaining space is
covered by one approximate window ending at the global maximum found at
the start; that window may contain fewer (or no) matching ids.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any

from opentelemetry import trace
from prometheus_client import Counter

from utils.metrics import get_or_create_metric
from utils.tracing import add_span_attributes, trace_operation

from .limits import require_positive_int
from .modules.base import SyncModule
from .store.base import IdStore

logger = logging.getLogger(__name__)


PARTITION_WINDOWS = get_or_create_metric(
    lambda: Counter(
        "fullsync_partition_windows_total",
        "Batch ranges produced by the partitioner",
        ["module", "kind"],  # kind: exact, fallback
    ),
    "fullsync_partition_windows_total",
)


@dataclass(frozen=True)
class BatchRange:
    """Inclusive id range handed to one batch worker."""

    min: int
    max: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def get_min_max_object_ids_for_batches(
    module: SyncModule,
    store: IdStore,
    batch_size: int,
    config: Any = None,
) -> list[BatchRange] | None:
    """
    Split the module's matching ids into ranges of about ``batch_size`` ids.

    Args:
        module: Module whose table is partitioned
        store: Store answering min/max queries
        batch_size: Target number of ids per range
        config: Full-sync configuration narrowing the records in scope

    Returns:
        Ascending, non-overlapping ranges; an empty list when nothing
        matches; None when the module has no table

    Raises:
        InvalidLimits: If ``batch_size`` is not a positive integer
        StoreUnavailable: If the store cannot answer

    Example:
        >>> get_min_max_object_ids_for_batches(module, store, 100)
        [BatchRange(min=1, max=100), BatchRange(min=101, max=200), BatchRange(min=201, max=250)]
    """
    require_positive_int(batch_size, "batch_size")

    if not module.is_addressable():
        logger.debug(f"Module {module.name} has no table; nothing to partition")
        return None

    predicate = module.build_predicate(config)

    with trace_operation(
        "full_sync_partition",
        kind=trace.SpanKind.INTERNAL,
        module=module.name,
        batch_size=batch_size,
    ):
        total = store.query_min_max(predicate)
        if total is None:
            add_span_attributes(batches=0)
            return []

        ranges: list[BatchRange] = []
        current_max = 0

        while current_max < total.max:
            window = store.query_min_max(
                predicate, lower_bound_exclusive=current_max, limit=batch_size
            )

            if window is None:
                # Rows vanished while we were partitioning
                fallback = BatchRange(min=current_max + 1, max=total.max)
                logger.warning(
                    f"No ids above {current_max} in {module.name} before reaching "
                    f"{total.max}; using approximate range {fallback.min}-{fallback.max}"
                )
                ranges.append(fallback)
                PARTITION_WINDOWS.labels(module=module.name, kind="fallback").inc()
                break

            ranges.append(BatchRange(min=window.min, max=window.max))
            PARTITION_WINDOWS.labels(module=module.name, kind="exact").inc()
            current_max = window.max

        add_span_attributes(batches=len(ranges))

    logger.info(
        f"Partitioned {module.name} into {len(ranges)} batch(es) of up to {batch_size} ids"
    )
    return ranges
