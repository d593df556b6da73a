"""
Resumable, time-boxed full synchronization.

A full sync walks every record a module puts in scope, largest id first,
and sends the ids in chunks to a remote consumer. Each driver invocation
is bounded by a chunk budget and a deadline and returns a status the
caller persists and hands back on the next invocation.

Components:
- checksum: versioned, stable checksums of value sets
- extractor: next descending chunk below a cursor
- driver: budgeted send loop over the extractor
- partition: ascending batch ranges for parallel work
- limits: per-module chunk size and chunk budget
"""

from .checksum import CHECKSUM_ENCODING_VERSION, checksum, still_valid_checksum
from .driver import FullSyncDriver
from .exceptions import (
    ConfigurationMissing,
    FullSyncError,
    InvalidLimits,
    StatusFinalized,
    StoreUnavailable,
    TransportFailure,
    UnknownModule,
)
from .extractor import chunks_with_preceding_end, next_chunk
from .limits import LimitsSource, TransmissionLimits
from .partition import BatchRange, get_min_max_object_ids_for_batches
from .status import FullSyncStateStore, FullSyncStatus

__version__ = "1.0.0"

__all__ = [
    "CHECKSUM_ENCODING_VERSION",
    "checksum",
    "still_valid_checksum",
    "FullSyncDriver",
    "FullSyncError",
    "StoreUnavailable",
    "TransportFailure",
    "ConfigurationMissing",
    "InvalidLimits",
    "StatusFinalized",
    "UnknownModule",
    "next_chunk",
    "chunks_with_preceding_end",
    "LimitsSource",
    "TransmissionLimits",
    "BatchRange",
    "get_min_max_object_ids_for_batches",
    "FullSyncStatus",
    "FullSyncStateStore",
]
