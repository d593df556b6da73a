"""
Checksums for detecting unchanged data between syncs.

The checksum is a CRC32 over a canonical JSON encoding of the value. The
encoding is versioned: ``CHECKSUM_ENCODING_VERSION`` is mixed into every
digest, so a change to the encoding rules invalidates stored sums instead
of silently comparing incompatible values. CRC32 is a drift heuristic, not
an integrity guarantee; collisions are tolerated.
"""

import base64
import datetime
import decimal
import json
import logging
import uuid
import zlib
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

CHECKSUM_ENCODING_VERSION = 1


def _canonical_default(value: Any) -> Any:
    """JSON fallback for values the json module cannot encode natively."""
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=canonical_encode)
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, decimal.Decimal):
        return str(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, Mapping):
        return dict(value)
    if hasattr(value, "to_dict"):
        return value.to_dict()
    raise TypeError(f"Cannot checksum value of type {type(value).__name__}")


def canonical_encode(values: Any) -> str:
    """
    Stable text encoding of ``values``.

    Keys are sorted, separators are compact, output is ASCII, sets are
    sorted, tuples become lists and floats use ``repr`` via json.
    Mapping keys must be strings (or be convertible by json).
    """
    return json.dumps(
        values,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
        allow_nan=False,
        default=_canonical_default,
    )


def checksum(values: Any) -> int:
    """
    Return the unsigned 32-bit checksum of ``values``.

    Deterministic across calls, processes and platforms for the same input.

    Example:
        >>> checksum({"a": 1}) == checksum({"a": 1})
        True
        >>> checksum({"a": 1}) == checksum({"a": 2})
        False
    """
    payload = f"v{CHECKSUM_ENCODING_VERSION}:{canonical_encode(values)}"
    return zlib.crc32(payload.encode("ascii")) & 0xFFFFFFFF


def still_valid_checksum(known_sums: Mapping[str, int], name: str, new_sum: int) -> bool:
    """True iff ``known_sums[name]`` exists and equals ``new_sum``."""
    if name in known_sums and known_sums[name] == new_sum:
        return True

    logger.debug(f"Checksum {name!r} changed or unknown")
    return False
