"""In-process store over a mapping of id -> record, for dry runs and tests."""

import logging
import threading
from collections.abc import Iterable, Mapping
from typing import Any

from fullsync.exceptions import StoreUnavailable
from fullsync.modules.base import Predicate

from .base import IdStore, MinMax

logger = logging.getLogger(__name__)


class MemoryIdStore(IdStore):
    """
    Tables held in memory: ``{table: {id: record}}``.

    ``fail_queries`` makes every query raise ``StoreUnavailable``, to
    rehearse outages.
    """

    def __init__(self, tables: Mapping[str, Mapping[int, Mapping[str, Any]]] | None = None):
        self._tables: dict[str, dict[int, dict[str, Any]]] = {
            table: {int(k): dict(v) for k, v in rows.items()}
            for table, rows in (tables or {}).items()
        }
        self._lock = threading.Lock()
        self.fail_queries = False

    def insert(self, table: str, records: Iterable[Mapping[str, Any]], id_field: str = "id") -> None:
        with self._lock:
            rows = self._tables.setdefault(table, {})
            for record in records:
                rows[int(record[id_field])] = dict(record)

    def delete(self, table: str, ids: Iterable[int]) -> None:
        with self._lock:
            rows = self._tables.get(table, {})
            for record_id in ids:
                rows.pop(record_id, None)

    def _matching_ids(self, predicate: Predicate) -> list[int]:
        if self.fail_queries:
            raise StoreUnavailable(f"Store unavailable for table {predicate.table}")

        with self._lock:
            rows = self._tables.get(predicate.table)
            if rows is None:
                raise StoreUnavailable(f"Unknown table {predicate.table!r}")
            return sorted(
                record_id
                for record_id, record in rows.items()
                if predicate.matches({predicate.id_field: record_id, **record})
            )

    def query_ids_descending(
        self, predicate: Predicate, upper_bound_exclusive: int, limit: int
    ) -> list[int]:
        ids = [i for i in self._matching_ids(predicate) if i < upper_bound_exclusive]
        return ids[::-1][:limit]

    def query_min_max(
        self,
        predicate: Predicate,
        lower_bound_exclusive: int | None = None,
        limit: int | None = None,
    ) -> MinMax | None:
        ids = self._matching_ids(predicate)
        if lower_bound_exclusive is not None:
            ids = [i for i in ids if i > lower_bound_exclusive]
        if limit is not None:
            ids = ids[:limit]
        if not ids:
            return None
        return MinMax(min=ids[0], max=ids[-1])

    def query_count(self, predicate: Predicate) -> int:
        return len(self._matching_ids(predicate))
