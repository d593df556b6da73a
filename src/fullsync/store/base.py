"""Backing-store query interface used by the extractor and partitioner."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from fullsync.modules.base import Predicate


@dataclass(frozen=True)
class MinMax:
    """Smallest and largest id of a selection."""

    min: int
    max: int


class IdStore(ABC):
    """
    Read-only id queries over a collection.

    Implementations raise ``StoreUnavailable`` when the store cannot answer.
    """

    @abstractmethod
    def query_ids_descending(
        self, predicate: Predicate, upper_bound_exclusive: int, limit: int
    ) -> list[int]:
        """Up to ``limit`` matching ids below ``upper_bound_exclusive``, largest first."""

    @abstractmethod
    def query_min_max(
        self,
        predicate: Predicate,
        lower_bound_exclusive: int | None = None,
        limit: int | None = None,
    ) -> MinMax | None:
        """
        Min and max of the first ``limit`` matching ids (ascending) above
        ``lower_bound_exclusive``; None when nothing matches.
        """

    @abstractmethod
    def query_count(self, predicate: Predicate) -> int:
        """Number of matching records."""
