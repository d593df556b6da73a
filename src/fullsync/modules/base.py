"""
Entity-kind capability interface.

Everything the engine needs to know about one kind of record (its id
column, its table, how a full-sync configuration narrows it, how single
objects are loaded) lives on a ``SyncModule``. The extractor, driver and
partitioner only talk to this interface.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fullsync.store.base import IdStore

logger = logging.getLogger(__name__)

# Cursor before the first chunk: above every id a BIGINT column can hold
INITIAL_LAST_SENT = 2**63 - 1

FULL_SYNC_ACTION_PREFIX = "full_sync_"

Filters = tuple[tuple[str, tuple[Any, ...]], ...]


@dataclass(frozen=True)
class Predicate:
    """
    Dialect-independent selection of the records in scope.

    Attributes:
        table: Table (or ``schema.table``) holding the records
        id_field: Integer id column
        include: ``((column, values), ...)``; a record must match one value per column
        exclude: ``((column, values), ...)``; a record must match none of them
        ids: Explicit id allow-list, or None for no id restriction
    """

    table: str
    id_field: str = "id"
    include: Filters = ()
    exclude: Filters = ()
    ids: tuple[int, ...] | None = None

    def matches(self, record: Mapping[str, Any]) -> bool:
        """Evaluate the predicate against one record mapping."""
        if self.ids is not None and record.get(self.id_field) not in self.ids:
            return False

        for column, values in self.include:
            if record.get(column) not in values:
                return False

        for column, values in self.exclude:
            if record.get(column) in values:
                return False

        return True

    @property
    def is_empty_selection(self) -> bool:
        """True when an explicit, empty id list selects nothing."""
        return self.ids is not None and not self.ids


def _as_filters(mapping: Mapping[str, Any]) -> Filters:
    filters = []
    for column in sorted(mapping):
        value = mapping[column]
        if isinstance(value, (list, tuple, set, frozenset)):
            values = tuple(sorted(value, key=repr))
        else:
            values = (value,)
        filters.append((column, values))
    return tuple(filters)


def predicate_from_config(table: str, id_field: str, config: Any) -> Predicate:
    """
    Translate a full-sync configuration into a ``Predicate``.

    ``None`` or ``True`` selects everything; a list of ints selects those
    ids; a mapping selects by column value, with an optional ``"exclude"``
    mapping for values to leave out.
    """
    if config is None or config is True:
        return Predicate(table=table, id_field=id_field)

    if isinstance(config, Mapping):
        config = dict(config)
        exclude = config.pop("exclude", None) or {}
        ids = config.pop("ids", None)
        return Predicate(
            table=table,
            id_field=id_field,
            include=_as_filters(config),
            exclude=_as_filters(exclude),
            ids=tuple(sorted({int(i) for i in ids})) if ids is not None else None,
        )

    if isinstance(config, (list, tuple, set, frozenset)):
        return Predicate(
            table=table,
            id_field=id_field,
            ids=tuple(sorted({int(i) for i in config})),
        )

    raise ValueError(f"Unsupported full sync configuration: {config!r}")


class SyncModule(ABC):
    """
    One kind of synchronized record.

    Subclasses name themselves and, when their records live in a table,
    set ``table_name``. A module without a table can still be listened to
    but cannot be extracted or partitioned.
    """

    id_field: str = "id"
    table_name: str | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Module name; also the suffix of its full-sync action."""

    def is_addressable(self) -> bool:
        return bool(self.table_name)

    def build_predicate(self, config: Any = None) -> Predicate:
        """
        Predicate selecting the records ``config`` puts in scope.

        Raises:
            ValueError: If the module has no table
        """
        if not self.table_name:
            raise ValueError(f"Module {self.name!r} has no table to query")
        return predicate_from_config(self.table_name, self.id_field, config)

    def initial_last_sent(self) -> int:
        return INITIAL_LAST_SENT

    @property
    def full_sync_action_name(self) -> str:
        return f"{FULL_SYNC_ACTION_PREFIX}{self.name}"

    def full_sync_actions(self) -> list[str]:
        """Actions this module emits during a full sync."""
        return [self.full_sync_action_name]

    @staticmethod
    def count_actions(action_names: Iterable[str], actions_to_count: Iterable[str]) -> int:
        """How many of ``action_names`` appear in ``actions_to_count``."""
        wanted = set(actions_to_count)
        return sum(1 for action in action_names if action in wanted)

    def get_object_by_id(self, object_type: str, object_id: int) -> Any:
        """Load one object, or None when it cannot be found."""
        return None

    def get_objects_by_id(self, object_type: str, ids: Iterable[int]) -> dict[int, Any]:
        """Load several objects; ids that cannot be loaded are left out."""
        if not object_type:
            return {}

        objects = {}
        for object_id in ids or ():
            obj = self.get_object_by_id(object_type, object_id)
            if obj:
                objects[object_id] = obj
        return objects

    def total(self, store: "IdStore", config: Any = None) -> int:
        """Number of records ``config`` puts in scope."""
        return store.query_count(self.build_predicate(config))

    def init_listeners(self, register: Callable[[str, str], None]) -> None:
        """
        Hook the module into the surrounding event system.

        ``register(event_name, module_name)`` is supplied by the orchestrator.
        """

    def init_before_send(self) -> None:
        """Prepare the module before a send run."""

    def set_defaults(self) -> None:
        """Reset module settings to their defaults."""

    def reset_data(self) -> None:
        """Drop any data the module keeps between runs."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} table={self.table_name!r}>"
