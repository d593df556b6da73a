"""Generic module for records stored in a single SQL table."""

import logging
from collections.abc import Callable, Iterable
from typing import Any

from utils.sql_safety import validate_identifier, validate_schema_table

from .base import SyncModule

logger = logging.getLogger(__name__)

ObjectLoader = Callable[[str, int], Any]


class TableModule(SyncModule):
    """
    Sync module backed by one table with an integer id column.

    Args:
        name: Module name (``posts``, ``comments``, ...)
        table_name: ``table`` or ``schema.table``
        id_field: Integer id column
        object_loader: ``loader(object_type, object_id)`` returning the object or None
        events: Event names the module wants to hear about
    """

    def __init__(
        self,
        name: str,
        table_name: str,
        id_field: str = "id",
        object_loader: ObjectLoader | None = None,
        events: Iterable[str] = (),
    ):
        validate_schema_table(table_name)
        validate_identifier(id_field)

        self._name = name
        self.table_name = table_name
        self.id_field = id_field
        self.object_loader = object_loader
        self.events = tuple(events)

    @property
    def name(self) -> str:
        return self._name

    def get_object_by_id(self, object_type: str, object_id: int) -> Any:
        if self.object_loader is None:
            return None
        return self.object_loader(object_type, object_id)

    def init_listeners(self, register: Callable[[str, str], None]) -> None:
        for event in self.events:
            register(event, self.name)
        if self.events:
            logger.debug(f"Module {self.name} listening to {len(self.events)} event(s)")

    @classmethod
    def from_dict(cls, definition: dict[str, Any]) -> "TableModule":
        """
        Build a module from a definition mapping.

        Keys: ``name``, ``table`` and optionally ``id_field`` and ``events``.
        """
        try:
            return cls(
                name=definition["name"],
                table_name=definition["table"],
                id_field=definition.get("id_field", "id"),
                events=definition.get("events", ()),
            )
        except KeyError as e:
            raise ValueError(f"Module definition is missing {e.args[0]!r}: {definition!r}") from None
