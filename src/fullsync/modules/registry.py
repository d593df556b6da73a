"""Name-to-module lookup and listener wiring."""

import json
import logging
import os
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path

import yaml

from fullsync.exceptions import UnknownModule

from .base import SyncModule
from .table import TableModule

logger = logging.getLogger(__name__)


class ModuleRegistry:
    """Holds the sync modules known to a process, keyed by name."""

    def __init__(self, modules: Iterable[SyncModule] = ()):
        self._modules: dict[str, SyncModule] = {}
        for module in modules:
            self.register(module)

    def register(self, module: SyncModule) -> None:
        if module.name in self._modules:
            logger.warning(f"Replacing registered module {module.name!r}")
        self._modules[module.name] = module

    def get(self, name: str) -> SyncModule:
        try:
            return self._modules[name]
        except KeyError:
            raise UnknownModule(f"No sync module named {name!r}") from None

    def names(self) -> list[str]:
        return sorted(self._modules)

    def init_listeners(self, register: Callable[[str, str], None]) -> None:
        """Let every module register its events with the orchestrator."""
        for module in self._modules.values():
            module.init_listeners(register)

    def __contains__(self, name: object) -> bool:
        return name in self._modules

    def __iter__(self) -> Iterator[SyncModule]:
        return iter(self._modules.values())

    def __len__(self) -> int:
        return len(self._modules)

    @classmethod
    def from_file(cls, path: str | os.PathLike) -> "ModuleRegistry":
        """
        Load table modules from a JSON or YAML list of definitions.

        Example (YAML)::

            - name: posts
              table: public.posts
            - name: comments
              table: public.comments
              id_field: comment_id
        """
        path = Path(path)
        with open(path) as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                definitions = yaml.safe_load(f) or []
            else:
                definitions = json.load(f)

        if not isinstance(definitions, list):
            raise ValueError(f"Module file {path} must contain a list of module definitions")

        registry = cls(TableModule.from_dict(definition) for definition in definitions)
        logger.info(f"Loaded {len(registry)} sync module(s) from {path}")
        return registry
