"""
Per-module transmission limits.

Limits come from external configuration: a mapping, a JSON/YAML file, or
the file named by ``FULL_SYNC_LIMITS_FILE``. A module with no entry is a
configuration error for that module; no default is guessed.

Example limits file (YAML)::

    posts:
      chunk_size: 100
      max_chunks: 10
    comments:
      chunk_size: 250
      max_chunks: 4
"""

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationMissing, InvalidLimits

logger = logging.getLogger(__name__)

LIMITS_FILE_ENV = "FULL_SYNC_LIMITS_FILE"


def require_positive_int(value: Any, field_name: str) -> int:
    """Return ``value`` if it is a positive int, otherwise raise InvalidLimits."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidLimits(f"{field_name} must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidLimits(f"{field_name} must be greater than zero, got {value}")
    return value


@dataclass(frozen=True)
class TransmissionLimits:
    """How much one driver invocation may send for a module."""

    chunk_size: int
    max_chunks: int

    def __post_init__(self):
        require_positive_int(self.chunk_size, "chunk_size")
        require_positive_int(self.max_chunks, "max_chunks")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TransmissionLimits":
        try:
            return cls(chunk_size=data["chunk_size"], max_chunks=data["max_chunks"])
        except KeyError as e:
            raise InvalidLimits(f"Missing limit {e.args[0]!r}") from None


class LimitsSource:
    """Resolves ``TransmissionLimits`` by module name."""

    def __init__(self, settings: Mapping[str, Mapping[str, Any]] | None = None):
        """
        Args:
            settings: ``{module_name: {"chunk_size": int, "max_chunks": int}}``
        """
        self._settings = dict(settings or {})

    def limits_for(self, module_name: str) -> TransmissionLimits:
        """
        Limits configured for ``module_name``.

        Raises:
            ConfigurationMissing: If the module has no entry
            InvalidLimits: If the entry is incomplete or not positive integers
        """
        entry = self._settings.get(module_name)
        if entry is None:
            raise ConfigurationMissing(module_name)
        if not isinstance(entry, Mapping):
            raise ConfigurationMissing(module_name, f"expected a mapping, got {entry!r}")

        return TransmissionLimits.from_dict(entry)

    def modules(self) -> list[str]:
        return sorted(self._settings)

    @classmethod
    def from_file(cls, path: str | os.PathLike) -> "LimitsSource":
        """Load limits from a ``.json``, ``.yaml`` or ``.yml`` file."""
        path = Path(path)
        with open(path) as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                settings = yaml.safe_load(f) or {}
            else:
                settings = json.load(f)

        if not isinstance(settings, Mapping):
            raise InvalidLimits(f"Limits file {path} must contain a mapping of module names")

        logger.info(f"Loaded full sync limits for {len(settings)} module(s) from {path}")
        return cls(settings)

    @classmethod
    def from_env(cls) -> "LimitsSource":
        """
        Load limits from the file named by ``FULL_SYNC_LIMITS_FILE``.

        An unset variable yields an empty source, so every lookup reports
        ``ConfigurationMissing``.
        """
        path = os.getenv(LIMITS_FILE_ENV)
        if not path:
            logger.warning(f"{LIMITS_FILE_ENV} is not set; no full sync limits configured")
            return cls()
        return cls.from_file(path)
