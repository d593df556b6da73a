"""
Full-sync progress records and their file-backed store.

A ``FullSyncStatus`` is the resumable cursor of one module's full sync.
``FullSyncStateStore`` keeps one JSON document per module in a state
directory, together with the checksums last recorded for that module.
"""

import json
import logging
import os
import re
import tempfile
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any

from opentelemetry import trace
from prometheus_client import Counter

from utils.metrics import get_or_create_metric
from utils.tracing import trace_operation

from .exceptions import StatusFinalized

logger = logging.getLogger(__name__)


STATE_OPERATIONS = get_or_create_metric(
    lambda: Counter(
        "fullsync_state_operations_total",
        "Full sync state file operations",
        ["operation"],  # load, save, clear
    ),
    "fullsync_state_operations_total",
)


@dataclass(frozen=True)
class FullSyncStatus:
    """
    Progress of one module's full sync.

    Attributes:
        last_sent: Smallest id transmitted so far, or None before the first chunk
        sent: Number of ids transmitted so far
        finished: True once extraction returned an empty chunk
    """

    last_sent: int | None = None
    sent: int = 0
    finished: bool = False

    @property
    def started(self) -> bool:
        return self.last_sent is not None

    def advance(self, chunk: list[int]) -> "FullSyncStatus":
        """Status after ``chunk`` (descending ids) was transmitted."""
        return replace(self, last_sent=chunk[-1], sent=self.sent + len(chunk))

    def finish(self) -> "FullSyncStatus":
        return replace(self, finished=True)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "FullSyncStatus":
        """Build a status from a stored mapping; missing keys take defaults."""
        if not data:
            return cls()

        last_sent = data.get("last_sent")
        return cls(
            last_sent=int(last_sent) if last_sent is not None else None,
            sent=int(data.get("sent", 0)),
            finished=bool(data.get("finished", False)),
        )


class FullSyncStateStore:
    """
    JSON file store for full-sync statuses and known checksums.

    Each module gets ``<module>_full_sync.json``:
    ``{"module": ..., "status": {...}, "checksums": {...}}``.
    Writes go through a temp file and ``os.replace`` so a crash never
    leaves a half-written status behind.
    """

    def __init__(self, state_dir: str = "./fullsync_state"):
        """
        Args:
            state_dir: Directory holding one state file per module
        """
        self.state_dir = Path(state_dir)
        self.state_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Initialized full sync state store in {self.state_dir}")

    def load_status(self, module_name: str) -> FullSyncStatus:
        """Return the stored status, or a not-started status if none exists."""
        with trace_operation(
            "load_full_sync_status",
            kind=trace.SpanKind.INTERNAL,
            module=module_name,
        ):
            document = self._read(module_name)
            STATE_OPERATIONS.labels(operation="load").inc()
            return FullSyncStatus.from_dict(document.get("status"))

    def save_status(self, module_name: str, status: FullSyncStatus) -> None:
        """
        Persist ``status``.

        Raises:
            StatusFinalized: If the stored status is finished and ``status`` differs
        """
        with trace_operation(
            "save_full_sync_status",
            kind=trace.SpanKind.INTERNAL,
            module=module_name,
            finished=status.finished,
        ):
            document = self._read(module_name)
            current = FullSyncStatus.from_dict(document.get("status"))

            if current.finished and current != status:
                raise StatusFinalized(
                    f"Full sync of {module_name!r} is finished; clear it before restarting"
                )

            document["module"] = module_name
            document["status"] = status.to_dict()
            self._write(module_name, document)

            STATE_OPERATIONS.labels(operation="save").inc()
            logger.debug(
                f"Saved full sync status for {module_name}: "
                f"last_sent={status.last_sent}, sent={status.sent}, finished={status.finished}"
            )

    def clear_status(self, module_name: str) -> None:
        """Forget the status (and checksums) of a module."""
        state_file = self._get_state_file(module_name)

        if state_file.exists():
            state_file.unlink()
            STATE_OPERATIONS.labels(operation="clear").inc()
            logger.info(f"Cleared full sync state for module {module_name}")

    def get_checksums(self, module_name: str) -> dict[str, int]:
        return dict(self._read(module_name).get("checksums", {}))

    def save_checksum(self, module_name: str, name: str, value: int) -> None:
        """Record the checksum last seen under ``name`` for a module."""
        document = self._read(module_name)
        document["module"] = module_name
        document.setdefault("checksums", {})[name] = int(value)
        self._write(module_name, document)

    def list_modules(self) -> list[str]:
        """Names of all modules with stored state."""
        modules = []
        for state_file in self.state_dir.glob("*_full_sync.json"):
            try:
                with open(state_file) as f:
                    modules.append(json.load(f)["module"])
            except (json.JSONDecodeError, KeyError, OSError) as e:
                logger.warning(f"Skipping unreadable state file {state_file}: {e}")
        return sorted(modules)

    def _read(self, module_name: str) -> dict[str, Any]:
        state_file = self._get_state_file(module_name)

        if not state_file.exists():
            return {}

        try:
            with open(state_file) as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            # Corrupt state restarts the module rather than blocking it forever
            logger.warning(f"Corrupt full sync state for {module_name}: {e}")
            return {}

    def _write(self, module_name: str, document: dict[str, Any]) -> None:
        state_file = self._get_state_file(module_name)
        fd, tmp_path = tempfile.mkstemp(dir=self.state_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(document, f, indent=2, sort_keys=True)
            os.replace(tmp_path, state_file)
        except Exception as e:
            logger.error(f"Failed to save full sync state for {module_name}: {e}")
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _get_state_file(self, module_name: str) -> Path:
        """State file path for a module, with filesystem-unsafe characters replaced."""
        safe_name = re.sub(r'[/\\:*?"<>|\s]', "_", module_name)
        return self.state_dir / f"{safe_name}_full_sync.json"
