"""
Sync modules: one per kind of synchronized record.

The engine depends only on ``SyncModule``; ``TableModule`` covers records
living in one SQL table.
"""

from .base import (
    FULL_SYNC_ACTION_PREFIX,
    INITIAL_LAST_SENT,
    Predicate,
    SyncModule,
    predicate_from_config,
)
from .registry import ModuleRegistry
from .table import TableModule

__all__ = [
    "SyncModule",
    "TableModule",
    "ModuleRegistry",
    "Predicate",
    "predicate_from_config",
    "INITIAL_LAST_SENT",
    "FULL_SYNC_ACTION_PREFIX",
]
