"""
Scheduled re-invocation of full syncs using APScheduler.
"""

from .jobs import full_sync_job, status_for_config
from .scheduler import FullSyncScheduler

__all__ = [
    "FullSyncScheduler",
    "full_sync_job",
    "status_for_config",
]
