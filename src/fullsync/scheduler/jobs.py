"""
Job functions for scheduled full-sync invocations.

Each run loads the persisted status, gives the driver one time-boxed
invocation and persists whatever status comes back. The checksum of the
configuration is stored next to the status; an in-progress sync whose
configuration changed starts over from the top, since its cursor walked
a different selection.
"""

import logging
import time
from collections.abc import Callable
from typing import Any

from ..checksum import checksum, still_valid_checksum
from ..driver import FullSyncDriver
from ..exceptions import StoreUnavailable
from ..modules.base import SyncModule
from ..status import FullSyncStateStore, FullSyncStatus

logger = logging.getLogger(__name__)

CONFIG_CHECKSUM = "config"


def status_for_config(
    module: SyncModule,
    state_store: FullSyncStateStore,
    config: Any,
    status: FullSyncStatus,
) -> FullSyncStatus:
    """
    Check the stored status against the configuration it was built with.

    Returns ``status`` when the configuration is unchanged (or none was
    recorded yet). A started, unfinished status recorded under another
    configuration is reset and the reset is persisted.
    """
    config_sum = checksum(config)
    known_sums = state_store.get_checksums(module.name)

    if still_valid_checksum(known_sums, CONFIG_CHECKSUM, config_sum):
        return status

    if status.started and CONFIG_CHECKSUM in known_sums:
        logger.warning(
            f"Full sync configuration of {module.name} changed "
            f"after {status.sent} id(s); restarting from the top"
        )
        status = FullSyncStatus()
        state_store.save_status(module.name, status)

    state_store.save_checksum(module.name, CONFIG_CHECKSUM, config_sum)
    return status


def full_sync_job(
    module: SyncModule,
    driver: FullSyncDriver,
    state_store: FullSyncStateStore,
    config: Any = None,
    time_budget_seconds: float = 30.0,
    clock: Callable[[], float] = time.time,
) -> FullSyncStatus:
    """
    Run one invocation of the full sync of ``module`` and persist the result.

    Args:
        module: Module to synchronize
        driver: Driver wired to a store, sender and limits
        state_store: Where the status lives between invocations
        config: Full-sync configuration for the module
        time_budget_seconds: Wall-clock budget for this invocation
        clock: Returns the current time in epoch seconds

    Returns:
        The status after this invocation

    Raises:
        StoreUnavailable: The store failed; progress made before the failure is saved
        ConfigurationMissing: No limits configured for the module
    """
    status = state_store.load_status(module.name)
    if status.finished:
        logger.info(f"Full sync of {module.name} already finished; nothing to do")
        return status

    status = status_for_config(module, state_store, config, status)

    send_until = clock() + time_budget_seconds
    logger.info(
        f"Starting full sync invocation for {module.name} "
        f"(last_sent={status.last_sent}, sent={status.sent}, budget={time_budget_seconds}s)"
    )

    try:
        new_status = driver.send_full_sync_actions(module, config, status, send_until)
    except StoreUnavailable as e:
        logger.error(f"Full sync invocation for {module.name} aborted: {e}")
        if e.status is not None and e.status != status:
            state_store.save_status(module.name, e.status)
            logger.info(
                f"Saved progress of {module.name} made before the failure: "
                f"last_sent={e.status.last_sent}, sent={e.status.sent}"
            )
        raise

    if new_status != status:
        state_store.save_status(module.name, new_status)

    logger.info(
        f"Full sync invocation for {module.name} done: "
        f"last_sent={new_status.last_sent}, sent={new_status.sent}, "
        f"finished={new_status.finished}"
    )
    return new_status
