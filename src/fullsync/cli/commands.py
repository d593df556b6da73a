"""
CLI command implementations.

- run: one time-boxed full sync invocation
- status: print stored progress
- reset: forget stored progress
- partition: print batch ranges, or send them in parallel
- schedule: re-invoke on an interval or cron schedule until finished
"""

import argparse
import json
import logging
import sys
import threading
import time
from pathlib import Path
from typing import Any

from utils.metrics import ApplicationInfo, MetricsPublisher

from .. import __version__
from ..driver import FullSyncDriver
from ..exceptions import FullSyncError, StoreUnavailable
from ..limits import LimitsSource
from ..modules import ModuleRegistry, SyncModule
from ..parallel import create_parallel_batch_job, estimate_optimal_workers, send_batch_range
from ..partition import BatchRange, get_min_max_object_ids_for_batches
from ..scheduler import FullSyncScheduler, full_sync_job
from ..status import FullSyncStateStore
from ..store import SqlIdStore
from ..transport import HttpTransportSender
from .connections import connect, get_connection_config

logger = logging.getLogger(__name__)

# Failures reported as a logged exit status instead of a traceback
CLI_ERRORS = (FullSyncError, OSError, ValueError)


def parse_config(raw: str | None) -> Any:
    """Decode the ``--config`` JSON argument; None selects everything."""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error(f"--config is not valid JSON: {e}")
        sys.exit(2)


def load_registry(args: argparse.Namespace) -> ModuleRegistry:
    if not args.modules_file:
        logger.error("No module definitions: pass --modules-file or set FULLSYNC_MODULES_FILE")
        sys.exit(2)
    return ModuleRegistry.from_file(args.modules_file)


def load_limits(args: argparse.Namespace) -> LimitsSource:
    if args.limits_file:
        return LimitsSource.from_file(args.limits_file)
    return LimitsSource.from_env()


def _start_metrics(args: argparse.Namespace) -> None:
    if getattr(args, "metrics_port", None):
        ApplicationInfo(version=__version__)
        MetricsPublisher(port=args.metrics_port).start()


def _require_endpoint(args: argparse.Namespace) -> None:
    if not args.endpoint:
        logger.error("No endpoint: pass --endpoint or set FULLSYNC_ENDPOINT")
        sys.exit(2)


def _build_sender(args: argparse.Namespace) -> HttpTransportSender:
    _require_endpoint(args)
    return HttpTransportSender(args.endpoint, token=args.token)


def _open_store(args: argparse.Namespace) -> tuple[SqlIdStore, Any]:
    config = get_connection_config(args)
    try:
        connection = connect(config)
    except Exception as e:
        raise StoreUnavailable(f"Cannot connect to {config['db_type']}: {e}") from e
    return SqlIdStore(connection, db_type=config["db_type"]), connection


def _close_all(resources: list[Any]) -> None:
    for resource in reversed(resources):
        resource.close()


def cmd_run(args: argparse.Namespace) -> None:
    """
    Run one full sync invocation and persist the resulting status

    Args:
        args: Parsed command-line arguments
    """
    registry = load_registry(args)
    config = parse_config(args.config)
    state_store = FullSyncStateStore(args.state_dir)

    _start_metrics(args)
    resources: list[Any] = []

    try:
        module = registry.get(args.module)
        limits = load_limits(args)
        sender = _build_sender(args)
        resources.append(sender)
        store, connection = _open_store(args)
        resources.append(connection)

        driver = FullSyncDriver(store, sender, limits)
        status = full_sync_job(
            module,
            driver,
            state_store,
            config=config,
            time_budget_seconds=args.time_budget,
        )
    except CLI_ERRORS as e:
        logger.error(f"Full sync of {args.module} failed: {e}")
        sys.exit(1)
    finally:
        _close_all(resources)

    print(json.dumps({"module": module.name, **status.to_dict()}))


def cmd_status(args: argparse.Namespace) -> None:
    """
    Print stored status of one module, or of every module with stored state

    Args:
        args: Parsed command-line arguments
    """
    state_store = FullSyncStateStore(args.state_dir)
    names = [args.module] if args.module else state_store.list_modules()

    if not names:
        print("No full sync state stored")
        return

    for name in names:
        status = state_store.load_status(name)
        if status.finished:
            state = "finished"
        elif status.started:
            state = "in progress"
        else:
            state = "not started"
        print(f"{name}: {state} (last_sent={status.last_sent}, sent={status.sent})")


def cmd_reset(args: argparse.Namespace) -> None:
    """
    Forget stored status so the next run starts from the top

    Args:
        args: Parsed command-line arguments
    """
    state_store = FullSyncStateStore(args.state_dir)
    state_store.clear_status(args.module)
    print(f"Reset full sync state of {args.module}")


def send_range_worker(
    batch: BatchRange,
    cancellation_token: threading.Event,
    args: argparse.Namespace,
    module: SyncModule,
    chunk_size: int,
    config: Any = None,
) -> dict[str, Any]:
    """Batch worker with its own store connection and sender."""
    resources: list[Any] = []
    try:
        sender = _build_sender(args)
        resources.append(sender)
        store, connection = _open_store(args)
        resources.append(connection)
        return send_batch_range(
            batch, cancellation_token, module, store, sender, chunk_size, config=config
        )
    finally:
        _close_all(resources)


def _send_ranges(
    args: argparse.Namespace,
    module: SyncModule,
    ranges: list[BatchRange],
    config: Any,
) -> None:
    _require_endpoint(args)
    try:
        chunk_size = load_limits(args).limits_for(module.name).chunk_size
    except CLI_ERRORS as e:
        logger.error(f"Cannot send batch ranges of {module.name}: {e}")
        sys.exit(1)

    workers = args.workers or estimate_optimal_workers(len(ranges))
    job = create_parallel_batch_job(
        send_range_worker,
        max_workers=workers,
        timeout_per_batch=args.timeout_per_batch,
        fail_fast=args.fail_fast,
        module_name=module.name,
    )
    results = job(ranges, args=args, module=module, chunk_size=chunk_size, config=config)

    print(json.dumps({
        "module": module.name,
        "batches": results["total_batches"],
        "successful": results["successful"],
        "failed": results["failed"],
        "timeout": results["timeout"],
        "sent": sum(result.get("sent", 0) for result in results["results"]),
        "errors": results["errors"],
    }, indent=2))

    if results["failed"] or results["timeout"]:
        sys.exit(1)


def cmd_partition(args: argparse.Namespace) -> None:
    """
    Print batch ranges of the module's matching ids as JSON, or send every
    range in parallel with ``--send``

    Args:
        args: Parsed command-line arguments
    """
    registry = load_registry(args)
    config = parse_config(args.config)
    resources: list[Any] = []

    try:
        module = registry.get(args.module)
        store, connection = _open_store(args)
        resources.append(connection)
        ranges = get_min_max_object_ids_for_batches(
            module, store, args.batch_size, config=config
        )
    except CLI_ERRORS as e:
        logger.error(f"Partitioning {args.module} failed: {e}")
        sys.exit(1)
    finally:
        _close_all(resources)

    if args.send:
        if not ranges:
            logger.warning(f"No batch ranges to send for {module.name}")
            ranges = []
        _send_ranges(args, module, ranges, config)
        return

    output = json.dumps(
        None if ranges is None else [batch.to_dict() for batch in ranges], indent=2
    )

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(output)
        logger.info(f"Batch ranges written to {output_path}")
    else:
        print(output)


def cmd_schedule(args: argparse.Namespace) -> None:
    """
    Re-invoke the full sync of each module until all are finished

    Every module gets its own driver, store connection and sender, since
    the scheduler runs jobs of different modules on separate threads.

    Args:
        args: Parsed command-line arguments
    """
    registry = load_registry(args)
    config = parse_config(args.config)
    state_store = FullSyncStateStore(args.state_dir)

    _start_metrics(args)
    scheduler = FullSyncScheduler()
    resources: list[Any] = []

    try:
        modules = [registry.get(name) for name in args.module]
        limits = load_limits(args)

        for module in modules:
            sender = _build_sender(args)
            resources.append(sender)
            store, connection = _open_store(args)
            resources.append(connection)

            scheduler.add_full_sync_job(
                module,
                FullSyncDriver(store, sender, limits, clock=time.time),
                state_store,
                interval_seconds=args.interval,
                config=config,
                time_budget_seconds=args.time_budget,
                cron_expression=args.cron,
            )
    except CLI_ERRORS as e:
        logger.error(f"Scheduling full sync failed: {e}")
        _close_all(resources)
        sys.exit(1)

    schedule = f"on '{args.cron}'" if args.cron else f"every {args.interval}s"
    logger.info(
        f"Scheduled full sync of {', '.join(m.name for m in modules)} {schedule}"
    )

    try:
        scheduler.start()
    finally:
        _close_all(resources)
