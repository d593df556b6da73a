"""
APScheduler-based re-invocation of full syncs.

A full sync is driven by many short invocations. ``FullSyncScheduler``
re-runs each module's invocation on an interval and drops the job once
the module's status is finished.
"""

import logging
from collections.abc import Callable
from typing import Any

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..driver import FullSyncDriver
from ..modules.base import SyncModule
from ..status import FullSyncStateStore
from .jobs import full_sync_job

logger = logging.getLogger(__name__)


class FullSyncScheduler:
    """
    Scheduler for repeated full-sync invocations.

    Jobs for one module never overlap (``max_instances=1``), which keeps
    a single driver per module at a time.
    """

    def __init__(self, scheduler: BlockingScheduler | None = None, stop_when_idle: bool = True):
        """
        Args:
            scheduler: APScheduler instance (a BlockingScheduler by default)
            stop_when_idle: Shut down once every full-sync job has finished
        """
        self.scheduler = scheduler or BlockingScheduler()
        self.stop_when_idle = stop_when_idle
        self.jobs = []

    def add_interval_job(
        self,
        job_func: Callable,
        interval_seconds: int,
        job_id: str,
        **kwargs
    ) -> None:
        """
        Add a job that runs at fixed intervals

        Args:
            job_func: Function to execute
            interval_seconds: Interval in seconds
            job_id: Unique identifier for the job
            **kwargs: Additional arguments to pass to job_func
        """
        job = self.scheduler.add_job(
            job_func,
            trigger=IntervalTrigger(seconds=interval_seconds),
            id=job_id,
            kwargs=kwargs,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        self.jobs.append(job)
        logger.info(f"Added interval job '{job_id}' with {interval_seconds}s interval")

    def add_cron_job(
        self,
        job_func: Callable,
        cron_expression: str,
        job_id: str,
        **kwargs
    ) -> None:
        """
        Add a job that runs on a cron schedule

        Args:
            job_func: Function to execute
            cron_expression: Five-field cron expression, e.g. "*/5 * * * *"
            job_id: Unique identifier for the job
            **kwargs: Additional arguments to pass to job_func

        Raises:
            ValueError: If the expression does not have five fields
        """
        parts = cron_expression.split()

        if len(parts) != 5:
            raise ValueError(
                "Cron expression must have 5 parts: minute hour day month day_of_week"
            )

        minute, hour, day, month, day_of_week = parts

        job = self.scheduler.add_job(
            job_func,
            trigger=CronTrigger(
                minute=minute,
                hour=hour,
                day=day,
                month=month,
                day_of_week=day_of_week,
            ),
            id=job_id,
            kwargs=kwargs,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        self.jobs.append(job)
        logger.info(f"Added cron job '{job_id}' with schedule '{cron_expression}'")

    def add_full_sync_job(
        self,
        module: SyncModule,
        driver: FullSyncDriver,
        state_store: FullSyncStateStore,
        interval_seconds: int = 60,
        config: Any = None,
        time_budget_seconds: float = 30.0,
        cron_expression: str | None = None,
    ) -> str:
        """
        Re-invoke the full sync of ``module`` until its status is finished.

        Runs every ``interval_seconds``, or on ``cron_expression`` when given.
        Give each module its own driver: jobs of different modules run on
        separate scheduler threads.

        Returns:
            The job id (``full_sync_<module>``)
        """
        job_id = module.full_sync_action_name
        job_kwargs = {
            "module": module,
            "driver": driver,
            "state_store": state_store,
            "config": config,
            "time_budget_seconds": time_budget_seconds,
        }

        if cron_expression:
            self.add_cron_job(self._run_full_sync, cron_expression, job_id, **job_kwargs)
        else:
            self.add_interval_job(self._run_full_sync, interval_seconds, job_id, **job_kwargs)
        return job_id

    def _run_full_sync(self, **job_kwargs: Any) -> None:
        job_id = job_kwargs["module"].full_sync_action_name
        status = full_sync_job(**job_kwargs)

        if status.finished:
            logger.info(f"Full sync job '{job_id}' finished; removing it")
            self.remove_job(job_id)

            if self.stop_when_idle and not self.jobs:
                logger.info("All full sync jobs finished")
                self.scheduler.shutdown(wait=False)

    def remove_job(self, job_id: str) -> None:
        """
        Remove a scheduled job

        Args:
            job_id: Unique identifier of the job to remove
        """
        self.scheduler.remove_job(job_id)
        self.jobs = [job for job in self.jobs if job.id != job_id]
        logger.info(f"Removed job '{job_id}'")

    def start(self) -> None:
        """
        Start the scheduler

        This blocks the current thread until the scheduler is shut down.
        """
        logger.info("Starting full sync scheduler...")
        logger.info(f"Scheduled {len(self.jobs)} job(s)")

        try:
            self.scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            logger.info("Scheduler stopped by user")
            self.stop()

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown()
        logger.info("Scheduler stopped")

    def list_jobs(self) -> list[dict[str, Any]]:
        """
        List all scheduled jobs

        Returns:
            List of job information dictionaries
        """
        job_list = []

        for job in self.scheduler.get_jobs():
            next_run_time = getattr(job, "next_run_time", None)
            job_list.append({
                "id": job.id,
                "name": job.name,
                "next_run_time": next_run_time.isoformat() if next_run_time else None,
                "trigger": str(job.trigger),
            })

        return job_list
