"""
Unit tests for the full sync scheduler

Tests verify:
- FullSyncScheduler initialization
- Interval and cron job scheduling
- Job management (list, remove)
- Scheduler lifecycle (start, stop)
- full_sync_job load/run/save cycle
- Jobs removed once their module is finished

APScheduler is mocked; no job actually waits on a trigger.
"""

from datetime import datetime
from unittest.mock import MagicMock, Mock, patch

import pytest
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from fullsync.checksum import checksum
from fullsync.driver import FullSyncDriver
from fullsync.exceptions import StoreUnavailable
from fullsync.limits import LimitsSource
from fullsync.scheduler import FullSyncScheduler, full_sync_job, status_for_config
from fullsync.scheduler.jobs import CONFIG_CHECKSUM
from fullsync.status import FullSyncStateStore, FullSyncStatus


@pytest.fixture
def mock_scheduler():
    scheduler = MagicMock()
    scheduler.running = False

    def add_job(func, trigger, id, **kwargs):
        job = Mock()
        job.id = id
        return job

    scheduler.add_job.side_effect = add_job
    return scheduler


@pytest.fixture
def state_store(tmp_path):
    return FullSyncStateStore(str(tmp_path / "state"))


@pytest.fixture
def driver(posts_store, sender, limits, clock):
    return FullSyncDriver(posts_store, sender, limits, clock=clock)


# ============================================================================
# Test FullSyncScheduler
# ============================================================================

class TestFullSyncSchedulerInit:
    """Test scheduler initialization"""

    def test_creates_blocking_scheduler(self):
        with patch("fullsync.scheduler.scheduler.BlockingScheduler") as mock_blocking:
            scheduler = FullSyncScheduler()

        mock_blocking.assert_called_once()
        assert scheduler.jobs == []
        assert scheduler.stop_when_idle is True

    def test_accepts_existing_scheduler(self, mock_scheduler):
        assert FullSyncScheduler(mock_scheduler).scheduler is mock_scheduler


class TestJobScheduling:
    """Test interval and cron jobs"""

    def test_add_interval_job(self, mock_scheduler):
        scheduler = FullSyncScheduler(mock_scheduler)
        job_func = Mock()

        scheduler.add_interval_job(job_func, 60, "posts_job", module="posts")

        kwargs = mock_scheduler.add_job.call_args.kwargs
        assert mock_scheduler.add_job.call_args.args == (job_func,)
        assert isinstance(kwargs["trigger"], IntervalTrigger)
        assert kwargs["id"] == "posts_job"
        assert kwargs["kwargs"] == {"module": "posts"}
        assert kwargs["max_instances"] == 1
        assert kwargs["replace_existing"] is True
        assert len(scheduler.jobs) == 1

    def test_add_cron_job(self, mock_scheduler):
        scheduler = FullSyncScheduler(mock_scheduler)

        scheduler.add_cron_job(Mock(), "*/5 * * * *", "cron_job")

        assert isinstance(mock_scheduler.add_job.call_args.kwargs["trigger"], CronTrigger)
        assert scheduler.jobs[0].id == "cron_job"

    @pytest.mark.parametrize("expression", ["* * *", "0 0 * * * *", ""])
    def test_invalid_cron_expression(self, mock_scheduler, expression):
        with pytest.raises(ValueError, match="5 parts"):
            FullSyncScheduler(mock_scheduler).add_cron_job(Mock(), expression, "bad")

    def test_remove_job(self, mock_scheduler):
        scheduler = FullSyncScheduler(mock_scheduler)
        scheduler.add_interval_job(Mock(), 60, "a")
        scheduler.add_interval_job(Mock(), 60, "b")

        scheduler.remove_job("a")

        mock_scheduler.remove_job.assert_called_once_with("a")
        assert [job.id for job in scheduler.jobs] == ["b"]

    def test_list_jobs(self, mock_scheduler):
        job = Mock()
        job.id = "full_sync_posts"
        job.name = "_run_full_sync"
        job.next_run_time = datetime(2024, 1, 1, 12, 0, 0)
        job.trigger = "interval[0:01:00]"
        mock_scheduler.get_jobs.return_value = [job]

        jobs = FullSyncScheduler(mock_scheduler).list_jobs()

        assert jobs == [{
            "id": "full_sync_posts",
            "name": "_run_full_sync",
            "next_run_time": "2024-01-01T12:00:00",
            "trigger": "interval[0:01:00]",
        }]


class TestSchedulerLifecycle:
    """Test start and stop"""

    def test_start(self, mock_scheduler):
        FullSyncScheduler(mock_scheduler).start()

        mock_scheduler.start.assert_called_once()

    def test_keyboard_interrupt_stops(self, mock_scheduler):
        mock_scheduler.start.side_effect = KeyboardInterrupt
        mock_scheduler.running = True

        FullSyncScheduler(mock_scheduler).start()

        mock_scheduler.shutdown.assert_called_once()

    def test_stop_when_not_running(self, mock_scheduler):
        FullSyncScheduler(mock_scheduler).stop()

        mock_scheduler.shutdown.assert_not_called()


# ============================================================================
# Test full sync jobs
# ============================================================================

class TestFullSyncJob:
    """Test full_sync_job"""

    def test_runs_and_persists(self, posts_module, driver, state_store, sender):
        status = full_sync_job(posts_module, driver, state_store, time_budget_seconds=60)

        assert status == FullSyncStatus(last_sent=71, sent=30)
        assert state_store.load_status("posts") == status
        assert len(sender.chunks) == 3

    def test_resumes_from_stored_status(self, posts_module, driver, state_store, sender):
        state_store.save_status("posts", FullSyncStatus(last_sent=21, sent=80))

        status = full_sync_job(posts_module, driver, state_store)

        assert status == FullSyncStatus(last_sent=1, sent=100, finished=True)
        assert sender.chunks[0][0] == 20

    def test_finished_status_skips_driver(self, posts_module, state_store):
        finished = FullSyncStatus(last_sent=1, sent=100, finished=True)
        state_store.save_status("posts", finished)
        driver = Mock()

        assert full_sync_job(posts_module, driver, state_store) == finished
        driver.send_full_sync_actions.assert_not_called()

    def test_deadline_from_budget(self, posts_module, state_store, clock):
        driver = Mock()
        driver.send_full_sync_actions.return_value = FullSyncStatus()

        full_sync_job(
            posts_module, driver, state_store,
            config={"status": "publish"}, time_budget_seconds=15, clock=clock,
        )

        driver.send_full_sync_actions.assert_called_once_with(
            posts_module, {"status": "publish"}, FullSyncStatus(), 1_015.0
        )

    def test_store_failure_leaves_stored_status(self, posts_module, posts_store, sender, limits, state_store):
        state_store.save_status("posts", FullSyncStatus(last_sent=50, sent=50))
        posts_store.fail_queries = True
        driver = FullSyncDriver(posts_store, sender, limits)

        with pytest.raises(StoreUnavailable):
            full_sync_job(posts_module, driver, state_store)

        assert state_store.load_status("posts") == FullSyncStatus(last_sent=50, sent=50)

    def test_store_failure_mid_run_saves_sent_progress(
        self, posts_module, posts_store, sender, limits, state_store
    ):
        query = posts_store.query_ids_descending
        calls = []

        def fail_on_third_query(*args, **kwargs):
            calls.append(args)
            if len(calls) == 3:
                raise StoreUnavailable("connection reset")
            return query(*args, **kwargs)

        driver = FullSyncDriver(posts_store, sender, limits)
        with patch.object(posts_store, "query_ids_descending", side_effect=fail_on_third_query):
            with pytest.raises(StoreUnavailable):
                full_sync_job(posts_module, driver, state_store)

        assert state_store.load_status("posts") == FullSyncStatus(last_sent=81, sent=20)

        # The next invocation continues below 81 without resending
        full_sync_job(posts_module, driver, state_store)
        sent_ids = [i for chunk in sender.chunks for i in chunk]
        assert len(sent_ids) == len(set(sent_ids)) == 50


class TestConfigChecksum:
    """Test the stored configuration checksum"""

    def test_first_run_records_config_checksum(self, posts_module, driver, state_store):
        full_sync_job(posts_module, driver, state_store, config={"status": "publish"})

        assert state_store.get_checksums("posts") == {
            CONFIG_CHECKSUM: checksum({"status": "publish"})
        }

    def test_same_config_resumes(self, posts_module, driver, state_store, sender):
        full_sync_job(posts_module, driver, state_store, config={"status": "publish"})
        full_sync_job(posts_module, driver, state_store, config={"status": "publish"})

        sent_ids = [i for chunk in sender.chunks for i in chunk]
        assert sent_ids == list(range(99, 0, -2))[:len(sent_ids)]
        assert len(sent_ids) == len(set(sent_ids))

    def test_changed_config_restarts_in_progress_sync(self, posts_module, driver, state_store, sender):
        full_sync_job(posts_module, driver, state_store, config={"status": "publish"})

        status = full_sync_job(posts_module, driver, state_store, config={"status": "draft"})

        assert status == FullSyncStatus(last_sent=42, sent=30)
        assert sender.chunks[3][0] == 100
        assert state_store.get_checksums("posts")[CONFIG_CHECKSUM] == checksum({"status": "draft"})

    def test_status_without_recorded_config_is_kept(self, posts_module, state_store):
        stored = FullSyncStatus(last_sent=50, sent=50)
        state_store.save_status("posts", stored)

        assert status_for_config(posts_module, state_store, None, stored) == stored
        assert state_store.get_checksums("posts") == {CONFIG_CHECKSUM: checksum(None)}

    def test_finished_sync_ignores_config_change(self, posts_module, state_store):
        finished = FullSyncStatus(last_sent=1, sent=100, finished=True)
        state_store.save_status("posts", finished)
        state_store.save_checksum("posts", CONFIG_CHECKSUM, checksum(None))
        driver = Mock()

        assert full_sync_job(posts_module, driver, state_store, config=[1, 2]) == finished
        driver.send_full_sync_actions.assert_not_called()


class TestAddFullSyncJob:
    """Test re-invocation until finished"""

    def test_job_id_and_kwargs(self, mock_scheduler, posts_module, driver, state_store):
        scheduler = FullSyncScheduler(mock_scheduler)

        job_id = scheduler.add_full_sync_job(
            posts_module, driver, state_store, interval_seconds=30, time_budget_seconds=5
        )

        assert job_id == "full_sync_posts"
        kwargs = mock_scheduler.add_job.call_args.kwargs["kwargs"]
        assert kwargs["module"] is posts_module
        assert kwargs["time_budget_seconds"] == 5

    def test_cron_full_sync_job(self, mock_scheduler, posts_module, driver, state_store):
        scheduler = FullSyncScheduler(mock_scheduler)

        scheduler.add_full_sync_job(
            posts_module, driver, state_store, cron_expression="*/10 * * * *"
        )

        call = mock_scheduler.add_job.call_args
        assert isinstance(call.kwargs["trigger"], CronTrigger)
        assert call.kwargs["id"] == "full_sync_posts"
        assert call.kwargs["kwargs"]["module"] is posts_module

    def test_runs_until_finished_then_removes_job(
        self, mock_scheduler, posts_module, posts_store, sender, state_store, clock
    ):
        driver = FullSyncDriver(
            posts_store, sender, LimitsSource({"posts": {"chunk_size": 25, "max_chunks": 2}}),
            clock=clock,
        )
        scheduler = FullSyncScheduler(mock_scheduler)
        scheduler.add_full_sync_job(posts_module, driver, state_store, interval_seconds=1)
        job_kwargs = mock_scheduler.add_job.call_args.kwargs["kwargs"]

        # Each invocation sends 50 ids; the second one then sees nothing left
        for _ in range(2):
            scheduler._run_full_sync(**job_kwargs)

        assert state_store.load_status("posts") == FullSyncStatus(last_sent=1, sent=100, finished=True)
        mock_scheduler.remove_job.assert_called_once_with("full_sync_posts")
        mock_scheduler.shutdown.assert_called_once_with(wait=False)
        assert sorted(i for chunk in sender.chunks for i in chunk) == list(range(1, 101))

    def test_keeps_running_other_jobs(self, mock_scheduler, posts_module, state_store):
        finished = FullSyncStatus(last_sent=1, sent=100, finished=True)
        state_store.save_status("posts", finished)
        scheduler = FullSyncScheduler(mock_scheduler)
        scheduler.add_full_sync_job(posts_module, Mock(), state_store, interval_seconds=1)
        scheduler.add_interval_job(Mock(), 60, "other")
        job_kwargs = mock_scheduler.add_job.call_args_list[0].kwargs["kwargs"]

        scheduler._run_full_sync(**job_kwargs)

        mock_scheduler.remove_job.assert_called_once_with("full_sync_posts")
        mock_scheduler.shutdown.assert_not_called()
