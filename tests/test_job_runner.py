# tests/test_job_runner.py

"""Tests for job execution, status bookkeeping and health grading."""

import asyncio
import tempfile
import threading
import time
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

from apscheduler.triggers.interval import IntervalTrigger

from dealwatch.errors import OperationCancelledError, StorageError
from dealwatch.models.sync_status import (
    STATUS_FAILED,
    STATUS_RUNNING,
    STATUS_SUCCESS,
    SyncStatus,
)
from dealwatch.services.data_cleaning import DataCleaningService
from dealwatch.services.deadline import Deadline
from dealwatch.services.health_checker import HealthChecker
from dealwatch.services.job_runner import (
    JOB_PRICE_CHECK,
    JOB_PROMOTE,
    JOB_RECORD_TRENDS,
    JobRunner,
    build_jobs,
)
from dealwatch.services.notification_checker import NotificationChecker
from dealwatch.services.scheduler import Scheduler
from dealwatch.storage.database import Database
from dealwatch.storage.sync_status_repo import SyncStatusRepository

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


class _StatusTestCase(unittest.TestCase):
    """Opens a temp database with a sync-status repository."""

    def setUp(self) -> None:
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.db = Database(Path(self.tmp_dir.name) / "test.db")
        self.statuses = SyncStatusRepository(self.db)

    def tearDown(self) -> None:
        self.db.close()
        self.tmp_dir.cleanup()


class TestBuildJobs(unittest.TestCase):
    """Tests for the job table."""

    def test_jobs_delegate_to_services(self) -> None:
        """Each job calls its service and returns a product count."""
        service = MagicMock(spec=DataCleaningService)
        service.promote_candidates.return_value = {
            "杭州": [MagicMock(), MagicMock()], "上海": [MagicMock()],
        }
        service.record_daily_trends.return_value = 4
        checker = MagicMock(spec=NotificationChecker)
        checker.check_and_notify.return_value = 1

        jobs = build_jobs(service, checker)
        deadline = Deadline()

        self.assertEqual(
            set(jobs), {JOB_PROMOTE, JOB_RECORD_TRENDS, JOB_PRICE_CHECK}
        )
        self.assertEqual(jobs[JOB_PROMOTE](deadline), 3)
        self.assertEqual(jobs[JOB_RECORD_TRENDS](deadline), 4)
        self.assertEqual(jobs[JOB_PRICE_CHECK](deadline), 1)
        service.promote_candidates.assert_called_once_with(deadline)
        checker.check_and_notify.assert_called_once_with(deadline=deadline)


class TestJobRunner(_StatusTestCase):
    """Tests for JobRunner.run."""

    def test_success_recorded(self) -> None:
        """A finished job is stored as success with its count."""
        runner = JobRunner(self.statuses, timeout=5)
        status = runner.run("record-trends", lambda deadline: 7)
        self.assertEqual(status.status, STATUS_SUCCESS)
        stored = self.statuses.get("record-trends")
        assert stored is not None
        self.assertEqual(stored.status, STATUS_SUCCESS)
        self.assertEqual(stored.product_count, 7)

    def test_running_recorded_before_job(self) -> None:
        """The job sees its own status as running."""
        runner = JobRunner(self.statuses, timeout=5)
        seen: list[str] = []

        def job(deadline: Deadline) -> int:
            current = self.statuses.get("price-check")
            assert current is not None
            seen.append(current.status)
            return 0

        runner.run("price-check", job)
        self.assertEqual(seen, [STATUS_RUNNING])

    def test_domain_failure_recorded(self) -> None:
        """Dealwatch errors become a failed status, not an exception."""
        runner = JobRunner(self.statuses, timeout=5)

        def job(deadline: Deadline) -> int:
            raise OperationCancelledError("list candidates: deadline exceeded")

        status = runner.run("promote-candidates", job)
        self.assertEqual(status.status, STATUS_FAILED)
        self.assertIn("deadline exceeded", status.error_message)

    def test_unexpected_failure_recorded(self) -> None:
        """Bugs in a job are captured too."""
        runner = JobRunner(self.statuses, timeout=5)

        def job(deadline: Deadline) -> int:
            raise ValueError("bad")

        status = runner.run("promote-candidates", job)
        self.assertEqual(status.status, STATUS_FAILED)
        self.assertEqual(status.error_message, "ValueError: bad")

    def test_job_receives_deadline(self) -> None:
        """Without an explicit deadline the runner supplies a bounded one."""
        runner = JobRunner(self.statuses, timeout=5)
        received: list[Deadline] = []
        runner.run("x", lambda deadline: received.append(deadline) or 0)
        remaining = received[0].remaining()
        assert remaining is not None
        self.assertLessEqual(remaining, 5)

    def test_status_store_failure_tolerated(self) -> None:
        """A broken status table does not fail the job."""
        statuses = MagicMock(spec=SyncStatusRepository)
        statuses.record.side_effect = StorageError("locked")
        status = JobRunner(statuses, timeout=5).run("x", lambda d: 2)
        self.assertEqual(status.status, STATUS_SUCCESS)


class TestHealthChecker(_StatusTestCase):
    """Tests for the freshness grades."""

    def setUp(self) -> None:
        super().setUp()
        self.checker = HealthChecker(
            self.statuses, ["a", "b", "c", "d"], stale_after=1800,
        )

    def test_grades(self) -> None:
        """ok, stale, failed and never are told apart."""
        self.statuses.record(SyncStatus(
            "a", NOW - timedelta(minutes=5), STATUS_SUCCESS, 3,
        ))
        self.statuses.record(SyncStatus(
            "b", NOW - timedelta(hours=2), STATUS_SUCCESS, 3,
        ))
        self.statuses.record(SyncStatus(
            "c", NOW - timedelta(minutes=1), STATUS_FAILED, 0, "boom",
        ))
        results = {r.job_name: r for r in self.checker.check_all(NOW)}

        self.assertEqual(results["a"].status, "ok")
        self.assertEqual(results["a"].product_count, 3)
        self.assertEqual(results["b"].status, "stale")
        self.assertEqual(results["c"].status, "failed")
        self.assertEqual(results["c"].message, "boom")
        self.assertEqual(results["d"].status, "never")
        self.assertIsNone(results["d"].age_seconds)

    def test_long_running_is_stale(self) -> None:
        """A run stuck in running past the window is stale."""
        self.statuses.record(SyncStatus(
            "a", NOW - timedelta(hours=1), STATUS_RUNNING,
        ))
        result = self.checker.check_job("a", NOW)
        self.assertEqual(result.status, "stale")
        self.assertEqual(result.message, "Still running")

    def test_default_jobs_from_settings(self) -> None:
        """Without names the configured jobs are checked."""
        checker = HealthChecker(self.statuses)
        self.assertIn("promote-candidates", checker.job_names)
        self.assertEqual(checker.stale_after, 1800.0)


class TestScheduler(_StatusTestCase):
    """Tests for the APScheduler job driver."""

    def test_run_once_executes_in_thread(self) -> None:
        """run_once runs the job and returns its status."""
        runner = JobRunner(self.statuses, timeout=5)
        scheduler = Scheduler(runner, {"x": lambda d: 4}, {"x": 60})
        status = asyncio.run(scheduler.run_once("x"))
        self.assertEqual(status.status, STATUS_SUCCESS)
        self.assertEqual(status.product_count, 4)

    def test_serve_runs_each_job_and_stops(self) -> None:
        """serve() starts every scheduled job and shuts down cleanly."""
        runner = JobRunner(self.statuses, timeout=5)
        calls: list[str] = []
        jobs = {
            "a": lambda d: calls.append("a") or 0,
            "b": lambda d: calls.append("b") or 0,
            "unscheduled": lambda d: calls.append("u") or 0,
        }
        scheduler = Scheduler(runner, jobs, {"a": 3600, "b": 3600})
        asyncio.run(scheduler.serve(duration=0.5))
        self.assertEqual(sorted(calls), ["a", "b"])
        self.assertFalse(scheduler.running)
        recorded = self.statuses.get("a")
        assert recorded is not None
        self.assertEqual(recorded.status, STATUS_SUCCESS)

    def test_interval_jobs_registered(self) -> None:
        """Each scheduled name gets one interval trigger of its period."""
        runner = JobRunner(self.statuses, timeout=5)
        scheduler = Scheduler(
            runner, {"a": lambda d: 0, "b": lambda d: 0}, {"a": 90, "b": 0},
        )

        async def registered() -> list:
            scheduler.start()
            try:
                return scheduler._scheduler.get_jobs()
            finally:
                await scheduler.stop()

        jobs = asyncio.run(registered())
        self.assertEqual([job.id for job in jobs], ["a"])
        self.assertIsInstance(jobs[0].trigger, IntervalTrigger)
        self.assertEqual(jobs[0].trigger.interval, timedelta(seconds=90))

    def test_stop_cancels_in_flight_deadline(self) -> None:
        """Stopping the scheduler aborts a run at its next checkpoint."""
        runner = JobRunner(self.statuses, timeout=30)
        started = threading.Event()

        def slow(deadline: Deadline) -> int:
            started.set()
            while True:
                deadline.check("slow job")
                time.sleep(0.01)

        scheduler = Scheduler(runner, {"slow": slow}, {"slow": 3600})

        async def run_and_stop() -> None:
            scheduler.start()
            await asyncio.to_thread(started.wait, 5)
            await scheduler.stop()

        asyncio.run(run_and_stop())
        status = self.statuses.get("slow")
        assert status is not None
        self.assertEqual(status.status, STATUS_FAILED)


if __name__ == "__main__":
    unittest.main()
