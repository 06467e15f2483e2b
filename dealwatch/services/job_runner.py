# dealwatch/services/job_runner.py

"""Runs named background jobs and records their outcome."""

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone

from dealwatch.config.settings import Settings
from dealwatch.errors import DealwatchError, StorageError
from dealwatch.models.sync_status import (
    STATUS_FAILED,
    STATUS_RUNNING,
    STATUS_SUCCESS,
    SyncStatus,
)
from dealwatch.services.data_cleaning import DataCleaningService
from dealwatch.services.deadline import Deadline
from dealwatch.services.notification_checker import NotificationChecker
from dealwatch.storage.sync_status_repo import SyncStatusRepository

logger = logging.getLogger("dealwatch.jobs")

JOB_PROMOTE = "promote-candidates"
JOB_RECORD_TRENDS = "record-trends"
JOB_PRICE_CHECK = "price-check"

Job = Callable[[Deadline], int]


def build_jobs(
    service: DataCleaningService,
    checker: NotificationChecker,
) -> dict[str, Job]:
    """Map each job name to a callable returning its product count."""

    def promote(deadline: Deadline) -> int:
        promoted = service.promote_candidates(deadline)
        return sum(len(items) for items in promoted.values())

    return {
        JOB_PROMOTE: promote,
        JOB_RECORD_TRENDS: service.record_daily_trends,
        JOB_PRICE_CHECK: lambda deadline: checker.check_and_notify(
            deadline=deadline
        ),
    }


class JobRunner:
    """Executes jobs under a deadline and keeps ``sync_status`` current."""

    def __init__(
        self,
        statuses: SyncStatusRepository,
        timeout: float | None = None,
    ) -> None:
        self._statuses = statuses
        self.timeout = Settings.JOB_TIMEOUT if timeout is None else timeout

    def run(
        self,
        name: str,
        job: Job,
        deadline: Deadline | None = None,
    ) -> SyncStatus:
        """Run *job* once and return its recorded status.

        Job failures are captured in the status, never raised.
        """
        deadline = deadline or Deadline(self.timeout)
        status = SyncStatus(
            job_name=name,
            last_run_time=datetime.now(timezone.utc),
            status=STATUS_RUNNING,
        )
        self._record(status)

        start = time.monotonic()
        try:
            status.product_count = job(deadline)
            status.status = STATUS_SUCCESS
        except DealwatchError as exc:
            status.status = STATUS_FAILED
            status.error_message = str(exc)
            logger.error("Job %s failed: %s", name, exc)
        except Exception as exc:
            status.status = STATUS_FAILED
            status.error_message = f"{type(exc).__name__}: {exc}"
            logger.critical("Job %s crashed", name, exc_info=True)

        elapsed = time.monotonic() - start
        self._record(status)
        logger.info(
            "Job %s finished: %s, %d products in %.2fs",
            name,
            status.status,
            status.product_count,
            elapsed,
        )
        return status

    def _record(self, status: SyncStatus) -> None:
        try:
            self._statuses.record(status)
        except StorageError:
            logger.error(
                "Could not record status of job %s",
                status.job_name,
                exc_info=True,
            )
