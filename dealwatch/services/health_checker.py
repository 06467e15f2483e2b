# dealwatch/services/health_checker.py

"""Freshness report over the recorded background-job runs."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from dealwatch.config.settings import Settings
from dealwatch.models.sync_status import STATUS_FAILED, STATUS_RUNNING
from dealwatch.storage.sync_status_repo import SyncStatusRepository

logger = logging.getLogger("dealwatch.health")


@dataclass
class HealthResult:
    """Health of a single job."""

    job_name: str
    status: str  # "ok", "stale", "failed", "never"
    age_seconds: float | None
    product_count: int
    message: str


class HealthChecker:
    """Grades each job by its last recorded run."""

    def __init__(
        self,
        statuses: SyncStatusRepository,
        job_names: Iterable[str] | None = None,
        stale_after: float | None = None,
    ) -> None:
        self._statuses = statuses
        self.job_names = list(job_names or Settings.JOB_INTERVALS)
        self.stale_after = (
            Settings.JOB_STALE_AFTER if stale_after is None else stale_after
        )

    def check_job(
        self, name: str, now: datetime | None = None,
    ) -> HealthResult:
        """Return the health of one job."""
        current = now or datetime.now(timezone.utc)
        record = self._statuses.get(name)
        if record is None:
            return HealthResult(name, "never", None, 0, "No run recorded")

        age = record.age_seconds(current)
        if record.status == STATUS_FAILED:
            return HealthResult(
                name, "failed", age, record.product_count,
                record.error_message,
            )
        if record.is_healthy(self.stale_after, current):
            return HealthResult(name, "ok", age, record.product_count, "")
        message = (
            "Still running" if record.status == STATUS_RUNNING
            else f"Last success {age:.0f}s ago"
        )
        return HealthResult(
            name, "stale", age, record.product_count, message,
        )

    def check_all(self, now: datetime | None = None) -> list[HealthResult]:
        """Grade every known job."""
        results = [self.check_job(name, now) for name in self.job_names]
        for r in results:
            logger.info(
                "Health check %s: %s %s", r.job_name, r.status, r.message,
            )
        return results
