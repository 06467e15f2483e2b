# dealwatch/models/sync_status.py

"""Outcome of the most recent run of a background job."""

from dataclasses import dataclass
from datetime import datetime, timezone

STATUS_RUNNING = "running"
STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"


@dataclass
class SyncStatus:
    """Last-run record for one named job."""

    job_name: str
    last_run_time: datetime
    status: str = STATUS_RUNNING
    product_count: int = 0
    error_message: str = ""

    def age_seconds(self, now: datetime | None = None) -> float:
        """Seconds elapsed since the job last started."""
        current = now or datetime.now(timezone.utc)
        return (current - self.last_run_time).total_seconds()

    def is_healthy(
        self,
        stale_after: float,
        now: datetime | None = None,
    ) -> bool:
        """Return True if the last run succeeded recently enough."""
        return (
            self.status == STATUS_SUCCESS
            and self.age_seconds(now) < stale_after
        )
