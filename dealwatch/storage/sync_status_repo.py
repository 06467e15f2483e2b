# dealwatch/storage/sync_status_repo.py

"""Last-run bookkeeping for background jobs."""

import sqlite3

from dealwatch.models.sync_status import SyncStatus
from dealwatch.storage.database import (
    Database,
    from_db_time,
    to_db_time,
    utc_now,
)


def _row_to_status(row: sqlite3.Row) -> SyncStatus:
    return SyncStatus(
        job_name=row["job_name"],
        last_run_time=from_db_time(row["last_run_time"]) or utc_now(),
        status=row["status"],
        product_count=row["product_count"],
        error_message=row["error_message"],
    )


class SyncStatusRepository:
    """One row per job name, overwritten on every run."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def record(self, status: SyncStatus) -> None:
        """Insert or overwrite the status row of ``status.job_name``."""
        self._db.execute(
            "INSERT INTO sync_status "
            "(job_name, last_run_time, status, product_count, error_message) "
            "VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT(job_name) DO UPDATE SET "
            "last_run_time = excluded.last_run_time, "
            "status = excluded.status, "
            "product_count = excluded.product_count, "
            "error_message = excluded.error_message",
            (
                status.job_name,
                to_db_time(status.last_run_time),
                status.status,
                status.product_count,
                status.error_message,
            ),
            what="record sync status",
        )

    def get(self, job_name: str) -> SyncStatus | None:
        """Return the last run of *job_name*, or ``None``."""
        row = self._db.fetch_one(
            "SELECT job_name, last_run_time, status, product_count, "
            "error_message FROM sync_status WHERE job_name = ?",
            (job_name,),
            what="get sync status",
        )
        return _row_to_status(row) if row is not None else None

    def list_all(self) -> list[SyncStatus]:
        """Return every recorded job."""
        rows = self._db.fetch_all(
            "SELECT job_name, last_run_time, status, product_count, "
            "error_message FROM sync_status ORDER BY job_name",
            what="list sync status",
        )
        return [_row_to_status(r) for r in rows]
