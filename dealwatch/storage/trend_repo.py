# dealwatch/storage/trend_repo.py

"""Daily price-trend storage."""

import logging
import sqlite3
from collections.abc import Sequence
from datetime import date

from dealwatch.models.price_trend import PriceTrend
from dealwatch.storage.database import (
    Database,
    from_db_date,
    from_db_time,
    to_db_date,
    to_db_time,
    utc_now,
)

logger = logging.getLogger("dealwatch.storage")


def _row_to_trend(row: sqlite3.Row) -> PriceTrend:
    return PriceTrend(
        id=row["id"],
        activity_id=row["activity_id"],
        price=row["price"],
        record_date=from_db_date(row["record_date"]),
        create_time=from_db_time(row["create_time"]),
    )


class TrendRepository:
    """One price row per ``(activity_id, record_date)``.

    Upserts are latest-write-wins: a second write for the same day
    replaces the stored price, whether higher or lower.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def upsert(self, trend: PriceTrend) -> None:
        """Insert the day's sample or overwrite it."""
        self._db.execute(
            "INSERT INTO price_trends "
            "(activity_id, price, record_date, create_time) "
            "VALUES (?, ?, ?, ?) "
            "ON CONFLICT(activity_id, record_date) "
            "DO UPDATE SET price = excluded.price",
            (
                trend.activity_id,
                trend.price,
                to_db_date(trend.record_date),
                to_db_time(trend.create_time or utc_now()),
            ),
            what="upsert trend",
        )

    def find_by_activity_id(self, activity_id: str) -> list[PriceTrend]:
        """Return the price history of one product, oldest day first."""
        rows = self._db.fetch_all(
            "SELECT id, activity_id, price, record_date, create_time "
            "FROM price_trends WHERE activity_id = ? "
            "ORDER BY record_date ASC",
            (activity_id,),
            what="list trends",
        )
        return [_row_to_trend(r) for r in rows]

    def find_by_activity_id_and_date(
        self, activity_id: str, record_date: date,
    ) -> PriceTrend | None:
        """Return the sample for one product and day, or ``None``."""
        row = self._db.fetch_one(
            "SELECT id, activity_id, price, record_date, create_time "
            "FROM price_trends WHERE activity_id = ? AND record_date = ?",
            (activity_id, to_db_date(record_date)),
            what="get trend",
        )
        return _row_to_trend(row) if row is not None else None

    def delete_by_activity_ids(self, activity_ids: Sequence[str]) -> int:
        """Bulk cleanup of every sample for the given products."""
        if not activity_ids:
            return 0
        placeholders = ", ".join("?" for _ in activity_ids)
        cur = self._db.execute(
            f"DELETE FROM price_trends WHERE activity_id IN ({placeholders})",
            activity_ids,
            what="delete trends",
        )
        logger.info(
            "Deleted %d trend rows for %d products",
            cur.rowcount,
            len(activity_ids),
        )
        return cur.rowcount
