# dealwatch/storage/candidate_repo.py

"""Persistence for the candidate pool."""

import json
import logging
import sqlite3
from collections.abc import Sequence
from typing import cast

from dealwatch.errors import StorageError
from dealwatch.models.candidate_item import CandidateItem
from dealwatch.storage.database import (
    Database,
    from_db_time,
    to_db_time,
    utc_now,
)

logger = logging.getLogger("dealwatch.storage")

_COLUMNS = (
    "id, group_key, region, title_votes, total_occurrences, "
    "last_price, last_status, first_seen_time, last_seen_time"
)


def _decode_votes(raw: str | None) -> dict[str, int]:
    """Parse the JSON vote map, tolerating empty or corrupt values."""
    if not raw:
        return {}
    try:
        data: object = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Corrupt title_votes column: %r", raw[:80])
        return {}
    if not isinstance(data, dict):
        return {}
    votes = cast(dict[str, object], data)
    return {
        str(k): int(v) for k, v in votes.items()
        if isinstance(v, (int, float))
    }


def _row_to_candidate(row: sqlite3.Row) -> CandidateItem:
    return CandidateItem(
        id=row["id"],
        group_key=row["group_key"],
        region=row["region"],
        title_votes=_decode_votes(row["title_votes"]),
        total_occurrences=row["total_occurrences"],
        last_price=row["last_price"],
        last_status=row["last_status"],
        first_seen_time=from_db_time(row["first_seen_time"]),
        last_seen_time=from_db_time(row["last_seen_time"]),
    )


class CandidateRepository:
    """SQLite-backed candidate pool."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def find_by_id(self, candidate_id: int) -> CandidateItem | None:
        """Return the candidate with *candidate_id*, or ``None``."""
        row = self._db.fetch_one(
            f"SELECT {_COLUMNS} FROM candidate_items WHERE id = ?",
            (candidate_id,),
            what="get candidate",
        )
        return _row_to_candidate(row) if row is not None else None

    def find_by_region(self, region: str) -> list[CandidateItem]:
        """Return every candidate in *region* in creation order."""
        rows = self._db.fetch_all(
            f"SELECT {_COLUMNS} FROM candidate_items "
            "WHERE region = ? ORDER BY id",
            (region,),
            what="list candidates by region",
        )
        return [_row_to_candidate(r) for r in rows]

    def list_all(self) -> list[CandidateItem]:
        """Return the whole pool in creation order."""
        rows = self._db.fetch_all(
            f"SELECT {_COLUMNS} FROM candidate_items ORDER BY id",
            what="list all candidates",
        )
        return [_row_to_candidate(r) for r in rows]

    def create(self, candidate: CandidateItem) -> None:
        """Insert *candidate* and assign its storage id."""
        now = utc_now()
        candidate.first_seen_time = candidate.first_seen_time or now
        candidate.last_seen_time = candidate.last_seen_time or now
        cur = self._db.execute(
            "INSERT INTO candidate_items "
            "(group_key, region, title_votes, total_occurrences, "
            " last_price, last_status, first_seen_time, last_seen_time) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                candidate.group_key,
                candidate.region,
                json.dumps(candidate.title_votes, ensure_ascii=False),
                candidate.total_occurrences,
                candidate.last_price,
                candidate.last_status,
                to_db_time(candidate.first_seen_time),
                to_db_time(candidate.last_seen_time),
            ),
            what="create candidate",
        )
        candidate.id = cur.lastrowid

    def update(self, candidate: CandidateItem) -> None:
        """Persist votes, occurrence count and the last-seen snapshot."""
        if candidate.id is None:
            raise StorageError("update candidate: missing id")
        self._db.execute(
            "UPDATE candidate_items SET "
            "title_votes = ?, total_occurrences = ?, last_price = ?, "
            "last_status = ?, last_seen_time = ? "
            "WHERE id = ?",
            (
                json.dumps(candidate.title_votes, ensure_ascii=False),
                candidate.total_occurrences,
                candidate.last_price,
                candidate.last_status,
                to_db_time(candidate.last_seen_time),
                candidate.id,
            ),
            what="update candidate",
        )

    def delete(self, candidate_id: int) -> None:
        """Remove one candidate."""
        self._db.execute(
            "DELETE FROM candidate_items WHERE id = ?",
            (candidate_id,),
            what="delete candidate",
        )

    def delete_by_ids(self, candidate_ids: Sequence[int]) -> int:
        """Remove every candidate in *candidate_ids* atomically.

        Returns the number of rows deleted.
        """
        if not candidate_ids:
            return 0
        placeholders = ", ".join("?" for _ in candidate_ids)
        with self._db.transaction():
            cur = self._db.execute(
                f"DELETE FROM candidate_items WHERE id IN ({placeholders})",
                candidate_ids,
                what="delete candidates",
            )
        return cur.rowcount
