# dealwatch/storage/database.py

"""SQLite connection, schema and transaction handling."""

import logging
import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from dealwatch.config.settings import Settings
from dealwatch.errors import StorageError

logger = logging.getLogger("dealwatch.storage")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS master_products (
    id             TEXT    PRIMARY KEY,
    region         TEXT    NOT NULL,
    platform       TEXT    NOT NULL DEFAULT '',
    standard_title TEXT    NOT NULL,
    price          REAL    NOT NULL DEFAULT 0,
    status         INTEGER NOT NULL DEFAULT 1,
    trust_score    INTEGER NOT NULL DEFAULT 0,
    create_time    TEXT    NOT NULL,
    update_time    TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_master_region
    ON master_products(region);

CREATE TABLE IF NOT EXISTS candidate_items (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    group_key         TEXT    NOT NULL,
    region            TEXT    NOT NULL,
    title_votes       TEXT    NOT NULL DEFAULT '{}',
    total_occurrences INTEGER NOT NULL DEFAULT 0,
    last_price        REAL    NOT NULL DEFAULT 0,
    last_status       INTEGER NOT NULL DEFAULT 0,
    first_seen_time   TEXT    NOT NULL,
    last_seen_time    TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_candidate_region
    ON candidate_items(region);

CREATE TABLE IF NOT EXISTS price_trends (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    activity_id TEXT    NOT NULL,
    price       REAL    NOT NULL,
    record_date TEXT    NOT NULL,
    create_time TEXT    NOT NULL,
    UNIQUE (activity_id, record_date)
);

CREATE TABLE IF NOT EXISTS notification_configs (
    activity_id      TEXT NOT NULL,
    user_id          TEXT NOT NULL,
    target_price     REAL NOT NULL,
    last_notify_time TEXT,
    create_time      TEXT NOT NULL,
    update_time      TEXT NOT NULL,
    PRIMARY KEY (activity_id, user_id)
);

CREATE TABLE IF NOT EXISTS blocked_products (
    activity_id TEXT NOT NULL,
    user_id     TEXT NOT NULL,
    create_time TEXT NOT NULL,
    PRIMARY KEY (activity_id, user_id)
);

CREATE TABLE IF NOT EXISTS user_settings (
    user_id     TEXT PRIMARY KEY,
    bark_key    TEXT NOT NULL DEFAULT '',
    create_time TEXT NOT NULL,
    update_time TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS sync_status (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    job_name      TEXT    NOT NULL UNIQUE,
    last_run_time TEXT    NOT NULL,
    status        TEXT    NOT NULL,
    product_count INTEGER NOT NULL DEFAULT 0,
    error_message TEXT    NOT NULL DEFAULT ''
);
"""


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_db_time(value: datetime | None) -> str | None:
    """Serialise a datetime as ISO-8601 in UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def from_db_time(value: str | None) -> datetime | None:
    """Parse an ISO-8601 column back into an aware datetime."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_db_date(value: date) -> str:
    """Serialise a calendar day as ``YYYY-MM-DD``."""
    return value.isoformat()


def from_db_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` column."""
    return date.fromisoformat(value[:10])


class Database:
    """A single SQLite connection shared by all repositories.

    The connection runs in autocommit mode; :meth:`transaction` opens an
    explicit ``BEGIN IMMEDIATE`` block.  Nested ``transaction()`` calls
    join the outermost block, so a repository write issued inside a
    service-level transaction commits or rolls back with it.  A
    re-entrant lock serialises threads on the connection.
    """

    def __init__(
        self, db_path: Path | str | None = None,
    ) -> None:
        path = db_path if db_path is not None else Settings.DB_PATH
        if str(path) != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._depth = 0
        try:
            self._conn = sqlite3.connect(
                str(path),
                check_same_thread=False,
                isolation_level=None,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            raise StorageError(f"open database {path}") from exc
        logger.debug("Database opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    @property
    def in_transaction(self) -> bool:
        """True while a :meth:`transaction` block is open."""
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run the enclosed statements as one atomic unit."""
        with self._lock:
            if self._depth > 0:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            try:
                self._conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as exc:
                raise StorageError("begin transaction") from exc
            self._depth = 1
            try:
                yield
            except BaseException:
                self._depth = 0
                self._conn.execute("ROLLBACK")
                raise
            self._depth = 0
            try:
                self._conn.execute("COMMIT")
            except sqlite3.Error as exc:
                self._conn.execute("ROLLBACK")
                raise StorageError("commit transaction") from exc

    def execute(
        self,
        sql: str,
        params: Sequence[Any] = (),
        *,
        what: str = "query",
    ) -> sqlite3.Cursor:
        """Run one statement, wrapping driver errors in ``StorageError``."""
        with self._lock:
            try:
                return self._conn.execute(sql, tuple(params))
            except sqlite3.Error as exc:
                raise StorageError(what) from exc

    def fetch_all(
        self,
        sql: str,
        params: Sequence[Any] = (),
        *,
        what: str = "query",
    ) -> list[sqlite3.Row]:
        """Run a query and return every row."""
        with self._lock:
            try:
                return self._conn.execute(sql, tuple(params)).fetchall()
            except sqlite3.Error as exc:
                raise StorageError(what) from exc

    def fetch_one(
        self,
        sql: str,
        params: Sequence[Any] = (),
        *,
        what: str = "query",
    ) -> sqlite3.Row | None:
        """Run a query and return the first row, or ``None``."""
        with self._lock:
            try:
                row: sqlite3.Row | None = self._conn.execute(
                    sql, tuple(params)
                ).fetchone()
            except sqlite3.Error as exc:
                raise StorageError(what) from exc
            return row
