# dealwatch/storage/notification_repo.py

"""Persistence for price targets, product blocks and user settings."""

import logging
import sqlite3
from datetime import datetime

from dealwatch.models.notification import (
    NotificationConfig,
    UserSettings,
)
from dealwatch.storage.database import (
    Database,
    from_db_time,
    to_db_time,
    utc_now,
)

logger = logging.getLogger("dealwatch.storage")

_CONFIG_COLUMNS = (
    "activity_id, user_id, target_price, last_notify_time, "
    "create_time, update_time"
)


def _row_to_config(row: sqlite3.Row) -> NotificationConfig:
    return NotificationConfig(
        activity_id=row["activity_id"],
        user_id=row["user_id"],
        target_price=row["target_price"],
        last_notify_time=from_db_time(row["last_notify_time"]),
        create_time=from_db_time(row["create_time"]),
        update_time=from_db_time(row["update_time"]),
    )


class NotificationRepository:
    """Price-target subscriptions keyed by ``(activity_id, user_id)``."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def find(
        self, activity_id: str, user_id: str,
    ) -> NotificationConfig | None:
        """Return one subscription, or ``None``."""
        row = self._db.fetch_one(
            f"SELECT {_CONFIG_COLUMNS} FROM notification_configs "
            "WHERE activity_id = ? AND user_id = ?",
            (activity_id, user_id),
            what="get notification config",
        )
        return _row_to_config(row) if row is not None else None

    def list_by_user(self, user_id: str) -> list[NotificationConfig]:
        """Return every subscription of *user_id*."""
        rows = self._db.fetch_all(
            f"SELECT {_CONFIG_COLUMNS} FROM notification_configs "
            "WHERE user_id = ? ORDER BY create_time, rowid",
            (user_id,),
            what="list notification configs by user",
        )
        return [_row_to_config(r) for r in rows]

    def list_all(self) -> list[NotificationConfig]:
        """Return every subscription (for the background checker)."""
        rows = self._db.fetch_all(
            f"SELECT {_CONFIG_COLUMNS} FROM notification_configs "
            "ORDER BY create_time, rowid",
            what="list notification configs",
        )
        return [_row_to_config(r) for r in rows]

    def upsert(self, config: NotificationConfig) -> None:
        """Create the subscription or change its target price.

        ``last_notify_time`` survives a target change.
        """
        now = utc_now()
        self._db.execute(
            f"INSERT INTO notification_configs ({_CONFIG_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(activity_id, user_id) DO UPDATE SET "
            "target_price = excluded.target_price, "
            "update_time = excluded.update_time",
            (
                config.activity_id,
                config.user_id,
                config.target_price,
                to_db_time(config.last_notify_time),
                to_db_time(config.create_time or now),
                to_db_time(now),
            ),
            what="upsert notification config",
        )

    def delete(self, activity_id: str, user_id: str) -> None:
        """Remove one subscription."""
        self._db.execute(
            "DELETE FROM notification_configs "
            "WHERE activity_id = ? AND user_id = ?",
            (activity_id, user_id),
            what="delete notification config",
        )

    def update_notify_time(
        self,
        activity_id: str,
        user_id: str,
        when: datetime | None = None,
    ) -> None:
        """Stamp the time of the last alert sent for a subscription."""
        self._db.execute(
            "UPDATE notification_configs SET last_notify_time = ? "
            "WHERE activity_id = ? AND user_id = ?",
            (to_db_time(when or utc_now()), activity_id, user_id),
            what="update notify time",
        )


class BlockedRepository:
    """Per-user product suppression markers."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def exists(self, activity_id: str, user_id: str) -> bool:
        """Return True if *user_id* has hidden *activity_id*."""
        row = self._db.fetch_one(
            "SELECT 1 FROM blocked_products "
            "WHERE activity_id = ? AND user_id = ?",
            (activity_id, user_id),
            what="check blocked product",
        )
        return row is not None

    def create(self, activity_id: str, user_id: str) -> None:
        """Hide a product for a user; blocking twice is a no-op."""
        self._db.execute(
            "INSERT OR IGNORE INTO blocked_products "
            "(activity_id, user_id, create_time) VALUES (?, ?, ?)",
            (activity_id, user_id, to_db_time(utc_now())),
            what="block product",
        )

    def delete(self, activity_id: str, user_id: str) -> None:
        """Unhide a product for a user."""
        self._db.execute(
            "DELETE FROM blocked_products "
            "WHERE activity_id = ? AND user_id = ?",
            (activity_id, user_id),
            what="unblock product",
        )

    def list_for_user(self, user_id: str) -> list[str]:
        """Return every activity id hidden by *user_id*."""
        rows = self._db.fetch_all(
            "SELECT activity_id FROM blocked_products "
            "WHERE user_id = ? ORDER BY create_time, rowid",
            (user_id,),
            what="list blocked products",
        )
        return [r["activity_id"] for r in rows]


class UserSettingsRepository:
    """Per-user delivery settings (Bark device key)."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def get(self, user_id: str) -> UserSettings | None:
        """Return the settings of *user_id*, or ``None``."""
        row = self._db.fetch_one(
            "SELECT user_id, bark_key, create_time, update_time "
            "FROM user_settings WHERE user_id = ?",
            (user_id,),
            what="get user settings",
        )
        if row is None:
            return None
        return UserSettings(
            user_id=row["user_id"],
            bark_key=row["bark_key"],
            create_time=from_db_time(row["create_time"]),
            update_time=from_db_time(row["update_time"]),
        )

    def upsert(self, settings: UserSettings) -> None:
        """Create or replace the settings of one user."""
        now = to_db_time(utc_now())
        self._db.execute(
            "INSERT INTO user_settings "
            "(user_id, bark_key, create_time, update_time) "
            "VALUES (?, ?, ?, ?) "
            "ON CONFLICT(user_id) DO UPDATE SET "
            "bark_key = excluded.bark_key, "
            "update_time = excluded.update_time",
            (settings.user_id, settings.bark_key, now, now),
            what="upsert user settings",
        )
