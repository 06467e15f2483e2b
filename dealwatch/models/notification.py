# dealwatch/models/notification.py

"""User-facing subscription records: price targets, blocks, Bark keys."""

from dataclasses import dataclass
from datetime import datetime


def _same_local_day(a: datetime, b: datetime) -> bool:
    """Compare two instants by calendar day in the local timezone."""
    return a.astimezone().date() == b.astimezone().date()


@dataclass
class NotificationConfig:
    """A user's price target on one master product.

    "Already notified today" uses the *local* calendar day, unlike
    price trends, which bucket by UTC day.
    """

    activity_id: str
    user_id: str
    target_price: float
    last_notify_time: datetime | None = None
    create_time: datetime | None = None
    update_time: datetime | None = None

    def has_notified_today(self, now: datetime | None = None) -> bool:
        """Return True if an alert already went out today (local time)."""
        if self.last_notify_time is None:
            return False
        return _same_local_day(
            self.last_notify_time, now or datetime.now().astimezone()
        )

    def should_notify(
        self,
        current_price: float,
        now: datetime | None = None,
    ) -> bool:
        """Return True if *current_price* meets the target and no alert went out today."""
        if current_price > self.target_price:
            return False
        return not self.has_notified_today(now)

    def mark_notified(self, now: datetime | None = None) -> None:
        """Stamp the notification time."""
        self.last_notify_time = now or datetime.now().astimezone()


@dataclass
class BlockedProduct:
    """Per-user suppression marker."""

    activity_id: str
    user_id: str
    create_time: datetime | None = None


@dataclass
class UserSettings:
    """Per-user delivery settings."""

    user_id: str
    bark_key: str = ""
    create_time: datetime | None = None
    update_time: datetime | None = None
