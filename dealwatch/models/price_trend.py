# dealwatch/models/price_trend.py

"""Daily price sample for a master product."""

from dataclasses import dataclass
from datetime import date, datetime, timezone

from dealwatch.errors import InvalidInputError


def utc_day(moment: datetime | None = None) -> date:
    """Return the UTC calendar day of *moment* (default: now).

    Naive datetimes are taken to already be in UTC.
    """
    if moment is None:
        moment = datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date()


@dataclass
class PriceTrend:
    """One price sample per ``(activity_id, record_date)``."""

    activity_id: str
    price: float
    record_date: date
    create_time: datetime | None = None
    id: int | None = None

    @classmethod
    def create(
        cls,
        activity_id: str,
        price: float,
        record_date: date,
    ) -> "PriceTrend":
        """Build a validated trend record."""
        if not activity_id:
            raise InvalidInputError("activity_id cannot be empty")
        if price < 0:
            raise InvalidInputError(
                f"price cannot be negative: {price}"
            )
        return cls(
            activity_id=activity_id,
            price=price,
            record_date=record_date,
            create_time=datetime.now(timezone.utc),
        )

    def is_lower_than(self, other: float) -> bool:
        """Return True if this sample is cheaper than *other*."""
        return self.price < other
