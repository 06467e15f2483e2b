# dealwatch/filters/price_validator.py

"""Price-update validation under the Dutch auction model."""

import logging
import math
from datetime import datetime

from dealwatch.config.settings import Settings
from dealwatch.errors import (
    InvalidInputError,
    PriceBelowMinError,
    PriceDropExceededError,
    PriceRiseExceededError,
    PriceValidationError,
)
from dealwatch.models.price_trend import utc_day

logger = logging.getLogger("dealwatch.filters")

ValidationResult = tuple[float, PriceValidationError | InvalidInputError | None]


class PriceValidator:
    """Decide whether a scraped price change is trustworthy.

    Within one UTC day a flash sale only ever gets cheaper, so steep
    same-day drops are treated as scrape noise and rises as corrections.
    Across a day boundary the price resets and is trusted down to the
    absolute floor.

    The validator never raises: every rejection comes back as an error
    value together with the old price.
    """

    def __init__(
        self,
        max_drop_ratio: float | None = None,
        max_rise_ratio: float | None = None,
        min_price: float | None = None,
        rise_guard_min_price: float | None = None,
    ) -> None:
        self.max_drop_ratio = (
            Settings.MAX_DROP_RATIO
            if max_drop_ratio is None else max_drop_ratio
        )
        self.max_rise_ratio = (
            Settings.MAX_RISE_RATIO
            if max_rise_ratio is None else max_rise_ratio
        )
        self.min_price = (
            Settings.MIN_PRICE if min_price is None else min_price
        )
        self.rise_guard_min_price = (
            Settings.RISE_GUARD_MIN_PRICE
            if rise_guard_min_price is None else rise_guard_min_price
        )

    @staticmethod
    def is_same_day(a: datetime, b: datetime) -> bool:
        """Return True if both instants fall on the same UTC day."""
        return utc_day(a) == utc_day(b)

    def validate_update(
        self,
        old_price: float,
        new_price: float,
        last_update_time: datetime | None,
        now: datetime | None = None,
    ) -> ValidationResult:
        """Validate *new_price* against the stored *old_price*.

        Returns ``(final_price, error)``; ``error`` is ``None`` when the
        new price is accepted, otherwise ``final_price`` is *old_price*.
        A missing *last_update_time* counts as a different day.
        """
        if math.isnan(old_price) or math.isnan(new_price):
            return old_price, InvalidInputError("price is NaN")
        if math.isinf(old_price) or math.isinf(new_price):
            return old_price, InvalidInputError("price is infinite")
        if new_price < 0:
            return old_price, PriceBelowMinError("price is negative")

        current = now or datetime.now().astimezone()
        same_day = (
            last_update_time is not None
            and self.is_same_day(last_update_time, current)
        )

        if new_price < self.min_price:
            return old_price, PriceBelowMinError(
                f"price {new_price:.2f} below minimum {self.min_price:.2f}"
            )

        # Day boundary: the sale has reset, trust the new price
        if not same_day:
            return new_price, None

        # First real price, nothing to compare against
        if old_price <= 0:
            return new_price, None

        if new_price < old_price:
            drop_ratio = new_price / old_price
            if drop_ratio < self.max_drop_ratio:
                return old_price, PriceDropExceededError(
                    f"same-day drop {old_price:.2f} -> {new_price:.2f} "
                    f"(ratio {drop_ratio:.3f} < {self.max_drop_ratio})"
                )
            return new_price, None

        if new_price > old_price:
            if old_price >= self.rise_guard_min_price:
                rise_ratio = new_price / old_price
                if rise_ratio > self.max_rise_ratio:
                    return old_price, PriceRiseExceededError(
                        f"same-day rise {old_price:.2f} -> {new_price:.2f} "
                        f"(ratio {rise_ratio:.3f} > {self.max_rise_ratio})"
                    )
            return new_price, None

        return new_price, None

    def effective_price(
        self,
        old_price: float,
        new_price: float,
        last_update_time: datetime | None,
        now: datetime | None = None,
    ) -> float:
        """Return the price to store, discarding the rejection reason."""
        price, error = self.validate_update(
            old_price, new_price, last_update_time, now
        )
        if error is not None:
            logger.debug(
                "Price update %.2f -> %.2f rejected: %s",
                old_price,
                new_price,
                error,
            )
        return price
