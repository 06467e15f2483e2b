# dealwatch/services/ingestion.py

"""Batch entry point for observations pushed by upstream crawlers."""

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from dealwatch.config.settings import Settings
from dealwatch.errors import (
    DealwatchError,
    InvalidInputError,
    OperationCancelledError,
)
from dealwatch.models.incoming_item import IncomingItem
from dealwatch.services.data_cleaning import DataCleaningService
from dealwatch.services.deadline import Deadline

logger = logging.getLogger("dealwatch.ingestion")


@dataclass
class PushResult:
    """Counters returned to the pushing crawler."""

    received: int = 0
    promoted: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=lambda: list[str]())


def parse_item(raw: Any) -> IncomingItem:
    """Convert one pushed JSON object into an :class:`IncomingItem`.

    Accepts the crawler's wire keys (``crawlTime``) as well as
    ``crawl_timestamp``.  Raises ``InvalidInputError`` on a malformed
    object.
    """
    if not isinstance(raw, Mapping):
        raise InvalidInputError(
            f"item must be an object, got {type(raw).__name__}"
        )
    title = raw.get("title")
    if not isinstance(title, str) or not title.strip():
        raise InvalidInputError("item title is required")

    try:
        price = float(raw.get("price", 0))
        status = int(raw.get("status", 0))
        crawl_time = int(
            raw.get("crawlTime", raw.get("crawl_timestamp", 0)) or 0
        )
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"malformed item '{title}': {exc}") from exc

    if not math.isfinite(price):
        raise InvalidInputError(f"price of '{title}' is not finite")

    return IncomingItem(
        title=title,
        price=price,
        status=status,
        crawl_timestamp=crawl_time,
        region=str(raw.get("region") or ""),
    )


class PushIngestor:
    """Feeds a pushed batch through the cleaning service item by item."""

    def __init__(
        self,
        service: DataCleaningService,
        max_items: int | None = None,
    ) -> None:
        self.service = service
        self.max_items = (
            Settings.MAX_PUSH_ITEMS if max_items is None else max_items
        )

    def handle_push(
        self,
        items: Sequence[Any],
        deadline: Deadline | None = None,
    ) -> PushResult:
        """Process a batch; one bad item never aborts the rest."""
        if not items:
            raise InvalidInputError(
                "items array is required and must not be empty"
            )
        if len(items) > self.max_items:
            raise InvalidInputError(
                f"too many items in request (max {self.max_items})"
            )

        result = PushResult(received=len(items))

        for raw in items:
            try:
                item = parse_item(raw)
                product = self.service.process_incoming_item(
                    item, item.region, deadline
                )
            except OperationCancelledError:
                raise
            except DealwatchError as exc:
                result.failed += 1
                result.errors.append(str(exc))
                logger.error(
                    "Failed to process pushed item %r: %s",
                    raw.get("title") if isinstance(raw, Mapping) else raw,
                    exc,
                )
                continue

            if product is not None:
                result.promoted += 1

        logger.info(
            "Push processed: %d received, %d promoted, %d failed",
            result.received,
            result.promoted,
            result.failed,
        )
        return result
