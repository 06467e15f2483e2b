# dealwatch/models/candidate_item.py

"""Unresolved observation group waiting in the candidate pool."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from dealwatch.errors import InvalidInputError


@dataclass
class CandidateItem:
    """A group of similar-titled observations not yet in the catalog.

    ``title_votes`` only grows, and ``total_occurrences`` counts every
    observation folded into the group; it gates promotion.
    """

    group_key: str
    region: str
    title_votes: dict[str, int] = field(
        default_factory=lambda: dict[str, int]()
    )
    total_occurrences: int = 0
    last_price: float = 0.0
    last_status: int = 0
    first_seen_time: datetime | None = None
    last_seen_time: datetime | None = None
    id: int | None = None

    def add_title_vote(self, title: str) -> None:
        """Record one vote for *title* and count the occurrence."""
        if not title:
            raise InvalidInputError("title cannot be empty")
        self.title_votes[title] = self.title_votes.get(title, 0) + 1
        self.total_occurrences += 1

    def update_last_seen(
        self,
        price: float,
        status: int,
        now: datetime | None = None,
    ) -> None:
        """Overwrite the snapshot with the most recent observation."""
        self.last_price = price
        self.last_status = status
        self.last_seen_time = now or datetime.now(timezone.utc)

    def should_promote(self, threshold: int) -> bool:
        """Return True once enough observations have been folded in."""
        return self.total_occurrences >= threshold
