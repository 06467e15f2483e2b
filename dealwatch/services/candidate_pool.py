# dealwatch/services/candidate_pool.py

"""Voting pool for observations that match no catalog product yet."""

import logging
import math
from datetime import datetime, timezone

from dealwatch.errors import InvalidInputError
from dealwatch.filters.title_matcher import TitleMatcher
from dealwatch.models.candidate_item import CandidateItem
from dealwatch.models.incoming_item import IncomingItem
from dealwatch.services.deadline import Deadline, checkpoint
from dealwatch.storage.protocols import CandidateStore, UnitOfWork

logger = logging.getLogger("dealwatch.candidates")


class CandidatePool:
    """Accumulate title votes until a group earns promotion.

    Grouping is a linear scan over the region's candidates; the first
    candidate (in creation order) whose group key is High-similar to
    the incoming clean key absorbs the observation.
    """

    def __init__(
        self,
        store: CandidateStore,
        unit_of_work: UnitOfWork,
        matcher: TitleMatcher | None = None,
    ) -> None:
        self._store = store
        self._uow = unit_of_work
        self.matcher = matcher or TitleMatcher()

    def fold(
        self,
        region: str,
        raw_title: str,
        clean_key: str,
        item: IncomingItem,
        deadline: Deadline | None = None,
    ) -> CandidateItem:
        """Fold one unmatched observation into the pool.

        Votes for *raw_title* on the first High-similar candidate, or
        seeds a new candidate.  The scan and the write share one
        transaction.  Returns the touched candidate.
        """
        if not raw_title:
            raise InvalidInputError("empty title")
        if not math.isfinite(item.price) or item.price < 0:
            raise InvalidInputError(f"invalid price: {item.price}")

        with self._uow.transaction():
            checkpoint(deadline, "list candidates")
            candidates = self._store.find_by_region(region)

            existing = self.matcher.find_high_match(
                clean_key, candidates, lambda c: c.group_key
            )
            checkpoint(deadline, "persist candidate")
            if existing is not None:
                existing.add_title_vote(raw_title)
                existing.update_last_seen(item.price, item.status)
                self._store.update(existing)
                logger.debug(
                    "Vote for '%s' on candidate %s (%d occurrences)",
                    raw_title,
                    existing.id,
                    existing.total_occurrences,
                )
                return existing

            now = datetime.now(timezone.utc)
            candidate = CandidateItem(
                group_key=clean_key,
                region=region,
                title_votes={raw_title: 1},
                total_occurrences=1,
                last_price=item.price,
                last_status=item.status,
                first_seen_time=now,
                last_seen_time=now,
            )
            self._store.create(candidate)
            logger.info(
                "New candidate %s in %s: '%s'",
                candidate.id,
                region,
                raw_title,
            )
            return candidate

    def is_eligible(self, candidate: CandidateItem) -> bool:
        """Return True once *candidate* has enough occurrences."""
        return self.matcher.should_promote(candidate.total_occurrences)

    def winning_title(self, candidate: CandidateItem) -> str:
        """Elect the standard title; ``""`` keeps the candidate pooled."""
        title = self.matcher.elect_title(candidate.title_votes)
        if not title:
            logger.warning(
                "Skipping candidate %s with no valid title votes",
                candidate.id,
            )
        return title
