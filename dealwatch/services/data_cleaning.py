# dealwatch/services/data_cleaning.py

"""Matches incoming observations to the catalog and promotes candidates."""

import logging
from collections import defaultdict

from dealwatch.config.settings import Settings
from dealwatch.errors import (
    InvalidInputError,
    OperationCancelledError,
    StorageError,
)
from dealwatch.filters.price_validator import PriceValidator
from dealwatch.filters.title_matcher import TitleMatcher
from dealwatch.models.candidate_item import CandidateItem
from dealwatch.models.incoming_item import IncomingItem
from dealwatch.models.master_product import MasterProduct
from dealwatch.models.platform_product import PlatformProduct
from dealwatch.models.price_trend import PriceTrend, utc_day
from dealwatch.services.candidate_pool import CandidatePool
from dealwatch.services.deadline import Deadline, checkpoint
from dealwatch.storage.protocols import (
    CandidateStore,
    MasterProductStore,
    TrendStore,
    UnitOfWork,
)

logger = logging.getLogger("dealwatch.cleaning")


class DataCleaningService:
    """Record linkage and price integrity for the master catalog.

    Every operation checks its optional :class:`Deadline` before each
    storage call and aborts with ``OperationCancelledError`` once it
    has expired; there are no partial results.
    """

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        masters: MasterProductStore,
        candidates: CandidateStore,
        trends: TrendStore | None = None,
        matcher: TitleMatcher | None = None,
        validator: PriceValidator | None = None,
    ) -> None:
        self._uow = unit_of_work
        self._masters = masters
        self._candidates = candidates
        self._trends = trends
        self.matcher = matcher or TitleMatcher()
        self.validator = validator or PriceValidator()
        self.pool = CandidatePool(candidates, unit_of_work, self.matcher)
        self.platform_prefix = Settings.PLATFORM_PREFIX

    # ── Ingestion ────────────────────────────────────────

    def process_incoming_item(
        self,
        item: IncomingItem | None,
        region: str | None = None,
        deadline: Deadline | None = None,
    ) -> PlatformProduct | None:
        """Route one observation to a master product or the pool.

        Returns a :class:`PlatformProduct` when a master accepted the new
        price, and ``None`` when the item went to the candidate pool or
        the price validator refused the update.
        """
        if item is None:
            raise InvalidInputError("item cannot be None")

        region = region if region is not None else item.region
        raw_title = item.title
        clean_key = self.matcher.normalize_for_id(raw_title)

        checkpoint(deadline, "find masters")
        masters = self._masters.find_by_region(region)

        # Strategy A: title alone is convincing
        match = self.matcher.find_matching_master(raw_title, masters)
        # Strategy B: weaker title backed by an agreeing price
        if match is None:
            match = self.matcher.find_matching_master_with_price(
                raw_title, item.price, masters
            )

        if match is not None:
            return self._handle_master_match(match, item, deadline)

        self.pool.fold(region, raw_title, clean_key, item, deadline)
        return None

    def _handle_master_match(
        self,
        matched: MasterProduct,
        item: IncomingItem,
        deadline: Deadline | None,
    ) -> PlatformProduct | None:
        """Validate and apply a new price to a matched master."""
        with self._uow.transaction():
            checkpoint(deadline, "reload master")
            master = self._masters.find_by_id(matched.id)
            if master is None:
                logger.warning(
                    "Master %s disappeared before update", matched.id
                )
                return None

            final_price, error = self.validator.validate_update(
                master.price, item.price, master.update_time
            )
            if error is not None:
                logger.info(
                    "Price update for %s blocked (%s): %s",
                    master.id,
                    error.code.name,
                    error,
                )
                return None

            previous_update = master.update_time
            master.price = final_price
            master.status = item.status
            master.increment_trust_score()

            checkpoint(deadline, "update master")
            self._masters.update(master)

        return PlatformProduct(
            activity_id=master.id,
            platform=self.platform_prefix,
            region=master.region,
            title=master.standard_title,
            shop_name=Settings.SHOP_NAME,
            original_price=item.price,
            current_price=final_price,
            sales_status=item.status,
            activity_create_time=previous_update,
        )

    # ── Promotion ────────────────────────────────────────

    def promote_candidates(
        self,
        deadline: Deadline | None = None,
    ) -> dict[str, list[PlatformProduct]]:
        """Promote every eligible candidate into the master catalog.

        Each promotion (master create/update, trend sample, candidate
        delete) is its own transaction, so a crash mid-pass never
        leaves a promoted candidate in the pool.  A storage failure on
        one candidate is logged and the pass moves on.

        Returns promoted products grouped by region.
        """
        promoted: dict[str, list[PlatformProduct]] = defaultdict(list)

        checkpoint(deadline, "list candidates")
        candidates = self._candidates.list_all()

        for candidate in candidates:
            if not self.pool.is_eligible(candidate):
                continue
            title = self.pool.winning_title(candidate)
            if not title:
                continue

            try:
                with self._uow.transaction():
                    product = self._promote_one(
                        candidate, title, deadline
                    )
            except OperationCancelledError:
                raise
            except StorageError:
                logger.error(
                    "Promotion of candidate %s failed",
                    candidate.id,
                    exc_info=True,
                )
                continue

            promoted[candidate.region].append(product)

        total = sum(len(v) for v in promoted.values())
        if total:
            logger.info(
                "Promoted %d candidates across %d regions",
                total,
                len(promoted),
            )
        return dict(promoted)

    def _promote_one(
        self,
        candidate: CandidateItem,
        title: str,
        deadline: Deadline | None,
    ) -> PlatformProduct:
        """Create or refresh the master for *candidate*, then drop it."""
        unique_id = self.matcher.generate_id(self.platform_prefix, title)

        checkpoint(deadline, "find master")
        master = self._masters.find_by_id(unique_id)

        if master is None:
            master = MasterProduct(
                id=unique_id,
                region=candidate.region,
                platform=Settings.PLATFORM_NAME,
                standard_title=title,
                price=candidate.last_price,
                status=candidate.last_status,
                trust_score=candidate.total_occurrences,
            )
            checkpoint(deadline, "create master")
            self._masters.create(master)
            self._record_price_trend(master.id, master.price)
        else:
            old_price = master.price
            final_price, error = self.validator.validate_update(
                master.price, candidate.last_price, master.update_time
            )
            if error is not None:
                logger.warning(
                    "Keeping price %.2f of %s during promotion: %s",
                    old_price,
                    master.id,
                    error,
                )
                final_price = old_price
            master.price = final_price
            master.status = candidate.last_status

            checkpoint(deadline, "update master")
            self._masters.update(master)
            if final_price != old_price:
                self._record_price_trend(master.id, final_price)

        if candidate.id is not None:
            checkpoint(deadline, "delete candidate")
            self._candidates.delete_by_ids([candidate.id])

        logger.info(
            "Candidate %s promoted to %s '%s'",
            candidate.id,
            master.id,
            master.standard_title,
        )
        return PlatformProduct(
            activity_id=master.id,
            platform=self.platform_prefix,
            region=master.region,
            title=master.standard_title,
            shop_name=Settings.SHOP_NAME,
            original_price=master.price,
            current_price=master.price,
            sales_status=master.status,
            activity_create_time=master.update_time,
        )

    # ── Trends ───────────────────────────────────────────

    def _record_price_trend(self, activity_id: str, price: float) -> None:
        """Upsert today's sample; failures are logged, never raised."""
        if self._trends is None:
            return
        try:
            trend = PriceTrend.create(activity_id, price, utc_day())
            self._trends.upsert(trend)
        except (InvalidInputError, StorageError):
            logger.error(
                "Failed to record price trend for %s at %.2f",
                activity_id,
                price,
                exc_info=True,
            )

    def record_daily_trends(
        self,
        deadline: Deadline | None = None,
    ) -> int:
        """Snapshot every master's price for today (UTC).

        Returns the number of samples written.
        """
        if self._trends is None:
            return 0

        checkpoint(deadline, "list masters")
        masters = self._masters.list_all()
        today = utc_day()
        count = 0

        for master in masters:
            checkpoint(deadline, "upsert trend")
            try:
                trend = PriceTrend.create(master.id, master.price, today)
                self._trends.upsert(trend)
            except (InvalidInputError, StorageError):
                logger.error(
                    "Failed to record trend for %s at %.2f",
                    master.id,
                    master.price,
                    exc_info=True,
                )
                continue
            count += 1

        logger.info(
            "Recorded %d daily trends for %s", count, today.isoformat()
        )
        return count
