# dealwatch/services/notification_checker.py

"""Price-target subscriptions and the periodic alert sweep."""

import logging
from datetime import datetime

from dealwatch.errors import (
    DealwatchError,
    InvalidInputError,
    OperationCancelledError,
)
from dealwatch.models.notification import NotificationConfig
from dealwatch.notify.bark_client import BarkClient
from dealwatch.services.deadline import Deadline, checkpoint
from dealwatch.storage.master_product_repo import MasterProductRepository
from dealwatch.storage.notification_repo import (
    BlockedRepository,
    NotificationRepository,
    UserSettingsRepository,
)

logger = logging.getLogger("dealwatch.notify")


class NotificationChecker:
    """Alerts users when a tracked product reaches their target price.

    At most one alert per subscription per local calendar day.
    """

    def __init__(
        self,
        configs: NotificationRepository,
        masters: MasterProductRepository,
        user_settings: UserSettingsRepository,
        blocked: BlockedRepository,
        bark: BarkClient,
    ) -> None:
        self._configs = configs
        self._masters = masters
        self._user_settings = user_settings
        self._blocked = blocked
        self._bark = bark

    # ── Subscriptions ────────────────────────────────────

    def subscribe(
        self, user_id: str, activity_id: str, target_price: float,
    ) -> NotificationConfig:
        """Create a subscription or change its target price."""
        if not user_id or not activity_id:
            raise InvalidInputError("user_id and activity_id are required")
        if target_price <= 0:
            raise InvalidInputError(
                f"target price must be positive: {target_price}"
            )
        config = NotificationConfig(
            activity_id=activity_id,
            user_id=user_id,
            target_price=target_price,
        )
        self._configs.upsert(config)
        logger.info(
            "User %s tracks %s at %.2f", user_id, activity_id, target_price
        )
        return config

    def unsubscribe(self, user_id: str, activity_id: str) -> None:
        """Drop a subscription; unknown pairs are ignored."""
        self._configs.delete(activity_id, user_id)

    def get(
        self, user_id: str, activity_id: str,
    ) -> NotificationConfig | None:
        """Return one subscription, or ``None``."""
        return self._configs.find(activity_id, user_id)

    # ── Sweep ────────────────────────────────────────────

    def check_and_notify(
        self,
        now: datetime | None = None,
        deadline: Deadline | None = None,
    ) -> int:
        """Send every alert that is due and return how many went out."""
        current = now or datetime.now().astimezone()

        checkpoint(deadline, "list notification configs")
        configs = self._configs.list_all()

        sent = 0
        for config in configs:
            try:
                checkpoint(deadline, "check notification")
                if not self._check_single(config, current):
                    continue
                self._configs.update_notify_time(
                    config.activity_id, config.user_id, current
                )
            except OperationCancelledError:
                raise
            except DealwatchError as exc:
                logger.error(
                    "Notification %s/%s failed: %s",
                    config.user_id,
                    config.activity_id,
                    exc,
                )
                continue
            sent += 1

        logger.info(
            "Notification sweep: %d of %d subscriptions alerted",
            sent,
            len(configs),
        )
        return sent

    def _check_single(
        self, config: NotificationConfig, now: datetime,
    ) -> bool:
        """Return True once an alert for *config* has been delivered."""
        if config.has_notified_today(now):
            return False

        if self._blocked.exists(config.activity_id, config.user_id):
            logger.debug(
                "Skipping blocked product %s for %s",
                config.activity_id,
                config.user_id,
            )
            return False

        settings = self._user_settings.get(config.user_id)
        if settings is None:
            logger.error("No settings for user %s", config.user_id)
            return False

        product = self._masters.find_by_id(config.activity_id)
        if product is None:
            logger.warning(
                "Product %s not found for notification", config.activity_id
            )
            return False

        if not product.is_on_sale():
            return False
        if not config.should_notify(product.price, now):
            return False

        self._bark.send_price_alert(settings.bark_key, product)
        return True
