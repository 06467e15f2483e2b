# dealwatch/notify/bark_client.py

"""Bark push-notification client built on curl_cffi."""

import logging
from urllib.parse import quote_plus

from curl_cffi import requests as curl_requests

from dealwatch.config.settings import Settings
from dealwatch.errors import NotificationSendError
from dealwatch.models.master_product import MasterProduct

logger = logging.getLogger("dealwatch.notify")


def normalize_bark_key(raw: str) -> str:
    """Reduce a pasted Bark URL to its device key.

    ``https://api.day.app/AbCdEf`` and ``AbCdEf`` both yield ``AbCdEf``.
    """
    key = raw.strip()
    if key.startswith("http"):
        return key.rstrip("/").rsplit("/", 1)[-1]
    return key


def format_price_alert(product: MasterProduct) -> str:
    """Render the one-line alert text for *product*."""
    return (
        f"【{product.platform} {product.region} "
        f"¥{product.price:.2f}】{product.standard_title}"
    )


class BarkClient:
    """Sends alerts to the Bark iOS push service."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: int | None = None,
        session: curl_requests.Session | None = None,
    ) -> None:
        self.base_url = (base_url or Settings.BARK_URL).rstrip("/")
        self.timeout = Settings.BARK_TIMEOUT if timeout is None else timeout
        self.session = session or curl_requests.Session(
            impersonate=Settings.IMPERSONATE_BROWSER
        )

    def build_url(self, device_key: str, message: str) -> str:
        """Return the full Bark GET URL for *message*."""
        return (
            f"{self.base_url}/{normalize_bark_key(device_key)}/"
            f"{quote_plus(message)}?level=critical&volume=5"
        )

    def send(self, device_key: str, message: str) -> None:
        """Deliver *message*; raises ``NotificationSendError`` on failure.

        An empty device key is treated as "delivery disabled": the
        message is logged and counts as sent.
        """
        if not device_key.strip():
            logger.info("Bark key not configured, skipping send: %s", message)
            return

        url = self.build_url(device_key, message)
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except Exception as exc:
            # curl_cffi surfaces transport failures under several types
            logger.error("Bark request failed: %s", exc)
            raise NotificationSendError(f"bark request failed: {exc}") from exc

        if resp.status_code != 200:
            logger.error("Bark returned HTTP %d", resp.status_code)
            raise NotificationSendError(
                f"bark returned HTTP {resp.status_code}"
            )
        logger.info("Bark notification sent")

    def send_price_alert(self, device_key: str, product: MasterProduct) -> None:
        """Format and deliver the alert for *product*."""
        message = format_price_alert(product)
        logger.info("Sending price alert for %s: %s", product.id, message)
        self.send(device_key, message)

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()
