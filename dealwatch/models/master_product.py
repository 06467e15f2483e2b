# dealwatch/models/master_product.py

"""Canonical, de-duplicated product in the catalog."""

from dataclasses import dataclass
from datetime import datetime

SALES_STATUS_SOLD = 0
SALES_STATUS_ON_SALE = 1


@dataclass
class MasterProduct:
    """A catalog entry users track and get notified about.

    ``price`` is only ever assigned from the price validator's accepted
    output (or from a candidate's snapshot at creation time).
    """

    id: str
    region: str
    platform: str
    standard_title: str
    price: float
    status: int = SALES_STATUS_ON_SALE
    trust_score: int = 0
    create_time: datetime | None = None
    update_time: datetime | None = None

    def is_on_sale(self) -> bool:
        """Return True if the product is currently on sale."""
        return self.status == SALES_STATUS_ON_SALE

    def increment_trust_score(self) -> None:
        """Count one more corroborating observation."""
        self.trust_score += 1
