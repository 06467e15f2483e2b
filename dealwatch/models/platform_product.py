# dealwatch/models/platform_product.py

"""Outbound view of an accepted catalog update."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class PlatformProduct:
    """Describes a master product after a match or a promotion."""

    activity_id: str
    platform: str
    region: str
    title: str
    shop_name: str
    original_price: float
    current_price: float
    sales_status: int
    activity_create_time: datetime | None = None
