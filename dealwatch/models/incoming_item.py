# dealwatch/models/incoming_item.py

"""Raw observation pushed or pulled from an upstream platform."""

from dataclasses import dataclass


@dataclass
class IncomingItem:
    """A single noisy ``(title, price, status)`` observation."""

    title: str
    price: float
    status: int = 1
    crawl_timestamp: int = 0
    region: str = ""
