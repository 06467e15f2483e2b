# dealwatch/config/settings.py

"""Central configuration for the dealwatch pipeline."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    """Read a float override from ``DEALWATCH_<name>``."""
    raw = os.getenv(f"DEALWATCH_{name}")
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    """Read an int override from ``DEALWATCH_<name>``."""
    raw = os.getenv(f"DEALWATCH_{name}")
    return int(raw) if raw else default


def _env_str(name: str, default: str) -> str:
    """Read a string override from ``DEALWATCH_<name>``."""
    return os.getenv(f"DEALWATCH_{name}") or default


class Settings:
    """Central configuration for the dealwatch pipeline."""

    # --- Title matching ---
    SIMILARITY_THRESHOLD: float = _env_float("SIMILARITY_THRESHOLD", 0.75)
    MID_SIMILARITY_THRESHOLD: float = _env_float("MID_SIMILARITY_THRESHOLD", 0.5)
    PRICE_MATCH_THRESHOLD: float = _env_float("PRICE_MATCH_THRESHOLD", 1.0)
    PROMOTION_THRESHOLD: int = _env_int("PROMOTION_THRESHOLD", 3)

    # --- Price validation (Dutch auction model) ---
    MAX_DROP_RATIO: float = _env_float("MAX_DROP_RATIO", 0.5)   # Same-day floor ratio
    MAX_RISE_RATIO: float = _env_float("MAX_RISE_RATIO", 5.0)   # Same-day ceiling ratio
    MIN_PRICE: float = _env_float("MIN_PRICE", 1.0)             # Absolute floor
    RISE_GUARD_MIN_PRICE: float = 10.0                          # Rise check needs this base

    # --- Catalog identity ---
    PLATFORM_PREFIX: str = _env_str("PLATFORM_PREFIX", "DT")
    PLATFORM_NAME: str = _env_str("PLATFORM_NAME", "探探糖")
    SHOP_NAME: str = _env_str("SHOP_NAME", "DT生活精选")

    # --- Ingestion ---
    MAX_PUSH_ITEMS: int = _env_int("MAX_PUSH_ITEMS", 1000)

    # --- Jobs ---
    JOB_TIMEOUT: float = _env_float("JOB_TIMEOUT", 120.0)        # Seconds per job run
    JOB_STALE_AFTER: float = _env_float("JOB_STALE_AFTER", 1800.0)
    JOB_INTERVALS: dict[str, float] = {
        "promote-candidates": _env_float("PROMOTE_INTERVAL", 300.0),
        "price-check": _env_float("PRICE_CHECK_INTERVAL", 300.0),
        "record-trends": _env_float("RECORD_TRENDS_INTERVAL", 86400.0),
    }

    # --- Notifications ---
    BARK_URL: str = _env_str("BARK_URL", "https://api.day.app")
    BARK_TIMEOUT: int = _env_int("BARK_TIMEOUT", 10)
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DB_PATH: Path = Path(_env_str("DB_PATH", str(BASE_DIR / "data" / "dealwatch.db")))
    LOGS_DIR: Path = BASE_DIR / "logs"
    LOG_LEVEL: str = _env_str("LOG_LEVEL", "DEBUG")
