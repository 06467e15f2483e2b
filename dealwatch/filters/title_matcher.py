# dealwatch/filters/title_matcher.py

"""Fuzzy title matching, vote election and catalog ID derivation."""

import enum
import hashlib
import logging
import math
import re
from collections.abc import Callable, Iterable, Mapping
from typing import TypeVar

from rapidfuzz.distance import Levenshtein

from dealwatch.config.settings import Settings
from dealwatch.models.master_product import MasterProduct

logger = logging.getLogger("dealwatch.filters")

_T = TypeVar("_T")


class MatchLevel(enum.Enum):
    """Two-tier similarity classification."""

    HIGH = "high"
    MID = "mid"
    LOW = "low"


class TitleMatcher:
    """Compare noisy listing titles from mixed Latin/CJK sources.

    Distances are computed over Unicode code points, so one Chinese
    character counts as one edit, not three UTF-8 bytes.
    """

    # Everything except ASCII letters, digits and CJK Unified Ideographs
    _ID_STRIP_RE = re.compile(r"[^a-zA-Z0-9\u4e00-\u9fff]")

    def __init__(
        self,
        high_threshold: float | None = None,
        mid_threshold: float | None = None,
        price_threshold: float | None = None,
        promotion_threshold: int | None = None,
    ) -> None:
        self.high_threshold = (
            Settings.SIMILARITY_THRESHOLD
            if high_threshold is None else high_threshold
        )
        self.mid_threshold = (
            Settings.MID_SIMILARITY_THRESHOLD
            if mid_threshold is None else mid_threshold
        )
        self.price_threshold = (
            Settings.PRICE_MATCH_THRESHOLD
            if price_threshold is None else price_threshold
        )
        self.promotion_threshold = (
            Settings.PROMOTION_THRESHOLD
            if promotion_threshold is None else promotion_threshold
        )

    # ── Normalisation ────────────────────────────────────

    @staticmethod
    def normalize_for_id(title: str) -> str:
        """Strip every character that is not ASCII alnum or CJK."""
        if not title:
            return ""
        return TitleMatcher._ID_STRIP_RE.sub("", title)

    @staticmethod
    def normalize_title(title: str) -> str:
        """Trim and collapse runs of whitespace to a single space."""
        return " ".join(title.split())

    def generate_id(self, prefix: str, title: str) -> str:
        """Derive the deterministic catalog ID for *title*."""
        cleaned = self.normalize_for_id(title)
        digest = hashlib.md5(cleaned.encode("utf-8")).hexdigest()
        return f"{prefix}_{digest}"

    # ── Similarity ───────────────────────────────────────

    @staticmethod
    def similarity(a: str, b: str) -> float:
        """Return ``1 - levenshtein / max_len`` in ``[0, 1]``.

        Two empty strings score 0.0, not 1.0: malformed titles must
        never match each other.
        """
        if not a or not b:
            return 0.0
        if a == b:
            return 1.0
        distance = Levenshtein.distance(a, b)
        return 1.0 - distance / max(len(a), len(b))

    def classify(self, a: str, b: str) -> MatchLevel:
        """Bucket the similarity of *a* and *b* into High / Mid / Low."""
        if not a or not b:
            return MatchLevel.LOW
        score = self.similarity(a, b)
        if score >= self.high_threshold:
            return MatchLevel.HIGH
        if score >= self.mid_threshold:
            return MatchLevel.MID
        return MatchLevel.LOW

    def is_high_similarity(self, a: str, b: str) -> bool:
        """Return True when *a* and *b* classify as High."""
        return self.classify(a, b) is MatchLevel.HIGH

    def is_mid_similarity(self, a: str, b: str) -> bool:
        """Return True when *a* and *b* classify as Mid."""
        return self.classify(a, b) is MatchLevel.MID

    def price_match(self, p1: float, p2: float) -> bool:
        """Return True if the prices differ by at most the threshold.

        NaN or infinite inputs never match.
        """
        if not (math.isfinite(p1) and math.isfinite(p2)):
            return False
        return abs(p1 - p2) <= self.price_threshold

    # ── Voting ───────────────────────────────────────────

    @staticmethod
    def elect_title(votes: Mapping[str, int]) -> str:
        """Return the most-voted title; ties go to the longer UTF-8 encoding.

        Empty titles and non-positive counts are ignored, so a vote map
        holding nothing valid elects ``""``.
        """
        winner = ""
        max_votes = 0
        for title, count in votes.items():
            if not title or count <= 0:
                continue
            if count > max_votes or (
                count == max_votes
                and len(title.encode("utf-8")) > len(winner.encode("utf-8"))
            ):
                max_votes = count
                winner = title
        return winner

    def should_promote(self, occurrences: int) -> bool:
        """Return True once *occurrences* reaches the promotion threshold."""
        return occurrences >= self.promotion_threshold

    # ── Catalog lookup ───────────────────────────────────

    def find_high_match(
        self,
        key: str,
        items: Iterable[_T],
        key_of: Callable[[_T], str],
    ) -> _T | None:
        """Return the first item whose key is High-similar to *key*."""
        if not key:
            return None
        for item in items:
            if self.is_high_similarity(key, key_of(item)):
                return item
        return None

    def find_matching_master(
        self,
        title: str,
        masters: Iterable[MasterProduct],
    ) -> MasterProduct | None:
        """Strategy A: first master with a High-similarity title."""
        return self.find_high_match(
            title, masters, lambda m: m.standard_title
        )

    def find_matching_master_with_price(
        self,
        title: str,
        price: float,
        masters: Iterable[MasterProduct],
    ) -> MasterProduct | None:
        """Strategy B: first Mid-similarity master whose price agrees.

        Catches typo'd titles that carry a corroborating price, without
        letting unrelated cheap items match on price alone.
        """
        if not title:
            return None
        for master in masters:
            if self.is_mid_similarity(
                title, master.standard_title
            ) and self.price_match(price, master.price):
                logger.debug(
                    "Title+price match '%s' -> %s (%.2f)",
                    title,
                    master.id,
                    master.price,
                )
                return master
        return None

