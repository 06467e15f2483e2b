# tests/test_settings.py

"""Tests for the Settings configuration class."""

import unittest
from pathlib import Path

from dealwatch.config.settings import Settings


class TestSettings(unittest.TestCase):
    """Verify Settings constants and job registry."""

    def test_similarity_thresholds_ordered(self) -> None:
        """The Mid band must sit strictly below the High band."""
        self.assertGreater(Settings.SIMILARITY_THRESHOLD, 0)
        self.assertLessEqual(Settings.SIMILARITY_THRESHOLD, 1)
        self.assertLess(
            Settings.MID_SIMILARITY_THRESHOLD,
            Settings.SIMILARITY_THRESHOLD,
        )

    def test_promotion_threshold_positive_int(self) -> None:
        """PROMOTION_THRESHOLD must be a positive integer."""
        self.assertIsInstance(Settings.PROMOTION_THRESHOLD, int)
        self.assertGreaterEqual(Settings.PROMOTION_THRESHOLD, 1)

    def test_price_ratios_sane(self) -> None:
        """Drop ratio is a fraction and rise ratio a multiplier."""
        self.assertGreater(Settings.MAX_DROP_RATIO, 0)
        self.assertLess(Settings.MAX_DROP_RATIO, 1)
        self.assertGreater(Settings.MAX_RISE_RATIO, 1)

    def test_min_price_non_negative(self) -> None:
        """MIN_PRICE is the absolute floor and cannot be negative."""
        self.assertGreaterEqual(Settings.MIN_PRICE, 0)

    def test_max_push_items(self) -> None:
        """Push batches are capped at 1000 items by default."""
        self.assertEqual(Settings.MAX_PUSH_ITEMS, 1000)

    def test_job_intervals_cover_every_job(self) -> None:
        """Each background job has a positive interval."""
        for name in ("promote-candidates", "record-trends", "price-check"):
            with self.subTest(job=name):
                self.assertIn(name, Settings.JOB_INTERVALS)
                self.assertGreater(Settings.JOB_INTERVALS[name], 0)

    def test_stale_after_is_thirty_minutes(self) -> None:
        """Jobs older than 30 minutes count as stale."""
        self.assertEqual(Settings.JOB_STALE_AFTER, 1800.0)

    def test_path_constants_are_paths(self) -> None:
        """Path-typed settings are Path instances."""
        self.assertIsInstance(Settings.BASE_DIR, Path)
        self.assertIsInstance(Settings.DB_PATH, Path)
        self.assertIsInstance(Settings.LOGS_DIR, Path)

    def test_impersonate_browser_is_string(self) -> None:
        """IMPERSONATE_BROWSER must be a non-empty string."""
        self.assertIsInstance(Settings.IMPERSONATE_BROWSER, str)
        self.assertTrue(len(Settings.IMPERSONATE_BROWSER) > 0)

    def test_bark_url_is_https(self) -> None:
        """The Bark endpoint is an https URL without a trailing slash."""
        self.assertTrue(Settings.BARK_URL.startswith("https://"))
        self.assertFalse(Settings.BARK_URL.endswith("/"))


if __name__ == "__main__":
    unittest.main()
