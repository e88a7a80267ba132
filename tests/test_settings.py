# tests/test_settings.py

"""Tests for the Settings configuration class."""

import unittest
from pathlib import Path

from src.config.settings import Settings


class TestSettings(unittest.TestCase):
    """Verify Settings constants."""

    def test_request_timeout_is_positive_int(self) -> None:
        """REQUEST_TIMEOUT must be a positive integer."""
        self.assertIsInstance(Settings.REQUEST_TIMEOUT, int)
        self.assertGreater(Settings.REQUEST_TIMEOUT, 0)

    def test_result_count(self) -> None:
        """Searches ask for, and fall back to, eight products."""
        self.assertEqual(Settings.RESULT_COUNT, 8)

    def test_cache_ttl_is_a_day(self) -> None:
        """Cached searches live 24 hours."""
        self.assertEqual(Settings.CACHE_TTL_HOURS, 24)

    def test_temperature_is_low(self) -> None:
        """Search temperature stays low for parseable output."""
        self.assertLessEqual(Settings.SEARCH_TEMPERATURE, 0.3)

    def test_prompt_ranges_consistent(self) -> None:
        """Prompt bounds are ordered."""
        self.assertLess(Settings.PROMPT_MIN_PRICE, Settings.PROMPT_MAX_PRICE)
        self.assertLess(Settings.PROMPT_MIN_RATING, Settings.PROMPT_MAX_RATING)

    def test_url_templates_have_placeholders(self) -> None:
        """Link templates expose their format fields."""
        self.assertIn("{asin}", Settings.MARKETPLACE_URL_TEMPLATE)
        self.assertIn("{asin}", Settings.IMAGE_URL_TEMPLATE)
        self.assertIn("{query}", Settings.SUPPLIER_SEARCH_URL_TEMPLATE)

    def test_paths_are_paths(self) -> None:
        """Directory settings are Path objects."""
        for name in ("BASE_DIR", "DATA_DIR", "DB_PATH", "RESULTS_DIR", "LOGS_DIR"):
            with self.subTest(name=name):
                self.assertIsInstance(getattr(Settings, name), Path)


if __name__ == "__main__":
    unittest.main()
