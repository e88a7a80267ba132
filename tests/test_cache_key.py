# tests/test_cache_key.py

"""Tests for cache key derivation."""

import re
import unittest

from src.storage.cache_key import canonical_filters, derive_key


class TestDeriveKey(unittest.TestCase):
    """derive_key unit tests."""

    def test_category_and_keyword(self) -> None:
        """Layout is category_keyword, lower-cased and sanitised."""
        self.assertEqual(
            derive_key("Fitness", "resistance bands"),
            "fitness_resistance_bands",
        )

    def test_defaults(self) -> None:
        """Missing keyword and category use fixed placeholders."""
        self.assertEqual(derive_key("Tech"), "tech_default")
        self.assertEqual(derive_key(None, "usb hub"), "general_usb_hub")
        self.assertEqual(derive_key("", ""), "general_default")

    def test_only_safe_characters(self) -> None:
        """Every character outside [a-z0-9] becomes an underscore."""
        key = derive_key("Home & Garden", "Dog-Toys 🐶!", {"minPrice": 10})
        self.assertRegex(key, re.compile(r"^[a-z0-9_]+$"))

    def test_idempotent(self) -> None:
        """Equal inputs yield equal keys."""
        args = ("Pets", "cat tree", {"maxBSR": 5000})
        self.assertEqual(derive_key(*args), derive_key(*args))

    def test_filter_order_irrelevant(self) -> None:
        """Differently-ordered filter dicts produce the same key."""
        a = derive_key("Pets", "cat", {"minPrice": 10, "maxPrice": 50})
        b = derive_key("Pets", "cat", {"maxPrice": 50, "minPrice": 10})
        self.assertEqual(a, b)

    def test_filters_change_key(self) -> None:
        """A filter set distinguishes the key from the unfiltered one."""
        self.assertNotEqual(
            derive_key("Pets", "cat"),
            derive_key("Pets", "cat", {"minPrice": 10}),
        )

    def test_blank_filters_ignored(self) -> None:
        """Empty or blank-valued filters do not alter the key."""
        base = derive_key("Pets", "cat")
        self.assertEqual(derive_key("Pets", "cat", {}), base)
        self.assertEqual(
            derive_key("Pets", "cat", {"minPrice": "", "maxBSR": None}),
            base,
        )


class TestCanonicalFilters(unittest.TestCase):
    """canonical_filters serialisation."""

    def test_sorted_compact_json(self) -> None:
        """Keys are sorted and separators compact."""
        self.assertEqual(
            canonical_filters({"b": 1, "a": 2}), '{"a":2,"b":1}',
        )

    def test_none(self) -> None:
        """None serialises to an empty string."""
        self.assertEqual(canonical_filters(None), "")


if __name__ == "__main__":
    unittest.main()
