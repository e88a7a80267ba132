# tests/test_product_filter.py

"""Tests for post-search filtering and sorting."""

import unittest

from src.filters.product_filter import ProductFilter
from src.filters.product_normalizer import ProductNormalizer
from src.models.product import ProductRecord


def _batch() -> list[ProductRecord]:
    raw = [
        {"title": "Cheap", "price": 10.0, "supplierPrice": 2.0,
         "bestSellerRank": 50_000, "rating": 3.9, "reviewCount": 40},
        {"title": "Mid", "price": 30.0, "supplierPrice": 12.0,
         "bestSellerRank": 2_000, "rating": 4.6, "reviewCount": 900},
        {"title": "Pricey", "price": 80.0, "supplierPrice": 50.0,
         "bestSellerRank": 800, "rating": 4.8, "reviewCount": 5_000},
    ]
    return ProductNormalizer.normalize_batch(raw, "Tech")


class TestProductFilterApply(unittest.TestCase):
    """ProductFilter.apply thresholds."""

    def test_no_filters_keeps_all(self) -> None:
        """None or empty filters are a pass-through."""
        products = _batch()
        self.assertEqual(ProductFilter.apply(products, None), (products, 0))
        self.assertEqual(ProductFilter.apply(products, {}), (products, 0))

    def test_price_range(self) -> None:
        """minPrice and maxPrice bound the sell price."""
        kept, excluded = ProductFilter.apply(
            _batch(), {"minPrice": 20, "maxPrice": 50},
        )
        self.assertEqual([p.title for p in kept], ["Mid"])
        self.assertEqual(excluded, 2)

    def test_rank_reviews_rating(self) -> None:
        """maxBSR, minReviews and minRating combine."""
        kept, _ = ProductFilter.apply(
            _batch(), {"maxBSR": 5_000, "minReviews": 1_000, "minRating": 4.5},
        )
        self.assertEqual([p.title for p in kept], ["Pricey"])

    def test_min_margin(self) -> None:
        """minMargin compares whole-percent margins."""
        kept, _ = ProductFilter.apply(_batch(), {"minMargin": 70})
        self.assertEqual([p.title for p in kept], ["Cheap"])

    def test_blank_and_junk_thresholds_ignored(self) -> None:
        """Empty strings and non-numeric values do not filter."""
        products = _batch()
        kept, excluded = ProductFilter.apply(
            products, {"minPrice": "", "maxBSR": "any", "sortBy": "roi"},
        )
        self.assertEqual(len(kept), 3)
        self.assertEqual(excluded, 0)

    def test_string_thresholds_coerced(self) -> None:
        """Numeric strings from form input still apply."""
        kept, _ = ProductFilter.apply(_batch(), {"minPrice": "$25"})
        self.assertEqual(len(kept), 2)


class TestProductFilterSort(unittest.TestCase):
    """ProductFilter.sort_records ordering."""

    def test_default_is_profit_descending(self) -> None:
        """Without sort_by the highest profit comes first."""
        ordered = ProductFilter.sort_records(_batch())
        profits = [p.profit for p in ordered]
        self.assertEqual(profits, sorted(profits, reverse=True))

    def test_bsr_ascending(self) -> None:
        """Rank sorts best (lowest) first."""
        ordered = ProductFilter.sort_records(_batch(), "bsr")
        self.assertEqual([p.title for p in ordered], ["Pricey", "Mid", "Cheap"])

    def test_unknown_key_falls_back(self) -> None:
        """An unknown sort key uses profit."""
        products = _batch()
        self.assertEqual(
            ProductFilter.sort_records(products, "colour"),
            ProductFilter.sort_records(products, "profit"),
        )


if __name__ == "__main__":
    unittest.main()
