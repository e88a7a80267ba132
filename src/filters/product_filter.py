# src/filters/product_filter.py

"""Post-search filtering and sorting of product records."""

import logging
from collections.abc import Callable
from typing import Any

from src.filters.product_normalizer import coerce_number
from src.models.product import ProductRecord

logger = logging.getLogger("ark_research.filters")

# filter key -> (predicate builder over the threshold)
_RULES: dict[str, Callable[[float], Callable[[ProductRecord], bool]]] = {
    "minPrice": lambda t: lambda p: p.price >= t,
    "maxPrice": lambda t: lambda p: p.price <= t,
    "minMargin": lambda t: lambda p: p.margin >= t,
    "maxBSR": lambda t: lambda p: p.best_seller_rank <= t,
    "minReviews": lambda t: lambda p: p.review_count >= t,
    "minRating": lambda t: lambda p: p.rating >= t,
}

# sort key -> (key function, descending)
SORT_KEYS: dict[str, tuple[Callable[[ProductRecord], float], bool]] = {
    "profit": (lambda p: p.profit, True),
    "roi": (lambda p: p.roi, True),
    "margin": (lambda p: p.margin, True),
    "bsr": (lambda p: p.best_seller_rank, False),
    "price": (lambda p: p.price, False),
    "rating": (lambda p: p.rating, True),
    "reviews": (lambda p: p.review_count, True),
}

DEFAULT_SORT = "profit"


class ProductFilter:
    """Apply user-defined thresholds to a batch of records."""

    @staticmethod
    def apply(
        products: list[ProductRecord],
        filters: dict[str, Any] | None,
    ) -> tuple[list[ProductRecord], int]:
        """Drop records failing any threshold in *filters*.

        Blank or non-numeric thresholds are ignored.  Returns the kept
        records and the count of excluded ones.
        """
        if not filters:
            return products, 0

        predicates: list[Callable[[ProductRecord], bool]] = []
        for key, build in _RULES.items():
            threshold = coerce_number(filters.get(key))
            if threshold is not None:
                predicates.append(build(threshold))

        if not predicates:
            return products, 0

        kept = [p for p in products if all(pred(p) for pred in predicates)]
        excluded = len(products) - len(kept)
        if excluded:
            logger.info(
                "Filtered out %d products by thresholds %s",
                excluded,
                filters,
            )
        return kept, excluded

    @staticmethod
    def sort_records(
        products: list[ProductRecord],
        sort_by: str | None = None,
    ) -> list[ProductRecord]:
        """Order records by *sort_by*, falling back to profit."""
        key_fn, descending = SORT_KEYS.get(
            (sort_by or DEFAULT_SORT).lower(), SORT_KEYS[DEFAULT_SORT]
        )
        return sorted(products, key=key_fn, reverse=descending)
