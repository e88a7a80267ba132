# src/filters/fallback_generator.py

"""Synthetic product batches used when the upstream search fails."""

import logging

from src.config.settings import Settings
from src.filters.product_normalizer import (
    compute_margin_roi,
    generate_asin,
    supplier_search_url,
)
from src.models.product import ProductRecord

logger = logging.getLogger("ark_research.fallback")

ADJECTIVES: tuple[str, ...] = (
    "Premium",
    "Professional",
    "Deluxe",
    "Ultimate",
    "Advanced",
    "Essential",
    "Compact",
    "Portable",
)


class FallbackGenerator:
    """Build placeholder records with a plausible, index-driven spread.

    Cost and rank rise with the index while sales, rating and review
    counts fall, so the batch reads like a ranked result list rather
    than eight identical rows.  Only ASINs are random.
    """

    @staticmethod
    def _name(term: str, index: int) -> str:
        adjective = ADJECTIVES[index % len(ADJECTIVES)]
        name = f"{adjective} {term}"
        cycle = index // len(ADJECTIVES)
        if cycle:
            name = f"{name} #{cycle + 1}"
        return name

    @staticmethod
    def generate(
        category: str,
        keyword: str | None = None,
        count: int = Settings.RESULT_COUNT,
    ) -> list[ProductRecord]:
        """Return exactly *count* synthetic records; performs no I/O."""
        term = (keyword or category or "Product").strip().title()
        term = term or "Product"
        records: list[ProductRecord] = []

        for i in range(max(count, 0)):
            name = FallbackGenerator._name(term, i)
            asin = generate_asin()
            price = round(19.99 + 3 * i, 2)
            cost = round(6.5 + 1.25 * i, 2)
            margin, roi = compute_margin_roi(price, cost)
            records.append(ProductRecord(
                title=name,
                asin=asin,
                price=price,
                supplier_price=cost,
                best_seller_rank=2500 + 1800 * i,
                rating=round(max(4.8 - 0.05 * i, 3.5), 1),
                review_count=max(3200 - 300 * i, 40),
                monthly_sales=max(1200 - 110 * i, 50),
                image_url=Settings.IMAGE_URL_TEMPLATE.format(asin=asin),
                marketplace_url=(
                    Settings.MARKETPLACE_URL_TEMPLATE.format(asin=asin)
                ),
                supplier_url=supplier_search_url(name),
                margin=margin,
                roi=roi,
                category=category,
                fallback=True,
            ))

        logger.info(
            "Generated %d fallback records for '%s'", len(records), term,
        )
        return records
