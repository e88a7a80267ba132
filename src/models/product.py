# src/models/product.py

"""Normalized product record shared by the pipeline, stores and CLI."""

from dataclasses import dataclass
from typing import Any

from src.config.settings import Settings

# Attribute name -> wire (camelCase) name
_WIRE_NAMES: dict[str, str] = {
    "title": "title",
    "asin": "asin",
    "price": "price",
    "supplier_price": "supplierPrice",
    "best_seller_rank": "bestSellerRank",
    "rating": "rating",
    "review_count": "reviewCount",
    "monthly_sales": "monthlySales",
    "image_url": "imageUrl",
    "marketplace_url": "marketplaceUrl",
    "supplier_url": "supplierUrl",
    "margin": "margin",
    "roi": "roi",
    "category": "category",
    "fallback": "fallback",
}


@dataclass
class ProductRecord:
    """A fully populated candidate product.

    ``margin`` and ``roi`` are whole percentages derived from
    ``price`` (sell) and ``supplier_price`` (cost).
    """

    title: str
    asin: str
    price: float
    supplier_price: float
    best_seller_rank: int
    rating: float
    review_count: int
    monthly_sales: int
    image_url: str
    marketplace_url: str
    supplier_url: str
    margin: int = 0
    roi: int = 0
    category: str = ""
    fallback: bool = False

    @property
    def profit(self) -> float:
        """Per-unit profit after the estimated marketplace fee."""
        fee = self.price * Settings.MARKETPLACE_FEE_RATE
        return round(self.price - self.supplier_price - fee, 2)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the camelCase wire shape."""
        return {
            wire: getattr(self, attr)
            for attr, wire in _WIRE_NAMES.items()
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProductRecord":
        """Rebuild a record previously produced by :meth:`to_dict`."""
        kwargs = {
            attr: data[wire]
            for attr, wire in _WIRE_NAMES.items()
            if wire in data
        }
        return cls(**kwargs)
