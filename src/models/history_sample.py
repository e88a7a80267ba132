# src/models/history_sample.py

"""Point-in-time market observation for price/rank history tracking."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class HistorySample:
    """A single observation of a product's market signals."""

    asin: str
    title: str
    price: float
    best_seller_rank: int
    rating: float
    review_count: int
    timestamp: datetime
