# src/storage/file_manager.py

"""Handles exporting search results to disk."""

import csv
import json
import logging
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings
from src.models.product import ProductRecord

logger = logging.getLogger("ark_research.storage")

_CSV_HEADER = [
    "Title", "ASIN", "Price", "Supplier Price", "Profit", "Margin %",
    "ROI %", "BSR", "Rating", "Reviews", "Marketplace URL", "Supplier URL",
]


def _slug(term: str) -> str:
    return term.strip().replace(" ", "_").replace("/", "_") or "search"


class FileManager:
    """Handles exporting search results to disk."""

    def __init__(self, results_dir: Path | None = None) -> None:
        self.results_dir: Path = results_dir or Settings.RESULTS_DIR
        self.results_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("FileManager initialised, results_dir=%s", self.results_dir)

    def save_results(
        self, term: str, products: list[ProductRecord],
    ) -> Path:
        """Save records to a timestamped JSON file in wire format."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = self.results_dir / f"{_slug(term)}_{timestamp}.json"

        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(
                [p.to_dict() for p in products],
                f,
                ensure_ascii=False,
                indent=2,
            )

        logger.info(
            "Saved %d products for '%s' to %s",
            len(products),
            term,
            filepath,
        )
        return filepath

    def export_csv(
        self, term: str, products: list[ProductRecord],
    ) -> Path:
        """Export records to a CSV file sorted by profit, best first."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = self.results_dir / f"export_{_slug(term)}_{timestamp}.csv"

        sorted_products = sorted(
            products, key=lambda p: p.profit, reverse=True,
        )

        with open(filepath, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(_CSV_HEADER)
            for p in sorted_products:
                writer.writerow([
                    p.title, p.asin, p.price, p.supplier_price, p.profit,
                    p.margin, p.roi, p.best_seller_rank, p.rating,
                    p.review_count, p.marketplace_url, p.supplier_url,
                ])

        logger.info(
            "Exported %d products for '%s' to %s",
            len(products),
            term,
            filepath,
        )
        return filepath
