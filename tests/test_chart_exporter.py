# tests/test_chart_exporter.py

"""Tests for the Plotly chart exporter."""

import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

from src.filters.product_normalizer import ProductNormalizer
from src.storage.chart_exporter import (
    export_history_chart,
    export_watchlist_dashboard,
)
from src.storage.database import Database
from src.storage.research_db import ResearchDB


class _DBMixin:
    """Provide an in-memory ResearchDB with a few days of samples."""

    db: Database
    research: ResearchDB

    def _setup_db(self) -> None:
        self.db = Database(Path(":memory:"))
        self.research = ResearchDB(self.db)
        start = datetime.now(timezone.utc) - timedelta(days=5)
        for day in range(5):
            batch = ProductNormalizer.normalize_batch(
                [
                    {
                        "title": f"Yoga Mat {i}",
                        "asin": f"B0MAT0000{i}",
                        "price": 20.0 + i + day,
                        "bestSellerRank": 3000 - day * 100,
                    }
                    for i in range(2)
                ],
                "Fitness",
            )
            self.research.record_samples(batch, start + timedelta(days=day))


class TestExportHistoryChart(_DBMixin, unittest.TestCase):
    """Single-ASIN chart export."""

    def setUp(self) -> None:
        self._setup_db()

    def tearDown(self) -> None:
        self.db.close()

    @patch("src.storage.chart_exporter.webbrowser")
    def test_generates_html_file(self, mock_wb: MagicMock) -> None:
        """Export writes an HTML file and opens it."""
        with tempfile.TemporaryDirectory() as tmp:
            path = export_history_chart(
                "B0MAT00000", self.research, charts_dir=Path(tmp),
            )
            assert path is not None
            self.assertTrue(path.exists())
            self.assertEqual(path.suffix, ".html")
        mock_wb.open.assert_called_once()

    @patch("src.storage.chart_exporter.webbrowser")
    def test_no_browser_when_disabled(self, mock_wb: MagicMock) -> None:
        """open_browser=False only writes the file."""
        with tempfile.TemporaryDirectory() as tmp:
            export_history_chart(
                "B0MAT00000",
                self.research,
                open_browser=False,
                charts_dir=Path(tmp),
            )
        mock_wb.open.assert_not_called()

    def test_insufficient_history(self) -> None:
        """Fewer than two samples returns None."""
        self.assertIsNone(
            export_history_chart("B0NOPE0000", self.research, open_browser=False),
        )


class TestExportWatchlistDashboard(_DBMixin, unittest.TestCase):
    """Competitor overlay chart."""

    def setUp(self) -> None:
        self._setup_db()

    def tearDown(self) -> None:
        self.db.close()

    def test_empty_watchlist(self) -> None:
        """No competitors returns None."""
        self.assertIsNone(
            export_watchlist_dashboard(self.research, open_browser=False),
        )

    def test_dashboard_written(self) -> None:
        """Watched ASINs with history produce a chart."""
        self.research.add_competitor("B0MAT00000")
        self.research.add_competitor("B0MAT00001")
        with tempfile.TemporaryDirectory() as tmp:
            path = export_watchlist_dashboard(
                self.research, open_browser=False, charts_dir=Path(tmp),
            )
            assert path is not None
            self.assertTrue(path.name.startswith("watchlist_"))
            self.assertIn("Yoga Mat", path.read_text(encoding="utf-8"))


if __name__ == "__main__":
    unittest.main()
