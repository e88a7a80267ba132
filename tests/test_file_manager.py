# tests/test_file_manager.py

"""Tests for exporting results to disk."""

import csv
import json
import tempfile
import unittest
from pathlib import Path

from src.filters.fallback_generator import FallbackGenerator
from src.storage.file_manager import FileManager


class TestFileManager(unittest.TestCase):
    """JSON and CSV exports."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.manager = FileManager(Path(self._tmp.name))
        self.products = FallbackGenerator.generate("Tech", "usb hub", 4)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_save_results_json(self) -> None:
        """JSON export holds the wire-format records."""
        path = self.manager.save_results("usb hub", self.products)
        self.assertTrue(path.name.startswith("usb_hub_"))
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(len(data), 4)
        self.assertIn("supplierPrice", data[0])

    def test_export_csv_sorted_by_profit(self) -> None:
        """CSV rows follow the header, best profit first."""
        path = self.manager.export_csv("usb hub", self.products)
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        self.assertEqual(rows[0][0], "Title")
        self.assertEqual(len(rows), 5)
        profits = [float(r[4]) for r in rows[1:]]
        self.assertEqual(profits, sorted(profits, reverse=True))


if __name__ == "__main__":
    unittest.main()
