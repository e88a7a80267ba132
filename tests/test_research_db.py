# tests/test_research_db.py

"""Tests for ResearchDB history and user collections."""

import sqlite3
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from src.filters.fallback_generator import FallbackGenerator
from src.filters.product_normalizer import ProductNormalizer
from src.models.product import ProductRecord
from src.storage.database import Database
from src.storage.research_db import ResearchDB, _degrades_to


def _product(asin: str, price: float, rank: int = 1000) -> ProductRecord:
    return ProductNormalizer.normalize(
        {
            "title": f"Product {asin}",
            "asin": asin,
            "price": price,
            "supplierPrice": round(price / 3, 2),
            "bestSellerRank": rank,
        },
        0,
        "Tech",
    )


class _DBTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = Database(Path(":memory:"))
        self.research = ResearchDB(self.db)

    def tearDown(self) -> None:
        self.db.close()


class TestHistory(_DBTestCase):
    """Price/rank history samples."""

    def test_record_and_read_back_in_order(self) -> None:
        """Samples come back oldest first."""
        t0 = datetime(2026, 10, 1, tzinfo=timezone.utc)
        self.research.record_samples([_product("B0AAAAAAA1", 20.0)], t0)
        self.research.record_samples(
            [_product("B0AAAAAAA1", 18.0, 900)], t0 + timedelta(days=1),
        )
        history = self.research.get_history("b0aaaaaaa1")
        self.assertEqual([s.price for s in history], [20.0, 18.0])
        self.assertEqual(history[1].best_seller_rank, 900)
        self.assertEqual(history[0].timestamp, t0)

    def test_fallback_records_not_recorded(self) -> None:
        """Synthetic records never enter the history."""
        inserted = self.research.record_samples(
            FallbackGenerator.generate("Tech"),
        )
        self.assertEqual(inserted, 0)

    def test_trend_summary(self) -> None:
        """Summary reports min/max/avg and the latest sample."""
        t0 = datetime(2026, 10, 1, tzinfo=timezone.utc)
        for day, price in enumerate([30.0, 20.0, 25.0]):
            self.research.record_samples(
                [_product("B0AAAAAAA1", price, 1000 - day)],
                t0 + timedelta(days=day),
            )
        summary = self.research.get_trend_summary("B0AAAAAAA1")
        assert summary is not None
        self.assertEqual(summary["min"], 20.0)
        self.assertEqual(summary["max"], 30.0)
        self.assertEqual(summary["avg"], 25.0)
        self.assertEqual(summary["count"], 3)
        self.assertEqual(summary["latest"], 25.0)
        self.assertEqual(summary["best_rank"], 998)

    def test_trend_summary_unknown(self) -> None:
        """No samples gives None."""
        self.assertIsNone(self.research.get_trend_summary("B0NOPE0000"))

    def test_get_histories_skips_empty(self) -> None:
        """Batch lookup only includes ASINs with samples."""
        self.research.record_samples([_product("B0AAAAAAA1", 20.0)])
        result = self.research.get_histories(["B0AAAAAAA1", "B0NOPE0000"])
        self.assertEqual(list(result), ["B0AAAAAAA1"])


class TestSavedAndBundles(_DBTestCase):
    """Saved products and bundles."""

    def test_save_is_upsert(self) -> None:
        """Saving the same ASIN twice keeps one row with new data."""
        self.research.save_product(_product("B0AAAAAAA1", 20.0))
        self.research.save_product(_product("B0AAAAAAA1", 22.0))
        saved = self.research.get_saved()
        self.assertEqual(len(saved), 1)
        self.assertEqual(saved[0].price, 22.0)

    def test_saved_scoped_by_user(self) -> None:
        """Each user sees only their own saves."""
        self.research.save_product(_product("B0AAAAAAA1", 20.0), "alice")
        self.assertEqual(self.research.get_saved("bob"), [])
        self.assertEqual(len(self.research.get_saved("alice")), 1)

    def test_remove_saved(self) -> None:
        """Removal reports whether anything was deleted."""
        self.research.save_product(_product("B0AAAAAAA1", 20.0))
        self.assertTrue(self.research.remove_saved("B0AAAAAAA1"))
        self.assertFalse(self.research.remove_saved("B0AAAAAAA1"))

    def test_bundle_round_trip(self) -> None:
        """Bundles keep their name and products."""
        items = [_product("B0AAAAAAA1", 20.0), _product("B0AAAAAAA2", 15.0)]
        created = self.research.save_bundle("Starter kit", items)
        assert created is not None
        bundles = self.research.get_bundles()
        self.assertEqual(len(bundles), 1)
        self.assertEqual(bundles[0]["name"], "Starter kit")
        self.assertEqual(bundles[0]["products"], items)


class TestCompetitorsAndAlerts(_DBTestCase):
    """Watchlist and price alerts."""

    def test_competitor_includes_latest_sample(self) -> None:
        """Watched ASINs report their newest observed price."""
        self.research.add_competitor("b0aaaaaaa1", "main rival")
        self.research.record_samples([_product("B0AAAAAAA1", 19.5)])
        competitors = self.research.get_competitors()
        self.assertEqual(len(competitors), 1)
        self.assertEqual(competitors[0]["asin"], "B0AAAAAAA1")
        self.assertEqual(competitors[0]["latest_price"], 19.5)

    def test_competitor_readd_updates_note(self) -> None:
        """Re-adding does not duplicate the watch."""
        self.research.add_competitor("B0AAAAAAA1", "first")
        self.research.add_competitor("B0AAAAAAA1", "second")
        competitors = self.research.get_competitors()
        self.assertEqual(len(competitors), 1)
        self.assertEqual(competitors[0]["note"], "second")
        self.assertTrue(self.research.remove_competitor("B0AAAAAAA1"))

    def test_alert_fires_once(self) -> None:
        """A below-alert fires when the price drops, then stays fired."""
        self.research.add_alert("B0AAAAAAA1", 20.0)
        self.assertEqual(
            self.research.check_alerts([_product("B0AAAAAAA1", 25.0)]), [],
        )
        fired = self.research.check_alerts([_product("B0AAAAAAA1", 18.0)])
        self.assertEqual(len(fired), 1)
        self.assertEqual(fired[0]["trigger_price"], 18.0)
        self.assertEqual(
            self.research.check_alerts([_product("B0AAAAAAA1", 17.0)]), [],
        )
        self.assertEqual(self.research.get_alerts(include_triggered=False), [])

    def test_above_alert(self) -> None:
        """An above-alert fires on a rise."""
        self.research.add_alert("B0AAAAAAA1", 30.0, "above")
        fired = self.research.check_alerts([_product("B0AAAAAAA1", 31.0)])
        self.assertEqual(len(fired), 1)

    def test_fallback_never_triggers(self) -> None:
        """Synthetic prices do not fire alerts."""
        record = FallbackGenerator.generate("Tech", count=1)[0]
        self.research.add_alert(record.asin, 1000.0)
        self.assertEqual(self.research.check_alerts([record]), [])

    def test_invalid_alerts_rejected(self) -> None:
        """Bad direction or target raises ValueError."""
        with self.assertRaises(ValueError):
            self.research.add_alert("B0AAAAAAA1", 10.0, "sideways")
        with self.assertRaises(ValueError):
            self.research.add_alert("B0AAAAAAA1", 0)


class _PartialWriteDB(ResearchDB):
    @_degrades_to(lambda: 0)
    def add_then_fail(self) -> int:
        conn = self._db.connection()
        conn.execute(
            "INSERT INTO competitors (asin, note, added_at) "
            "VALUES ('B0PART0000', '', '2026-10-19')"
        )
        raise sqlite3.OperationalError("database or disk is full")


class TestFailedWriteRollback(unittest.TestCase):
    """A failed call leaves nothing behind for the next commit."""

    def test_partial_write_not_persisted(self) -> None:
        """Rows from a failed method are discarded before later commits."""
        db = Database(Path(":memory:"))
        research = _PartialWriteDB(db)
        try:
            self.assertEqual(research.add_then_fail(), 0)
            research.save_product(_product("B0AAAAAAA1", 20.0))
            self.assertEqual(research.get_competitors(), [])
            self.assertEqual(len(research.get_saved()), 1)
        finally:
            db.close()


class TestUnavailableStorage(unittest.TestCase):
    """Every operation degrades without a database."""

    def test_defaults(self) -> None:
        """Reads are empty and writes report nothing stored."""
        research = ResearchDB(Database.unconfigured())
        record = _product("B0AAAAAAA1", 20.0)
        self.assertEqual(research.record_samples([record]), 0)
        self.assertEqual(research.get_history("B0AAAAAAA1"), [])
        self.assertIsNone(research.get_trend_summary("B0AAAAAAA1"))
        self.assertIsNone(research.save_product(record))
        self.assertEqual(research.get_saved(), [])
        self.assertFalse(research.remove_saved("B0AAAAAAA1"))
        self.assertIsNone(research.save_bundle("x", [record]))
        self.assertEqual(research.get_bundles(), [])
        self.assertIsNone(research.add_competitor("B0AAAAAAA1"))
        self.assertEqual(research.get_competitors(), [])
        self.assertIsNone(research.add_alert("B0AAAAAAA1", 10.0))
        self.assertEqual(research.check_alerts([record]), [])


if __name__ == "__main__":
    unittest.main()
