# src/storage/research_db.py

"""SQLite-backed history and user collections (saved, bundles, watchlist, alerts)."""

import functools
import json
import logging
import sqlite3
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

from src.models.history_sample import HistorySample
from src.models.product import ProductRecord
from src.storage.database import Database, StorageUnavailable

logger = logging.getLogger("ark_research.research_db")

ALERT_DIRECTIONS: frozenset[str] = frozenset({"below", "above"})

_T = TypeVar("_T")


def _now_stamp(moment: datetime | None = None) -> str:
    moment = moment or datetime.now(timezone.utc)
    return moment.isoformat(timespec="microseconds")


def _degrades_to(
    default: Callable[[], _T],
) -> Callable[[Callable[..., _T]], Callable[..., _T]]:
    """Turn storage failures into a logged *default()* result.

    Uncommitted writes from the failed call are rolled back so the next
    commit on the shared connection cannot persist them.
    """
    def decorate(method: Callable[..., _T]) -> Callable[..., _T]:
        @functools.wraps(method)
        def wrapper(self: "ResearchDB", *args: Any, **kwargs: Any) -> _T:
            try:
                return method(self, *args, **kwargs)
            except (StorageUnavailable, sqlite3.Error) as exc:
                self._db.rollback()
                logger.warning(
                    "%s skipped, storage error: %s",
                    method.__name__,
                    exc,
                )
                return default()
        return wrapper
    return decorate


class ResearchDB:
    """History samples and user collections over a shared Database."""

    def __init__(self, db: Database) -> None:
        self._db = db

    # ── History ──────────────────────────────────────────

    @_degrades_to(lambda: 0)
    def record_samples(
        self,
        records: list[ProductRecord],
        timestamp: datetime | None = None,
    ) -> int:
        """Append one history row per real record.

        Fallback records are synthetic and skipped.  Returns the
        number of rows inserted.
        """
        ts = _now_stamp(timestamp)
        rows = [
            (
                r.asin, r.title, r.price, r.best_seller_rank,
                r.rating, r.review_count, ts,
            )
            for r in records
            if not r.fallback and r.price > 0
        ]
        if not rows:
            return 0
        conn = self._db.connection()
        conn.executemany(
            "INSERT INTO product_history "
            "(asin, title, price, best_seller_rank, rating, "
            " review_count, timestamp) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            rows,
        )
        conn.commit()
        logger.info("Recorded %d history samples at %s", len(rows), ts)
        return len(rows)

    @_degrades_to(list)
    def get_history(self, asin: str) -> list[HistorySample]:
        """Return every sample for *asin*, oldest first."""
        rows = self._db.connection().execute(
            "SELECT asin, title, price, best_seller_rank, rating, "
            "       review_count, timestamp "
            "FROM product_history WHERE asin = ? "
            "ORDER BY timestamp ASC, id ASC",
            (asin.strip().upper(),),
        ).fetchall()
        return [
            HistorySample(
                asin=r[0],
                title=r[1],
                price=r[2],
                best_seller_rank=r[3],
                rating=r[4],
                review_count=r[5],
                timestamp=datetime.fromisoformat(r[6]),
            )
            for r in rows
        ]

    def get_histories(
        self, asins: list[str],
    ) -> dict[str, list[HistorySample]]:
        """Batch-fetch history for several ASINs, skipping empty ones."""
        result: dict[str, list[HistorySample]] = {}
        for asin in asins:
            history = self.get_history(asin)
            if history:
                result[asin.strip().upper()] = history
        return result

    @_degrades_to(lambda: None)
    def get_trend_summary(self, asin: str) -> dict[str, object] | None:
        """Min / max / avg / latest price and rank movement for *asin*."""
        key = asin.strip().upper()
        conn = self._db.connection()
        row = conn.execute(
            "SELECT MIN(price), MAX(price), AVG(price), "
            "       MIN(best_seller_rank), COUNT(id) "
            "FROM product_history WHERE asin = ?",
            (key,),
        ).fetchone()
        if row is None or row[4] == 0:
            return None
        latest = conn.execute(
            "SELECT price, best_seller_rank FROM product_history "
            "WHERE asin = ? ORDER BY timestamp DESC, id DESC LIMIT 1",
            (key,),
        ).fetchone()
        return {
            "min": row[0],
            "max": row[1],
            "avg": round(row[2], 2),
            "best_rank": row[3],
            "count": row[4],
            "latest": latest[0],
            "latest_rank": latest[1],
        }

    # ── Saved products ───────────────────────────────────

    @_degrades_to(lambda: None)
    def save_product(
        self, record: ProductRecord, user_id: str = "default",
    ) -> dict[str, object] | None:
        """Save (or refresh) a product for *user_id*."""
        ts = _now_stamp()
        conn = self._db.connection()
        conn.execute(
            "INSERT INTO user_saved (user_id, asin, product_data, created_at) "
            "VALUES (?, ?, ?, ?) "
            "ON CONFLICT(user_id, asin) DO UPDATE SET "
            "product_data = excluded.product_data",
            (user_id, record.asin, json.dumps(record.to_dict()), ts),
        )
        conn.commit()
        row = conn.execute(
            "SELECT id, created_at FROM user_saved "
            "WHERE user_id = ? AND asin = ?",
            (user_id, record.asin),
        ).fetchone()
        logger.info("Saved %s for user '%s'", record.asin, user_id)
        return {
            "id": row[0],
            "user_id": user_id,
            "asin": record.asin,
            "created_at": row[1],
        }

    @_degrades_to(list)
    def get_saved(self, user_id: str = "default") -> list[ProductRecord]:
        """Saved products for *user_id*, newest first."""
        rows = self._db.connection().execute(
            "SELECT product_data FROM user_saved WHERE user_id = ? "
            "ORDER BY created_at DESC, id DESC",
            (user_id,),
        ).fetchall()
        return [ProductRecord.from_dict(json.loads(r[0])) for r in rows]

    @_degrades_to(lambda: False)
    def remove_saved(self, asin: str, user_id: str = "default") -> bool:
        """Delete a saved product.  Returns whether a row was removed."""
        conn = self._db.connection()
        cur = conn.execute(
            "DELETE FROM user_saved WHERE user_id = ? AND asin = ?",
            (user_id, asin.strip().upper()),
        )
        conn.commit()
        return cur.rowcount > 0

    # ── Bundles ──────────────────────────────────────────

    @_degrades_to(lambda: None)
    def save_bundle(
        self,
        name: str,
        records: list[ProductRecord],
        user_id: str = "default",
    ) -> dict[str, object] | None:
        """Store a named bundle of products."""
        ts = _now_stamp()
        conn = self._db.connection()
        cur = conn.execute(
            "INSERT INTO user_bundles (user_id, bundle_name, products, created_at) "
            "VALUES (?, ?, ?, ?)",
            (user_id, name, json.dumps([r.to_dict() for r in records]), ts),
        )
        conn.commit()
        logger.info(
            "Saved bundle '%s' (%d products) for '%s'",
            name,
            len(records),
            user_id,
        )
        return {
            "id": cur.lastrowid,
            "user_id": user_id,
            "name": name,
            "products": list(records),
            "created_at": ts,
        }

    @_degrades_to(list)
    def get_bundles(self, user_id: str = "default") -> list[dict[str, object]]:
        """Bundles for *user_id*, newest first."""
        rows = self._db.connection().execute(
            "SELECT id, bundle_name, products, created_at "
            "FROM user_bundles WHERE user_id = ? "
            "ORDER BY created_at DESC, id DESC",
            (user_id,),
        ).fetchall()
        return [
            {
                "id": r[0],
                "user_id": user_id,
                "name": r[1],
                "products": [
                    ProductRecord.from_dict(item)
                    for item in json.loads(r[2])
                ],
                "created_at": r[3],
            }
            for r in rows
        ]

    # ── Competitor watchlist ─────────────────────────────

    @_degrades_to(lambda: None)
    def add_competitor(
        self, asin: str, note: str = "",
    ) -> dict[str, object] | None:
        """Watch *asin*; re-adding an existing ASIN updates its note."""
        key = asin.strip().upper()
        ts = _now_stamp()
        conn = self._db.connection()
        conn.execute(
            "INSERT INTO competitors (asin, note, added_at) VALUES (?, ?, ?) "
            "ON CONFLICT(asin) DO UPDATE SET note = excluded.note",
            (key, note, ts),
        )
        conn.commit()
        row = conn.execute(
            "SELECT id, added_at FROM competitors WHERE asin = ?",
            (key,),
        ).fetchone()
        logger.info("Watching competitor %s", key)
        return {"id": row[0], "asin": key, "note": note, "added_at": row[1]}

    @_degrades_to(lambda: False)
    def remove_competitor(self, asin: str) -> bool:
        """Stop watching *asin*.  Returns whether it was watched."""
        conn = self._db.connection()
        cur = conn.execute(
            "DELETE FROM competitors WHERE asin = ?",
            (asin.strip().upper(),),
        )
        conn.commit()
        return cur.rowcount > 0

    @_degrades_to(list)
    def get_competitors(self) -> list[dict[str, object]]:
        """Watched ASINs with their most recent observed price and rank."""
        conn = self._db.connection()
        rows = conn.execute(
            "SELECT id, asin, note, added_at FROM competitors "
            "ORDER BY added_at DESC, id DESC",
        ).fetchall()
        results: list[dict[str, object]] = []
        for r in rows:
            latest = conn.execute(
                "SELECT title, price, best_seller_rank, timestamp "
                "FROM product_history WHERE asin = ? "
                "ORDER BY timestamp DESC, id DESC LIMIT 1",
                (r[1],),
            ).fetchone()
            results.append({
                "id": r[0],
                "asin": r[1],
                "note": r[2],
                "added_at": r[3],
                "title": latest[0] if latest else "",
                "latest_price": latest[1] if latest else None,
                "latest_rank": latest[2] if latest else None,
                "last_seen": latest[3] if latest else "",
            })
        return results

    # ── Price alerts ─────────────────────────────────────

    @_degrades_to(lambda: None)
    def add_alert(
        self,
        asin: str,
        target_price: float,
        direction: str = "below",
    ) -> dict[str, object] | None:
        """Create an alert fired when *asin* crosses *target_price*.

        Raises ``ValueError`` for an unknown direction or a
        non-positive target.
        """
        if direction not in ALERT_DIRECTIONS:
            raise ValueError(f"direction must be one of {sorted(ALERT_DIRECTIONS)}")
        if target_price <= 0:
            raise ValueError("target_price must be positive")
        key = asin.strip().upper()
        ts = _now_stamp()
        conn = self._db.connection()
        cur = conn.execute(
            "INSERT INTO price_alerts (asin, target_price, direction, created_at) "
            "VALUES (?, ?, ?, ?)",
            (key, target_price, direction, ts),
        )
        conn.commit()
        logger.info(
            "Alert set: %s %s %.2f", key, direction, target_price,
        )
        return {
            "id": cur.lastrowid,
            "asin": key,
            "target_price": target_price,
            "direction": direction,
            "created_at": ts,
        }

    @_degrades_to(list)
    def get_alerts(
        self, include_triggered: bool = True,
    ) -> list[dict[str, object]]:
        """All alerts, newest first."""
        sql = (
            "SELECT id, asin, target_price, direction, created_at, "
            "       triggered_at, trigger_price FROM price_alerts"
        )
        if not include_triggered:
            sql += " WHERE triggered_at IS NULL"
        sql += " ORDER BY created_at DESC, id DESC"
        rows = self._db.connection().execute(sql).fetchall()
        return [
            {
                "id": r[0],
                "asin": r[1],
                "target_price": r[2],
                "direction": r[3],
                "created_at": r[4],
                "triggered_at": r[5],
                "trigger_price": r[6],
            }
            for r in rows
        ]

    @_degrades_to(list)
    def check_alerts(
        self, records: list[ProductRecord],
    ) -> list[dict[str, object]]:
        """Fire pending alerts whose ASIN crossed its target in *records*.

        Fallback records never trigger alerts.  Returns the alerts
        triggered by this call.
        """
        prices = {r.asin: r.price for r in records if not r.fallback}
        if not prices:
            return []
        conn = self._db.connection()
        placeholders = ",".join("?" for _ in prices)
        pending = conn.execute(
            "SELECT id, asin, target_price, direction FROM price_alerts "
            f"WHERE triggered_at IS NULL AND asin IN ({placeholders})",
            tuple(prices),
        ).fetchall()

        ts = _now_stamp()
        fired: list[dict[str, object]] = []
        for alert_id, asin, target, direction in pending:
            price = prices[asin]
            crossed = (
                price <= target if direction == "below" else price >= target
            )
            if not crossed:
                continue
            conn.execute(
                "UPDATE price_alerts SET triggered_at = ?, trigger_price = ? "
                "WHERE id = ?",
                (ts, price, alert_id),
            )
            fired.append({
                "id": alert_id,
                "asin": asin,
                "target_price": target,
                "direction": direction,
                "trigger_price": price,
                "triggered_at": ts,
            })
        conn.commit()
        if fired:
            logger.info("Triggered %d price alerts", len(fired))
        return fired
