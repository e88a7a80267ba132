# src/storage/product_cache.py

"""Durable, insert-only search result cache with TTL and hit counting."""

import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from src.config.settings import Settings
from src.models.product import ProductRecord
from src.storage.database import Database, StorageUnavailable

logger = logging.getLogger("ark_research.cache")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _stamp(moment: datetime) -> str:
    # Fixed-width ISO strings compare correctly as text
    return moment.astimezone(timezone.utc).isoformat(
        timespec="microseconds"
    )


@dataclass
class CacheEntry:
    """A stored, normalized result set for one cache key."""

    id: int
    cache_key: str
    records: list[ProductRecord]
    created_at: datetime
    expires_at: datetime
    hit_count: int

    def age_minutes(self, now: datetime | None = None) -> int:
        """Whole minutes since the entry was written."""
        delta = (now or _utcnow()) - self.created_at
        return int(delta.total_seconds() // 60)


class ProductCacheStore:
    """Cache adapter over the ``product_cache`` table.

    Writes always insert; reads take the newest unexpired row for a
    key.  Expired rows stay until :meth:`purge_expired` reaps them.
    Any storage failure reads as a miss and writes as a no-op.
    """

    def __init__(
        self,
        db: Database,
        ttl_hours: int = Settings.CACHE_TTL_HOURS,
    ) -> None:
        self._db = db
        self._ttl_hours = ttl_hours

    def get(self, key: str) -> CacheEntry | None:
        """Return the newest unexpired entry for *key*, or ``None``."""
        try:
            row = self._db.connection().execute(
                "SELECT id, cache_key, products_data, created_at, "
                "       expires_at, hit_count "
                "FROM product_cache "
                "WHERE cache_key = ? AND expires_at > ? "
                "ORDER BY created_at DESC, id DESC LIMIT 1",
                (key, _stamp(_utcnow())),
            ).fetchone()
        except (StorageUnavailable, sqlite3.Error) as exc:
            logger.warning("Cache read skipped for '%s': %s", key, exc)
            return None

        if row is None:
            logger.debug("Cache miss for '%s'", key)
            return None

        try:
            payload: list[dict[str, Any]] = json.loads(row[2])
            records = [ProductRecord.from_dict(item) for item in payload]
        except (ValueError, TypeError) as exc:
            logger.error(
                "Corrupt cache row %d for '%s': %s", row[0], key, exc,
            )
            return None

        logger.info("Cache hit for '%s' (entry %d)", key, row[0])
        return CacheEntry(
            id=row[0],
            cache_key=row[1],
            records=records,
            created_at=datetime.fromisoformat(row[3]),
            expires_at=datetime.fromisoformat(row[4]),
            hit_count=row[5],
        )

    def put(
        self,
        key: str,
        records: list[ProductRecord],
        category: str = "",
        search_query: str = "",
        ttl_hours: int | None = None,
    ) -> None:
        """Insert a new entry for *key* expiring after the TTL."""
        now = _utcnow()
        expires = now + timedelta(hours=ttl_hours or self._ttl_hours)
        data = json.dumps([r.to_dict() for r in records])
        try:
            conn = self._db.connection()
            conn.execute(
                "INSERT INTO product_cache "
                "(cache_key, search_query, category, products_data, "
                " created_at, expires_at, hit_count) "
                "VALUES (?, ?, ?, ?, ?, ?, 0)",
                (
                    key,
                    search_query,
                    category,
                    data,
                    _stamp(now),
                    _stamp(expires),
                ),
            )
            conn.commit()
        except (StorageUnavailable, sqlite3.Error) as exc:
            self._db.rollback()
            logger.warning("Cache write skipped for '%s': %s", key, exc)
            return
        logger.info(
            "Cached %d records for '%s' until %s",
            len(records),
            key,
            _stamp(expires),
        )

    def increment_hit(self, entry_id: int) -> None:
        """Bump the hit counter; failures are logged and ignored."""
        try:
            conn = self._db.connection()
            conn.execute(
                "UPDATE product_cache SET hit_count = hit_count + 1 "
                "WHERE id = ?",
                (entry_id,),
            )
            conn.commit()
        except (StorageUnavailable, sqlite3.Error) as exc:
            self._db.rollback()
            logger.warning(
                "Hit count update failed for entry %d: %s", entry_id, exc,
            )

    def purge_expired(self) -> int:
        """Delete expired rows.  Returns the number removed."""
        try:
            conn = self._db.connection()
            cur = conn.execute(
                "DELETE FROM product_cache WHERE expires_at <= ?",
                (_stamp(_utcnow()),),
            )
            conn.commit()
        except (StorageUnavailable, sqlite3.Error) as exc:
            self._db.rollback()
            logger.warning("Cache purge skipped: %s", exc)
            return 0
        logger.info("Purged %d expired cache entries", cur.rowcount)
        return cur.rowcount

    def stats(self) -> dict[str, int]:
        """Live/expired entry counts and total hits."""
        empty = {"live": 0, "expired": 0, "hits": 0}
        now = _stamp(_utcnow())
        try:
            row = self._db.connection().execute(
                "SELECT "
                "  SUM(CASE WHEN expires_at > ? THEN 1 ELSE 0 END), "
                "  SUM(CASE WHEN expires_at <= ? THEN 1 ELSE 0 END), "
                "  SUM(hit_count) "
                "FROM product_cache",
                (now, now),
            ).fetchone()
        except (StorageUnavailable, sqlite3.Error) as exc:
            logger.warning("Cache stats unavailable: %s", exc)
            return empty
        return {
            "live": row[0] or 0,
            "expired": row[1] or 0,
            "hits": row[2] or 0,
        }
