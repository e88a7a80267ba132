# src/storage/database.py

"""Shared SQLite handle for the cache, history and user collections."""

import logging
import sqlite3
from pathlib import Path

from src.config.settings import Settings

logger = logging.getLogger("ark_research.database")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS product_cache (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    cache_key     TEXT    NOT NULL,
    search_query  TEXT    NOT NULL,
    category      TEXT    NOT NULL,
    products_data TEXT    NOT NULL,
    created_at    TEXT    NOT NULL,
    expires_at    TEXT    NOT NULL,
    hit_count     INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_cache_key_expiry
    ON product_cache(cache_key, expires_at);

CREATE TABLE IF NOT EXISTS product_history (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    asin             TEXT    NOT NULL,
    title            TEXT    NOT NULL,
    price            REAL    NOT NULL,
    best_seller_rank INTEGER NOT NULL,
    rating           REAL    NOT NULL,
    review_count     INTEGER NOT NULL,
    timestamp        TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_history_asin_time
    ON product_history(asin, timestamp);

CREATE TABLE IF NOT EXISTS user_saved (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id      TEXT    NOT NULL,
    asin         TEXT    NOT NULL,
    product_data TEXT    NOT NULL,
    created_at   TEXT    NOT NULL,
    UNIQUE(user_id, asin)
);

CREATE TABLE IF NOT EXISTS user_bundles (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id     TEXT    NOT NULL,
    bundle_name TEXT    NOT NULL,
    products    TEXT    NOT NULL,
    created_at  TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS competitors (
    id       INTEGER PRIMARY KEY AUTOINCREMENT,
    asin     TEXT    NOT NULL UNIQUE,
    note     TEXT    NOT NULL DEFAULT '',
    added_at TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS price_alerts (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    asin          TEXT    NOT NULL,
    target_price  REAL    NOT NULL,
    direction     TEXT    NOT NULL DEFAULT 'below',
    created_at    TEXT    NOT NULL,
    triggered_at  TEXT,
    trigger_price REAL
);
"""


class StorageUnavailable(Exception):
    """Persistence is unconfigured or could not be opened."""


class Database:
    """Owns the single SQLite connection for one process.

    Opening failures are logged and leave the handle unavailable;
    callers see :class:`StorageUnavailable` from :meth:`connection`
    and degrade to no-ops.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._conn: sqlite3.Connection | None = None
        self.path = db_path or Settings.DB_PATH
        try:
            if str(self.path) != ":memory:":
                self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                str(self.path), check_same_thread=False,
            )
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA foreign_keys=ON")
            conn.executescript(_SCHEMA)
        except (sqlite3.Error, OSError) as exc:
            logger.warning(
                "Storage unavailable at %s: %s", self.path, exc,
            )
            return
        self._conn = conn
        logger.debug("Database opened at %s", self.path)

    @classmethod
    def unconfigured(cls) -> "Database":
        """A handle with no backing store; every store call no-ops."""
        handle = cls.__new__(cls)
        handle._conn = None
        handle.path = Path("")
        return handle

    @property
    def available(self) -> bool:
        """Whether a live connection exists."""
        return self._conn is not None

    def connection(self) -> sqlite3.Connection:
        """Return the live connection or raise StorageUnavailable."""
        if self._conn is None:
            raise StorageUnavailable(f"no database at '{self.path}'")
        return self._conn

    def rollback(self) -> None:
        """Discard any uncommitted writes left by a failed operation."""
        if self._conn is None:
            return
        try:
            self._conn.rollback()
        except sqlite3.Error as exc:
            logger.warning("Rollback failed: %s", exc)

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
