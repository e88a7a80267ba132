# src/services/health_checker.py

"""Connectivity checks for the storage handle and the search API."""

import logging
import sqlite3
import time
from dataclasses import dataclass

from src.clients.search_client import GenerativeSearchClient
from src.config.settings import Settings
from src.storage.database import Database, StorageUnavailable

logger = logging.getLogger("ark_research.health")

_HEALTH_TIMEOUT = 10  # seconds for the API probe


@dataclass
class HealthResult:
    """Result of a single dependency check."""

    component: str
    status: str  # "ok", "slow", "down"
    latency_ms: float
    message: str


def _status_for(latency_ms: float) -> str:
    return "slow" if latency_ms > Settings.SLOW_THRESHOLD_MS else "ok"


def probe_storage(db: Database) -> HealthResult:
    """Run a trivial query against the database."""
    start = time.monotonic()
    try:
        db.connection().execute("SELECT 1").fetchone()
    except (StorageUnavailable, sqlite3.Error) as exc:
        return HealthResult(
            component="storage",
            status="down",
            latency_ms=0.0,
            message=str(exc)[:80],
        )
    elapsed_ms = (time.monotonic() - start) * 1000
    return HealthResult(
        component="storage",
        status=_status_for(elapsed_ms),
        latency_ms=elapsed_ms,
        message=str(db.path),
    )


def probe_search_api(client: GenerativeSearchClient) -> HealthResult:
    """Check the API key and that the endpoint answers at all.

    Any HTTP answer other than an auth rejection or a 5xx counts as
    reachable; no completion is requested.
    """
    if not client.configured:
        return HealthResult(
            component="search_api",
            status="down",
            latency_ms=0.0,
            message="PERPLEXITY_API_KEY is not set",
        )

    start = time.monotonic()
    try:
        resp = client.session.get(
            client.api_url,
            headers={"Authorization": f"Bearer {client.api_key}"},
            timeout=_HEALTH_TIMEOUT,
        )
    except Exception as exc:
        elapsed_ms = (time.monotonic() - start) * 1000
        return HealthResult(
            component="search_api",
            status="down",
            latency_ms=elapsed_ms,
            message=str(exc)[:80],
        )
    elapsed_ms = (time.monotonic() - start) * 1000

    if resp.status_code in (401, 403) or resp.status_code >= 500:
        return HealthResult(
            component="search_api",
            status="down",
            latency_ms=elapsed_ms,
            message=f"HTTP {resp.status_code}",
        )
    return HealthResult(
        component="search_api",
        status=_status_for(elapsed_ms),
        latency_ms=elapsed_ms,
        message="" if elapsed_ms <= Settings.SLOW_THRESHOLD_MS else "High latency",
    )


class HealthChecker:
    """Runs every dependency probe and logs the outcome."""

    def __init__(
        self, db: Database, client: GenerativeSearchClient,
    ) -> None:
        self.db = db
        self.client = client

    def check_all(self) -> list[HealthResult]:
        """Probe storage and the search API."""
        results = [probe_storage(self.db), probe_search_api(self.client)]
        for r in results:
            logger.info(
                "Health check %s: %s (%.0fms) %s",
                r.component,
                r.status,
                r.latency_ms,
                r.message,
            )
        return results
