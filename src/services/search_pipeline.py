# src/services/search_pipeline.py

"""Cache-first product search: probe, query, normalize, store."""

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from src.clients.search_client import (
    GenerativeSearchClient,
    ParseError,
    UpstreamError,
)
from src.config.settings import Settings
from src.filters.fallback_generator import FallbackGenerator
from src.filters.product_filter import ProductFilter
from src.filters.product_normalizer import ProductNormalizer
from src.models.product import ProductRecord
from src.storage.cache_key import derive_key
from src.storage.product_cache import ProductCacheStore
from src.storage.research_db import ResearchDB

logger = logging.getLogger("ark_research.pipeline")


class InvalidRequest(ValueError):
    """A search request the caller must fix (400-class)."""


@dataclass
class SearchRequest:
    """A validated search request."""

    category: str
    keyword: str | None = None
    filters: dict[str, Any] = field(
        default_factory=lambda: dict[str, Any]()
    )

    @property
    def term(self) -> str:
        """The text actually searched for."""
        return self.keyword or self.category

    @property
    def sort_by(self) -> str | None:
        value = self.filters.get("sortBy")
        return str(value) if value else None

    @classmethod
    def from_payload(cls, payload: Any) -> "SearchRequest":
        """Validate a decoded request body.

        Raises :class:`InvalidRequest` when the body is not an object,
        a field has the wrong type, or neither category nor keyword
        is given.
        """
        if not isinstance(payload, Mapping):
            raise InvalidRequest("request body must be a JSON object")

        category = payload.get("category")
        keyword = payload.get("keyword")
        filters = payload.get("filters")

        for name, value in (("category", category), ("keyword", keyword)):
            if value is not None and not isinstance(value, str):
                raise InvalidRequest(f"'{name}' must be a string")
        if filters is not None and not isinstance(filters, Mapping):
            raise InvalidRequest("'filters' must be an object")

        category = (category or "").strip()
        keyword = (keyword or "").strip() or None
        if not category and not keyword:
            raise InvalidRequest("a category or keyword is required")

        return cls(
            category=category or "general",
            keyword=keyword,
            filters=dict(filters or {}),
        )


@dataclass
class SearchResult:
    """Outcome of one search, as handed back to the caller."""

    products: list[ProductRecord] = field(
        default_factory=lambda: list[ProductRecord]()
    )
    cached: bool = False
    fallback: bool = False
    processing_time_ms: float = 0.0
    cache_key: str = ""
    cache_age_minutes: int | None = None
    excluded_count: int = 0
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )
    triggered_alerts: list[dict[str, object]] = field(
        default_factory=lambda: list[dict[str, object]]()
    )

    def to_dict(self) -> dict[str, Any]:
        """Render the caller-facing response body."""
        body: dict[str, Any] = {
            "products": [p.to_dict() for p in self.products],
            "cached": self.cached,
            "fallback": self.fallback,
            "processingTimeMs": round(self.processing_time_ms, 1),
        }
        if self.cache_age_minutes is not None:
            body["cacheAgeMinutes"] = self.cache_age_minutes
        if self.triggered_alerts:
            body["triggeredAlerts"] = self.triggered_alerts
        return body


class SearchPipeline:
    """Runs one search end to end, synchronously.

    Storage is optional in practice: an unavailable database makes
    every cache probe a miss and every write a no-op.
    """

    def __init__(
        self,
        cache: ProductCacheStore,
        research_db: ResearchDB,
        client: GenerativeSearchClient,
        fallback_count: int = Settings.RESULT_COUNT,
    ) -> None:
        self.cache = cache
        self.research_db = research_db
        self.client = client
        self.fallback_count = fallback_count

    def _fetch_fresh(
        self, request: SearchRequest, result: SearchResult,
    ) -> list[ProductRecord]:
        """Query upstream and normalize, or synthesize on failure."""
        try:
            items = self.client.query(request.term, request.category)
        except UpstreamError as exc:
            logger.error(
                "Upstream search failed for '%s' (status %d): %s",
                request.term,
                exc.status,
                exc.body,
            )
            result.errors.append(str(exc))
            items = None
        except ParseError as exc:
            logger.warning(
                "Unparseable search response for '%s': %s",
                request.term,
                exc,
            )
            result.errors.append(str(exc))
            items = None

        if not items:
            if items is not None:
                logger.warning(
                    "Search API returned an empty array for '%s'",
                    request.term,
                )
            result.fallback = True
            return FallbackGenerator.generate(
                request.category, request.keyword, self.fallback_count,
            )

        return ProductNormalizer.normalize_batch(
            items, request.category, request.keyword,
        )

    def search(self, request: SearchRequest) -> SearchResult:
        """Serve *request* from cache or upstream and apply filters."""
        started = time.monotonic()
        key = derive_key(request.category, request.keyword, request.filters)
        result = SearchResult(cache_key=key)

        entry = self.cache.get(key)
        if entry is not None:
            self.cache.increment_hit(entry.id)
            records = entry.records
            result.cached = True
            result.cache_age_minutes = entry.age_minutes()
        else:
            records = self._fetch_fresh(request, result)
            if not result.fallback:
                self.cache.put(
                    key,
                    records,
                    category=request.category,
                    search_query=request.term,
                )
                self.research_db.record_samples(records)
                result.triggered_alerts = self.research_db.check_alerts(
                    records
                )

        kept, result.excluded_count = ProductFilter.apply(
            records, request.filters
        )
        result.products = ProductFilter.sort_records(kept, request.sort_by)
        result.processing_time_ms = (time.monotonic() - started) * 1000

        logger.info(
            "Search '%s' served %d products (cached=%s, fallback=%s) "
            "in %.0fms",
            key,
            len(result.products),
            result.cached,
            result.fallback,
            result.processing_time_ms,
        )
        return result

    def suggest_bundles(
        self, records: list[ProductRecord], category: str | None = None,
    ) -> str | None:
        """Bundle ideas for *records*; ``None`` when upstream fails."""
        if len(records) < 2:
            raise InvalidRequest("at least 2 products are needed for bundle ideas")
        try:
            return self.client.suggest_bundles(records, category)
        except (UpstreamError, ParseError) as exc:
            logger.error("Bundle suggestion failed: %s", exc)
            return None
