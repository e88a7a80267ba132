# src/storage/cache_key.py

"""Deterministic, human-readable cache keys for search requests."""

import json
import re
from typing import Any

_UNSAFE_RE = re.compile(r"[^a-z0-9]")

DEFAULT_CATEGORY = "general"
DEFAULT_KEYWORD = "default"


def canonical_filters(filters: dict[str, Any] | None) -> str:
    """Serialise *filters* with stable key order, dropping blank values."""
    if not filters:
        return ""
    present = {
        str(k): v
        for k, v in filters.items()
        if v is not None and v != ""
    }
    if not present:
        return ""
    return json.dumps(present, sort_keys=True, separators=(",", ":"))


def derive_key(
    category: str | None,
    keyword: str | None = None,
    filters: dict[str, Any] | None = None,
) -> str:
    """Map a (category, keyword, filters) triple to a cache key.

    Layout is ``{category}_{keyword}[_{filters-json}]``, lower-cased,
    with every character outside ``[a-z0-9]`` replaced by ``_``.
    Distinct inputs may collide after sanitising; keys stay readable
    rather than hashed.
    """
    raw = (
        f"{(category or '').strip() or DEFAULT_CATEGORY}_"
        f"{(keyword or '').strip() or DEFAULT_KEYWORD}"
    )
    serialized = canonical_filters(filters)
    if serialized:
        raw = f"{raw}_{serialized}"
    return _UNSAFE_RE.sub("_", raw.lower())
