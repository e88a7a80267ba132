# src/clients/search_client.py

"""Client for the generative search (chat completions) endpoint."""

import json
import logging
import re
from collections.abc import Iterator
from typing import Any

from curl_cffi import requests as curl_requests

from src.config.settings import Settings
from src.models.product import ProductRecord

_FENCE_RE = re.compile(r"```(?:json|JSON)?[ \t]*\n?")

REQUIRED_FIELDS: tuple[str, ...] = (
    "title",
    "asin",
    "price",
    "supplierPrice",
    "bestSellerRank",
    "rating",
    "reviewCount",
    "monthlySales",
    "imageUrl",
    "marketplaceUrl",
    "supplierUrl",
)

SYSTEM_PROMPT = (
    "You are a product research assistant for Amazon FBA resellers. "
    "Search the web for current trending products and return ONLY a "
    "valid JSON array. No markdown, no explanations, no prose."
)


class SearchClientError(Exception):
    """Base class for upstream search failures."""


class UpstreamError(SearchClientError):
    """The search API rejected the call or could not be reached."""

    def __init__(self, status: int, body: str = "") -> None:
        self.status = status
        self.body = body
        super().__init__(f"search API error {status}: {body}")


class ParseError(SearchClientError):
    """The search API answered but no JSON array could be extracted."""

    def __init__(self, message: str, text: str = "") -> None:
        self.text = text
        super().__init__(message)


def strip_code_fences(text: str) -> str:
    """Remove Markdown code-fence delimiters, keeping their content."""
    return _FENCE_RE.sub("", text).strip()


def _array_slices(text: str) -> Iterator[str]:
    """Yield each balanced top-level ``[...]`` in *text*, in order."""
    depth = 0
    start = -1
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"' and depth:
            in_string = True
        elif ch == "[":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "]" and depth:
            depth -= 1
            if depth == 0:
                yield text[start:i + 1]


def extract_json_array(text: str) -> list[Any]:
    """Decode the JSON array embedded in a model reply.

    Code fences are stripped and prose around the payload is ignored.
    The first array holding at least one object wins; bracketed prose
    such as ``[8]`` is only used when nothing better decodes.  Raises
    :class:`ParseError` when no decodable array is present.
    """
    cleaned = strip_code_fences(text or "")
    first: list[Any] | None = None
    last_error = "no JSON array in search response"
    for blob in _array_slices(cleaned):
        try:
            data = json.loads(blob)
        except json.JSONDecodeError as exc:
            last_error = f"invalid JSON array: {exc}"
            continue
        if any(isinstance(item, dict) for item in data):
            return data
        if first is None:
            first = data
    if first is None:
        raise ParseError(last_error, cleaned[:200])
    return first


class GenerativeSearchClient:
    """Issues one synchronous chat-completions call per search.

    There is no retry loop; the caller substitutes fallback data on
    any :class:`SearchClientError`.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        model: str | None = None,
        session: Any = None,
    ) -> None:
        self.logger = logging.getLogger("ark_research.search_client")
        self.settings = Settings()
        self.api_key = (
            api_key if api_key is not None else self.settings.SEARCH_API_KEY
        )
        self.api_url = api_url or self.settings.SEARCH_API_URL
        self.model = model or self.settings.SEARCH_MODEL
        self.session = session or curl_requests.Session()

    @property
    def configured(self) -> bool:
        """Whether an API key is available."""
        return bool(self.api_key)

    def build_prompt(self, term: str, category: str | None = None) -> str:
        """Instruction text for one product search."""
        s = self.settings
        scope = f" in the '{category}' category" if category else ""
        fields = ", ".join(REQUIRED_FIELDS)
        return (
            f"Find exactly {s.RESULT_COUNT} trending Amazon products "
            f"for '{term}'{scope} that a reseller could source from "
            "a supplier and bundle.\n"
            f"Each result must be an object with these fields: {fields}.\n"
            f"- price: USD between ${s.PROMPT_MIN_PRICE:.0f} and "
            f"${s.PROMPT_MAX_PRICE:.0f}\n"
            "- supplierPrice: realistic sourcing cost below price\n"
            f"- bestSellerRank: integer below {s.PROMPT_MAX_RANK:,}\n"
            f"- rating: between {s.PROMPT_MIN_RATING} and "
            f"{s.PROMPT_MAX_RATING}\n"
            "- asin: 10 characters starting with B0\n"
            "- supplierUrl: a real AliExpress item URL, or empty if "
            "unknown\n"
            "Return ONLY the JSON array. No prose, no markdown."
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    @staticmethod
    def _error_message(resp: Any, limit: int) -> str:
        """Best-effort diagnostic text from a failed response."""
        text = str(getattr(resp, "text", "") or "")
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, TypeError):
            return text[:limit]
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])[:limit]
            if isinstance(error, str):
                return error[:limit]
        return text[:limit]

    def _complete(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        extra: dict[str, Any] | None = None,
    ) -> str:
        """POST a chat completion and return the reply text."""
        if not self.configured:
            raise UpstreamError(0, "search API key is not configured")

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": self.settings.SEARCH_MAX_TOKENS,
            "stream": False,
            **(extra or {}),
        }
        try:
            resp = self.session.post(
                self.api_url,
                headers=self._headers(),
                json=payload,
                timeout=self.settings.REQUEST_TIMEOUT,
            )
        except Exception as exc:
            self.logger.warning(
                "Search API request failed: %s", exc, exc_info=True,
            )
            raise UpstreamError(0, str(exc)) from exc

        if resp.status_code != 200:
            body = self._error_message(resp, self.settings.ERROR_BODY_LIMIT)
            self.logger.error(
                "Search API returned HTTP %d: %s", resp.status_code, body,
            )
            raise UpstreamError(resp.status_code, body)

        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ParseError(
                f"unexpected response shape: {exc}",
                str(getattr(resp, "text", ""))[:200],
            ) from exc
        if not isinstance(content, str):
            raise ParseError("response content is not text")
        return content

    def query(self, term: str, category: str | None = None) -> list[Any]:
        """Search for *term* and return the decoded result array.

        Raises :class:`UpstreamError` or :class:`ParseError`.
        """
        self.logger.info("Querying search API for '%s'", term)
        content = self._complete(
            [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self.build_prompt(term, category)},
            ],
            temperature=self.settings.SEARCH_TEMPERATURE,
            extra={
                "search_domain_filter": self.settings.SEARCH_DOMAIN_FILTER,
                "search_recency_filter": self.settings.SEARCH_RECENCY_FILTER,
                "return_images": False,
                "return_related_questions": False,
            },
        )
        items = extract_json_array(content)
        self.logger.info(
            "Search API returned %d items for '%s'", len(items), term,
        )
        return items

    def suggest_bundles(
        self,
        records: list[ProductRecord],
        category: str | None = None,
        limit: int = 5,
    ) -> str:
        """Free-text bundle ideas combining up to *limit* products."""
        lines = [
            f"- {r.title} (${r.price:.2f}, cost ${r.supplier_price:.2f}, "
            f"BSR {r.best_seller_rank:,})"
            for r in records[:limit]
        ]
        prompt = (
            "Suggest 3 product bundles an Amazon reseller could build "
            f"from these {category or 'trending'} products. For each "
            "bundle give a name, the products included, a bundle price "
            "and one sentence on why it sells.\n" + "\n".join(lines)
        )
        content = self._complete(
            [
                {
                    "role": "system",
                    "content": "You are an e-commerce bundling strategist.",
                },
                {"role": "user", "content": prompt},
            ],
            temperature=0.7,
        )
        suggestion = strip_code_fences(content)
        if not suggestion:
            raise ParseError("empty bundle suggestion")
        return suggestion
