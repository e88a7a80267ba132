# src/config/settings.py

"""Central configuration for the ark_research assistant."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the ark_research assistant."""

    # --- Generative search API ---
    SEARCH_API_URL: str = os.getenv(
        "SEARCH_API_URL", "https://api.perplexity.ai/chat/completions"
    )
    SEARCH_API_KEY: str = os.getenv("PERPLEXITY_API_KEY", "")
    SEARCH_MODEL: str = os.getenv("SEARCH_MODEL", "sonar")
    SEARCH_TEMPERATURE: float = 0.2     # Low creativity, parseable output
    SEARCH_MAX_TOKENS: int = 4000       # Bounded response size
    SEARCH_DOMAIN_FILTER: list[str] = [
        "amazon.com",
        "aliexpress.com",
        "tiktok.com",
    ]
    SEARCH_RECENCY_FILTER: str = "month"
    REQUEST_TIMEOUT: int = 60           # Seconds before the upstream call times out
    ERROR_BODY_LIMIT: int = 500         # Chars of upstream error body kept

    # --- Prompt constraints ---
    RESULT_COUNT: int = 8
    PROMPT_MIN_PRICE: float = 5.0
    PROMPT_MAX_PRICE: float = 200.0
    PROMPT_MAX_RANK: int = 500_000
    PROMPT_MIN_RATING: float = 3.0
    PROMPT_MAX_RATING: float = 5.0

    # --- Caching ---
    CACHE_TTL_HOURS: int = 24

    # --- Profit math ---
    MARKETPLACE_FEE_RATE: float = 0.15  # Referral + FBA estimate

    # --- Link templates ---
    MARKETPLACE_URL_TEMPLATE: str = "https://www.amazon.com/dp/{asin}"
    IMAGE_URL_TEMPLATE: str = (
        "https://m.media-amazon.com/images/P/{asin}.01._SCLZZZZZZZ_.jpg"
    )
    SUPPLIER_SEARCH_URL_TEMPLATE: str = (
        "https://www.aliexpress.com/wholesale?SearchText={query}"
    )

    # --- Health ---
    SLOW_THRESHOLD_MS: float = 5000.0

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    DB_PATH: Path = Path(
        os.getenv("ARK_DB_PATH", str(DATA_DIR / "ark_research.db"))
    )
    RESULTS_DIR: Path = BASE_DIR / "results"
    LOGS_DIR: Path = BASE_DIR / "logs"
