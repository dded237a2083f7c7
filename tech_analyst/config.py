"""Configuration management via environment variables and .env file."""

from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel

from tech_analyst.errors import ConfigurationError


class Config(BaseModel):
    """Application configuration loaded from environment."""

    # API keys (firecrawl optional; without it search uses DuckDuckGo + direct fetch)
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    firecrawl_key: str = ""

    # LLM models
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    openai_model: str = "gpt-4o"
    llm_max_tokens: int = 4000
    llm_timeout: int = 120

    # Discovery
    search_engine: str = "google"
    search_pages: int = 3
    search_cursor_start: int = 1
    search_results_per_page: int = 10
    max_leads: int = 30

    # Concurrency
    search_concurrency: int = 5
    enrichment_concurrency: int = 10
    extraction_concurrency: int = 20
    category_concurrency: int = 3

    # Retry
    retry_max_attempts: int = 3

    # Scraping
    scrape_timeout: int = 30
    min_content_chars: int = 80
    reflection_max_chars: int = 5000
    extraction_section_max_chars: int = 7000

    # Cache (empty path disables caching)
    cache_db_path: str = ".page_cache.db"
    cache_ttl_days: int = 7

    @property
    def has_llm(self) -> bool:
        return bool(self.anthropic_api_key or self.openai_api_key)

    def require_llm(self) -> None:
        """Raise if no LLM provider is configured."""
        if not self.has_llm:
            raise ConfigurationError(
                "At least one LLM key required: ANTHROPIC_API_KEY or OPENAI_API_KEY. "
                "Set it in a .env file or as an environment variable."
            )


def _positive_int(name: str, default: int) -> int:
    """Read a positive integer env var, falling back to the default."""
    raw = os.getenv(name, "")
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def load_config() -> Config:
    """Load configuration from .env file and environment variables.

    Environment variables override .env values. Missing LLM keys are not
    fatal here; the pipeline checks them at the start of each run.
    """
    load_dotenv()

    return Config(
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        firecrawl_key=os.getenv("FIRECRAWL_KEY", ""),
        anthropic_model=os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-5-20250929"),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o"),
        search_engine=os.getenv("SEARCH_ENGINE", "google"),
        search_pages=_positive_int("SEARCH_PAGES", 3),
        max_leads=_positive_int("MAX_LEADS", 30),
        search_concurrency=_positive_int("SEARCH_CONCURRENCY", 5),
        enrichment_concurrency=_positive_int("ENRICHMENT_CONCURRENCY", 10),
        extraction_concurrency=_positive_int("EXTRACTION_MAX_CONCURRENCY", 20),
        category_concurrency=_positive_int("CATEGORY_CONCURRENCY", 3),
        retry_max_attempts=_positive_int("RETRY_MAX_ATTEMPTS", 3),
        scrape_timeout=_positive_int("SCRAPE_TIMEOUT", 30),
        cache_db_path=os.getenv("CACHE_DB_PATH", ".page_cache.db"),
        cache_ttl_days=_positive_int("CACHE_TTL_DAYS", 7),
    )
