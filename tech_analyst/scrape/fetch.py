"""Cache-fronted, retried page scraping through the tool client."""

from __future__ import annotations

import json
import logging

from tech_analyst.concurrency.retry import TOOL_RETRY_POLICY
from tech_analyst.context import RunContext
from tech_analyst.errors import ConfigurationError, PipelineCancelled
from tech_analyst.models import ScrapeResult

logger = logging.getLogger(__name__)

SCRAPE_OUTPUT_KEYS = ["markdown", "content", "text", "result", "data"]


def normalize_scrape_output(raw: object) -> str | None:
    """Flatten whatever the scrape tool returned into text."""
    if not raw:
        return None
    if isinstance(raw, str):
        return raw.strip()
    if isinstance(raw, dict):
        for key in SCRAPE_OUTPUT_KEYS:
            value = raw.get(key)
            if isinstance(value, str):
                return value.strip()
        try:
            return json.dumps(raw)
        except (TypeError, ValueError):
            return None
    return None


async def scrape_page(ctx: RunContext, url: str, category: str) -> str | None:
    """Scrape ``url`` (cache first), caching usable content under ``category``.

    Returns None when the page is too thin or the scrape kept failing after
    retries. Configuration errors and cancellation propagate.
    """
    cached = ctx.cache.get_content(url, category)
    if cached:
        logger.debug("Cache hit (%s): %s", category, url[:80])
        return cached

    retrier = ctx.retrier(TOOL_RETRY_POLICY)
    try:
        raw = await retrier.run(lambda: ctx.tools.invoke("scrape", {"url": url}))
    except (ConfigurationError, PipelineCancelled):
        raise
    except Exception as e:
        logger.info("Scrape failed for %s: %s", url[:80], e)
        return None

    content = normalize_scrape_output(raw)
    if not content or len(content) < ctx.config.min_content_chars:
        logger.debug("Scrape too thin (%d chars): %s", len(content or ""), url[:80])
        return None

    ctx.cache.put(url, category, content)
    logger.debug("Scraped %s (%d chars)", url[:80], len(content))
    return content


async def scrape_path(
    ctx: RunContext,
    category: str,
    candidates: list[str],
    company_name: str | None = None,
) -> ScrapeResult | None:
    """First candidate URL that yields usable content, or None."""
    for url in candidates:
        ctx.check_cancelled()
        cached = ctx.cache.get_content(url, category)
        if cached:
            ctx.progress.report(
                "extraction",
                "extracting",
                f"Cache hit: {company_name or 'unknown'} ({category})",
                company=company_name,
            )
            return ScrapeResult(url=url, content=cached)

        content = await scrape_page(ctx, url, category)
        if content:
            return ScrapeResult(url=url, content=content)
    return None
