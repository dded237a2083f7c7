"""Async Firecrawl search and scrape calls over a shared httpx session."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)

FIRECRAWL_BASE_URL = "https://api.firecrawl.dev"
FIRECRAWL_SEARCH_PATH = "/v2/search"
FIRECRAWL_SCRAPE_PATH = "/v2/scrape"

# Firecrawl caps a single search request at this many results
_MAX_LIMIT = 100


def open_firecrawl_session(api_key: str, timeout: int = 60) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=FIRECRAWL_BASE_URL,
        timeout=timeout,
        headers={
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        },
    )


async def search_firecrawl(
    client: httpx.AsyncClient,
    query: str,
    page: int = 1,
    per_page: int = 10,
) -> list[dict]:
    """Execute a Google-backed web search via Firecrawl.

    Firecrawl has no result cursor, so page N is requested as the first
    ``N * per_page`` results and sliced down to its window.

    Returns a list of {title, url, description, position}. Raises
    ``httpx.HTTPStatusError`` on HTTP failures and ``RuntimeError`` when
    Firecrawl reports an unsuccessful search.
    """
    limit = min(_MAX_LIMIT, max(1, page) * per_page)
    response = await client.post(
        FIRECRAWL_SEARCH_PATH,
        json={"query": query, "limit": limit},
    )
    response.raise_for_status()
    data = response.json()

    if not data.get("success", False):
        warning = data.get("warning") or data.get("error") or "unknown error"
        raise RuntimeError(f"Firecrawl search failed: {warning}")

    # v2 nests results under "web"; fall back to a flat list for v1 compat
    raw_data = data.get("data", {})
    if isinstance(raw_data, list):
        raw_results = raw_data
    else:
        raw_results = raw_data.get("web", [])

    start = (max(1, page) - 1) * per_page
    results = []
    for i, item in enumerate(raw_results[start:start + per_page]):
        url = item.get("url", "")
        if not url:
            continue
        results.append({
            "title": item.get("title", ""),
            "url": url,
            "description": item.get("description", ""),
            "position": start + i + 1,
        })
    logger.debug("Firecrawl '%s' page %d: %d results", query[:60], page, len(results))
    return results


async def scrape_firecrawl(client: httpx.AsyncClient, url: str) -> str:
    """Scrape one page as markdown. Returns "" when Firecrawl found nothing."""
    response = await client.post(
        FIRECRAWL_SCRAPE_PATH,
        json={"url": url, "formats": ["markdown"], "onlyMainContent": True},
    )
    response.raise_for_status()
    data = response.json()
    if not data.get("success", False):
        raise RuntimeError(f"Firecrawl scrape failed: {data.get('error') or 'unknown error'}")
    return (data.get("data") or {}).get("markdown") or ""
