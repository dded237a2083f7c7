"""Free DuckDuckGo search fallback, no API key required."""

from __future__ import annotations

import asyncio
import logging
import time

from ddgs import DDGS

logger = logging.getLogger(__name__)

_DDG_MIN_INTERVAL = 2.0  # seconds between requests


class DuckDuckGoSearch:
    """Serialised DDG searcher.

    All requests go through one lock with a minimum interval between them to
    avoid 429s from the free search backends. Errors propagate so the
    caller's retry policy can decide what to do with them.
    """

    def __init__(self, min_interval: float = _DDG_MIN_INTERVAL):
        self.min_interval = min_interval
        self._lock = asyncio.Lock()
        self._last_request_time = 0.0

    async def search(self, query: str, page: int = 1, per_page: int = 10) -> list[dict]:
        """Return page ``page`` of results as {title, url, description, position}."""
        wanted = max(1, page) * per_page

        async with self._lock:
            elapsed = time.monotonic() - self._last_request_time
            if elapsed < self.min_interval:
                await asyncio.sleep(self.min_interval - elapsed)
            try:
                raw = await asyncio.to_thread(_ddg_search_sync, query, wanted)
            finally:
                self._last_request_time = time.monotonic()

        start = (max(1, page) - 1) * per_page
        results = []
        for i, item in enumerate(raw[start:start + per_page]):
            url = item.get("href", "")
            if url:
                results.append({
                    "title": item.get("title", ""),
                    "url": url,
                    "description": item.get("body", ""),
                    "position": start + i + 1,
                })
        logger.debug("DDG '%s' page %d: %d results", query[:60], page, len(results))
        return results


def _ddg_search_sync(query: str, num_results: int) -> list[dict]:
    """Run the synchronous DDG search in a thread."""
    with DDGS() as ddgs:
        return list(ddgs.text(query, max_results=num_results))
