"""Async HTTP page fetch with browser-like headers."""

from __future__ import annotations

import logging
import random

import httpx

logger = logging.getLogger(__name__)

# Rotate through realistic user agents to avoid blocks
USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:126.0) Gecko/20100101 Firefox/126.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.5 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36",
]


def _get_headers() -> dict[str, str]:
    return {
        "User-Agent": random.choice(USER_AGENTS),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "none",
        "Sec-Fetch-User": "?1",
        "Upgrade-Insecure-Requests": "1",
    }


def open_web_session(timeout: int = 30) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        max_redirects=5,
        verify=False,
    )


async def fetch_url(client: httpx.AsyncClient, url: str) -> str | None:
    """Fetch a URL and return its HTML (or plain text / JSON body).

    Returns None for content types we cannot extract text from. HTTP errors
    raise ``httpx.HTTPStatusError`` and transport failures propagate, so the
    caller can classify them.
    """
    response = await client.get(url, headers=_get_headers())
    response.raise_for_status()

    content_type = response.headers.get("content-type", "")
    if "text/html" in content_type or "text/plain" in content_type:
        return response.text
    if "application/json" in content_type:
        return response.text
    logger.debug("Non-HTML content at %s: %s", url[:80], content_type[:50])
    return None
