"""Page-to-markdown extraction with multi-tier fallbacks.

Tier 1: trafilatura (fast, local, good for static HTML)
Tier 2: Basic HTML stripping when trafilatura keeps too little
Tier 3: Jina.ai Reader (free API, covers JS-heavy sites and cookie walls)
"""

from __future__ import annotations

import logging
import re

import httpx
import trafilatura

from tech_analyst.scrape.http_scraper import fetch_url

logger = logging.getLogger(__name__)

_MIN_USEFUL_CHARS = 100


async def extract_markdown(client: httpx.AsyncClient, url: str) -> str:
    """Fetch ``url`` and return its main content as markdown-ish text.

    Returns "" when no tier produced anything. If the direct fetch failed
    and Jina produced nothing either, the fetch error is re-raised so the
    retry policy sees the real cause.
    """
    content = ""
    fetch_error: httpx.HTTPError | None = None

    try:
        html = await fetch_url(client, url)
    except httpx.HTTPError as e:
        logger.debug("Direct fetch failed for %s: %s", url[:80], e)
        html = None
        fetch_error = e

    if html:
        content = trafilatura.extract(
            html,
            output_format="markdown",
            include_tables=True,
            include_links=False,
            include_comments=False,
            favor_recall=True,
            url=url,
        ) or ""
        if len(content) < _MIN_USEFUL_CHARS:
            basic = _basic_html_to_text(html)
            if len(basic) > len(content):
                content = basic

    if len(content) < _MIN_USEFUL_CHARS:
        jina_content = await _fetch_via_jina(client, url)
        if jina_content and len(jina_content) > len(content):
            content = jina_content

    if not content and fetch_error is not None:
        raise fetch_error
    return content


async def _fetch_via_jina(client: httpx.AsyncClient, url: str) -> str | None:
    """Fetch clean markdown via Jina.ai Reader API (free, no API key).

    Jina renders JavaScript and returns clean markdown, which covers
    JS-heavy sites, SPAs, and pages behind cookie walls.
    """
    jina_url = f"https://r.jina.ai/{url}"
    try:
        response = await client.get(
            jina_url,
            headers={
                "Accept": "text/plain",
                "X-Return-Format": "markdown",
            },
        )
        if response.status_code == 200 and len(response.text) > _MIN_USEFUL_CHARS:
            return response.text
    except httpx.HTTPError as e:
        logger.debug("Jina.ai fallback failed for %s: %s", url[:60], e)
    return None


def _basic_html_to_text(html: str) -> str:
    """Fallback HTML-to-text when trafilatura fails."""
    text = html
    # Remove scripts and styles
    text = re.sub(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", "", text, flags=re.I | re.S)
    text = re.sub(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", "", text, flags=re.I | re.S)
    text = re.sub(r"<!--[\s\S]*?-->", "", text)
    text = re.sub(r"<[^>]+>", " ", text)
    # Decode common entities
    text = text.replace("&nbsp;", " ")
    text = text.replace("&amp;", "&")
    text = text.replace("&lt;", "<")
    text = text.replace("&gt;", ">")
    text = text.replace("&quot;", '"')
    text = text.replace("&#39;", "'")
    text = re.sub(r"&[a-z]+;", " ", text, flags=re.I)
    text = re.sub(r"\s+", " ", text)
    return text.strip()
