"""Pull company leads out of raw, loosely-shaped search tool output."""

from __future__ import annotations

import json
import logging
import re
from urllib.parse import urlparse

from tech_analyst.models import Lead, SearchRunResult

logger = logging.getLogger(__name__)

# Keys probed (in order) for the list of result items
ITEM_LIST_KEYS = ["results", "organic", "items", "data", "search_results", "result"]
# Keys probed for a free-text body to regex URLs out of
TEXT_KEYS = ["result", "content", "text", "markdown"]

TITLE_KEYS = ["title", "name", "company", "result_title"]
URL_KEYS = ["url", "link", "href", "website"]
SNIPPET_KEYS = ["snippet", "description", "content", "excerpt"]

_URL_PATTERN = re.compile(r"https?://[^\s)]+")


def _normalize_url(raw: str) -> str | None:
    """Keep only absolute http(s) URLs."""
    try:
        parsed = urlparse(raw.strip())
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    if parsed.path == "" and not parsed.query and not parsed.fragment:
        return f"{parsed.scheme}://{parsed.netloc}/"
    return parsed.geturl()


def name_from_url(url: str) -> str:
    """First hostname label, e.g. https://www.acme-labs.io -> "acme labs"."""
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return url
    if not host:
        return url
    if host.startswith("www."):
        host = host[4:]
    base = host.split(".")[0] or host
    return re.sub(r"[-_]", " ", base).strip()


def _pick_string(item: dict, keys: list[str]) -> str | None:
    for key in keys:
        value = item.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _extract_items(raw: object) -> list:
    if not raw:
        return []
    if isinstance(raw, list):
        return raw
    if isinstance(raw, str):
        trimmed = raw.strip()
        if trimmed.startswith(("{", "[")):
            try:
                return _extract_items(json.loads(trimmed))
            except json.JSONDecodeError:
                return []
        return []
    if isinstance(raw, dict):
        for key in ITEM_LIST_KEYS:
            value = raw.get(key)
            if isinstance(value, list):
                return value
    return []


def _extract_text(raw: object) -> str | None:
    if not raw:
        return None
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict):
        for key in TEXT_KEYS:
            value = raw.get(key)
            if isinstance(value, str):
                return value
    return None


def _lead_from_item(item: object, source_query: str) -> Lead | None:
    if not isinstance(item, dict):
        return None
    url_candidate = _pick_string(item, URL_KEYS)
    url = _normalize_url(url_candidate) if url_candidate else None
    if not url:
        return None

    title = _pick_string(item, TITLE_KEYS)
    if title:
        name = title.split(" - ")[0].split(" | ")[0].strip()
    else:
        name = name_from_url(url)
    if not name:
        return None

    return Lead(
        name=name,
        url=url,
        snippet=_pick_string(item, SNIPPET_KEYS) or "",
        source_query=source_query,
    )


def extract_company_leads(results: list[SearchRunResult]) -> list[Lead]:
    """Turn raw search responses into leads, structured items first.

    Failed search units (no ``raw``) contribute nothing. Any free-text body is
    additionally scanned for bare URLs.
    """
    leads: list[Lead] = []
    total_items = 0
    fallback_urls = 0

    for result in results:
        if not result.raw:
            continue

        items = _extract_items(result.raw)
        total_items += len(items)
        for item in items:
            lead = _lead_from_item(item, result.query)
            if lead:
                leads.append(lead)

        text = _extract_text(result.raw)
        if text:
            for match in _URL_PATTERN.findall(text):
                url = _normalize_url(match)
                if not url:
                    continue
                fallback_urls += 1
                leads.append(Lead(name=name_from_url(url), url=url, source_query=result.query))

    logger.debug(
        "Extracted %d leads from %d search units (%d items, %d bare URLs)",
        len(leads), len(results), total_items, fallback_urls,
    )
    return leads
