"""Candidate page URLs per extraction category."""

from __future__ import annotations

from urllib.parse import urlparse

CATEGORY_PATHS: dict[str, list[str]] = {
    "pricing": ["/pricing", "/plans", "/pricing-plans", "/pricing/", "/plans/"],
    "docs": [
        "/docs", "/documentation", "/developers", "/features",
        "/product", "/products", "/docs/", "/documentation/",
    ],
    "about": ["/about", "/about-us", "/company", "/who-we-are", "/about/", "/company/"],
}


def detect_paths(base_url: str) -> dict[str, list[str]]:
    """Ordered candidate URLs for pricing/docs/about, rooted at the site origin.

    An unparsable base URL yields empty candidate lists.
    """
    try:
        parsed = urlparse(base_url)
    except ValueError:
        parsed = None
    if parsed is None or not parsed.scheme or not parsed.netloc:
        return {category: [] for category in CATEGORY_PATHS}

    origin = f"{parsed.scheme}://{parsed.netloc}"
    return {
        category: [origin + path for path in paths]
        for category, paths in CATEGORY_PATHS.items()
    }
