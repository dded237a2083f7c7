"""Domain canonicalization and duplicate merging for leads and companies."""

from __future__ import annotations

import logging
from urllib.parse import urlparse

from tech_analyst.models import Lead

logger = logging.getLogger(__name__)

# Known limitation: only these multi-label public suffixes are recognised
TWO_PART_TLDS = ["co.uk", "com.au", "co.nz", "co.jp", "com.br"]

# Social / video / forum domains with no useful company content
SKIP_DOMAINS = [
    "youtube.com",
    "youtu.be",
    "reddit.com",
    "quora.com",
    "twitter.com",
    "x.com",
    "facebook.com",
    "instagram.com",
    "tiktok.com",
    "linkedin.com",
]


def _hostname(url: str) -> str | None:
    """Lowercased hostname without a leading ``www.``; None if unparsable."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        return None
    if not host:
        return None
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


def root_domain(hostname: str) -> str:
    """Registrable domain, e.g. cloud.zilliz.com -> zilliz.com."""
    host = hostname.lower()
    if host.startswith("www."):
        host = host[4:]
    parts = host.split(".")
    if len(parts) >= 3 and ".".join(parts[-2:]) in TWO_PART_TLDS:
        return ".".join(parts[-3:])
    if len(parts) >= 2:
        return ".".join(parts[-2:])
    return host


def normalize_to_homepage(url: str) -> str:
    """Drop path, query and fragment; keep scheme, subdomain and port."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    if not parsed.scheme or not parsed.netloc:
        return url
    return f"{parsed.scheme}://{parsed.netloc}"


def should_skip_url(url: str) -> bool:
    host = _hostname(url)
    if host is None:
        return True
    return any(host == skip or host.endswith("." + skip) for skip in SKIP_DOMAINS)


def dedupe_leads(leads: list[Lead], max_leads: int = 30) -> list[Lead]:
    """Merge leads sharing a hostname and rank by how often they were seen.

    The first lead for a key wins; later duplicates only backfill an empty
    name or snippet. Output is sorted by occurrences (descending, stable)
    and truncated to ``max_leads``.
    """
    merged: dict[str, Lead] = {}
    for lead in leads:
        key = _hostname(lead.url) or lead.name.lower()
        existing = merged.get(key)
        if existing is None:
            merged[key] = lead.model_copy(update={"occurrences": 1})
            continue
        existing.occurrences += 1
        if lead.snippet and not existing.snippet:
            existing.snippet = lead.snippet
        if lead.name and not existing.name:
            existing.name = lead.name

    ranked = sorted(merged.values(), key=lambda lead: lead.occurrences, reverse=True)
    logger.debug("Lead dedupe: %d in, %d unique, keeping %d", len(leads), len(ranked), max_leads)
    return ranked[:max_leads]


def dedupe_companies(companies: list[Lead]) -> list[Lead]:
    """One company per root domain, preferring a non-subdomain URL.

    Companies with unparsable URLs are dropped.
    """
    by_domain: dict[str, Lead] = {}
    for company in companies:
        host = _hostname(company.url)
        if host is None:
            logger.debug("Dropping company with invalid URL: %s", company.url)
            continue
        domain = root_domain(host)
        existing = by_domain.get(domain)
        if existing is None:
            by_domain[domain] = company
            continue
        existing_is_subdomain = _hostname(existing.url) != domain
        if existing_is_subdomain and host == domain:
            by_domain[domain] = company
    return list(by_domain.values())
