"""Search query generation for market-sector discovery."""

from __future__ import annotations

import logging
import re

from tech_analyst.analysis.llm_client import LLMClient
from tech_analyst.analysis.parsing import extract_json_array
from tech_analyst.analysis.prompts import QUERY_SYSTEM_PROMPT, QUERY_USER_PROMPT
from tech_analyst.concurrency.retry import LLM_RETRY_POLICY, RetryExecutor
from tech_analyst.errors import ConfigurationError, PipelineCancelled

logger = logging.getLogger(__name__)

MIN_QUERIES = 10
MAX_QUERIES = 12
QUERY_TEMPERATURE = 0.7


def normalize_query(query: str) -> str:
    """Strip list bullets/numbering, surrounding quotes and extra whitespace."""
    cleaned = query.strip()
    cleaned = re.sub(r"^(?:[-*•]+|\d+[.)])\s*", "", cleaned)
    if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in "\"'":
        cleaned = cleaned[1:-1]
    return re.sub(r"\s+", " ", cleaned).strip()


def dedupe_and_clamp(queries: list[str], limit: int = MAX_QUERIES) -> list[str]:
    seen: set[str] = set()
    cleaned: list[str] = []
    for raw in queries:
        query = normalize_query(raw)
        if not query:
            continue
        key = query.lower()
        if key in seen:
            continue
        seen.add(key)
        cleaned.append(query)
    return cleaned[:limit]


def fallback_queries(sector: str) -> list[str]:
    """Deterministic query templates used to top up a short LLM answer."""
    return [
        f'"{sector}" vendors',
        f'"{sector}" companies',
        f'"{sector}" platforms',
        f'"{sector}" software',
        f'"{sector}" providers',
        f"best {sector} tools",
        f"top {sector} vendors",
        f"{sector} market leaders",
        f"{sector} startups",
        f"{sector} open source",
        f"{sector} enterprise",
        f"{sector} pricing",
    ]


def parse_query_response(text: str) -> list[str]:
    """JSON array if one is present, otherwise one query per line."""
    parsed = extract_json_array(text)
    if parsed is not None:
        return [item for item in parsed if isinstance(item, str) and item]
    return text.split("\n")


async def generate_search_queries(
    llm: LLMClient,
    market_sector: str,
    retrier: RetryExecutor | None = None,
    target_companies: int = 30,
) -> list[str]:
    """Ask the LLM for 10-12 search queries, topping up from fixed templates.

    Raises ValueError for an empty sector. An LLM failure (after retries)
    degrades to the template list; configuration errors still propagate.
    """
    sector = market_sector.strip()
    if not sector:
        raise ValueError("market_sector is required to generate search queries.")

    system = QUERY_SYSTEM_PROMPT.format(min_queries=MIN_QUERIES, max_queries=MAX_QUERIES)
    user = QUERY_USER_PROMPT.format(market_sector=sector, target_companies=target_companies)
    retrier = retrier or RetryExecutor(policy=LLM_RETRY_POLICY)

    try:
        text = await retrier.run(
            lambda: llm.complete(system, user, temperature=QUERY_TEMPERATURE)
        )
    except (ConfigurationError, PipelineCancelled):
        raise
    except Exception as e:
        logger.warning("Query generation failed for '%s', using templates: %s", sector, e)
        text = ""

    queries = dedupe_and_clamp(parse_query_response(text))
    if len(queries) >= MIN_QUERIES:
        return queries

    logger.info("LLM returned %d queries; topping up from templates", len(queries))
    return dedupe_and_clamp(queries + fallback_queries(sector))[:MIN_QUERIES]
