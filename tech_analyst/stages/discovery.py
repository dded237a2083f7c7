"""Discovery: sector -> search queries -> search fan-out -> deduplicated leads."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from tech_analyst.concurrency.fanout import FanOutStage
from tech_analyst.concurrency.retry import LLM_RETRY_POLICY, TOOL_RETRY_POLICY
from tech_analyst.context import RunContext
from tech_analyst.errors import AnalysisError
from tech_analyst.models import Lead, SearchRunResult
from tech_analyst.search.dedupe import dedupe_leads
from tech_analyst.search.leads import extract_company_leads
from tech_analyst.search.strategy import generate_search_queries

logger = logging.getLogger(__name__)


class DiscoveryResult(BaseModel):
    queries: list[str] = Field(default_factory=list)
    leads: list[Lead] = Field(default_factory=list)
    search_units: int = 0
    failed_units: int = 0
    raw_leads: int = 0


def search_units(queries: list[str], pages: int, cursor_start: int = 1) -> list[tuple[str, int]]:
    """Every query paired with each result-page cursor."""
    return [
        (query, cursor)
        for query in queries
        for cursor in range(cursor_start, cursor_start + max(1, pages))
    ]


async def run_discovery(ctx: RunContext, market_sector: str) -> DiscoveryResult:
    config = ctx.config

    ctx.progress.report("discovery", "queries", f"Generating search queries for {market_sector}")
    queries = await generate_search_queries(
        ctx.llm,
        market_sector,
        retrier=ctx.retrier(LLM_RETRY_POLICY),
        target_companies=config.max_leads,
    )
    ctx.progress.report("discovery", "queries", f"Generated {len(queries)} search queries")

    units = search_units(queries, config.search_pages, config.search_cursor_start)

    async def search_one(unit: tuple[str, int]) -> list[SearchRunResult]:
        query, cursor = unit
        raw = await ctx.retrier(TOOL_RETRY_POLICY).run(
            lambda: ctx.tools.invoke("search", {
                "query": query,
                "cursor": str(cursor),
                "engine": config.search_engine,
            })
        )
        return [SearchRunResult(query=query, cursor=cursor, raw=raw)]

    def search_failed(unit: tuple[str, int], error: Exception) -> list[SearchRunResult]:
        query, cursor = unit
        return [SearchRunResult(query=query, cursor=cursor, error=str(error) or type(error).__name__)]

    outcome = await FanOutStage(ctx, "discovery", "searching", config.search_concurrency).run(
        units,
        search_one,
        on_error=search_failed,
        describe=lambda unit: f"Searched '{unit[0]}' (page {unit[1]})",
    )
    failed = sum(1 for r in outcome.results if r.error)
    if units and failed == len(units):
        raise AnalysisError(f"All {len(units)} search requests failed")

    ctx.progress.report("discovery", "extracting", "Extracting company leads from search results")
    raw_leads = extract_company_leads(outcome.results)

    ctx.progress.report("discovery", "deduplicating", f"Deduplicating {len(raw_leads)} leads")
    leads = dedupe_leads(raw_leads, config.max_leads)
    ctx.progress.report("discovery", "deduplicating", f"Found {len(leads)} unique leads")

    logger.info(
        "Discovery: %d queries, %d search units (%d failed), %d raw leads, %d kept",
        len(queries), len(units), failed, len(raw_leads), len(leads),
    )
    return DiscoveryResult(
        queries=queries,
        leads=leads,
        search_units=len(units),
        failed_units=failed,
        raw_leads=len(raw_leads),
    )
