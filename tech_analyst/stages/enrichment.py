"""Enrichment: scrape each lead, ask the LLM which companies it shows, dedupe by domain."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from tech_analyst.analysis.reflection import reflect_for_companies
from tech_analyst.concurrency.fanout import FanOutStage
from tech_analyst.context import RunContext
from tech_analyst.models import EnrichmentStats, Lead, ReflectionResult, ScrapedPage
from tech_analyst.scrape.fetch import scrape_page
from tech_analyst.search.dedupe import dedupe_companies, normalize_to_homepage, should_skip_url

logger = logging.getLogger(__name__)

CACHE_CATEGORY = "enrichment"


class EnrichmentResult(BaseModel):
    companies: list[Lead] = Field(default_factory=list)
    stats: EnrichmentStats = Field(default_factory=EnrichmentStats)


def companies_from_reflection(lead: Lead, reflection: ReflectionResult) -> list[Lead]:
    """The page's own company (at its homepage) plus every listed company with a URL."""
    companies: list[Lead] = []
    if reflection.is_company_page and reflection.company_name:
        companies.append(Lead(
            name=reflection.company_name,
            url=normalize_to_homepage(lead.url),
            snippet=lead.snippet,
            source_query=lead.source_query,
        ))
    for extracted in reflection.extracted_companies:
        if not extracted.url:
            logger.debug("Dropping %s from %s: no URL", extracted.name, lead.url[:80])
            continue
        companies.append(Lead(
            name=extracted.name,
            url=normalize_to_homepage(extracted.url),
            source_query=lead.source_query,
        ))
    return companies


async def run_enrichment(ctx: RunContext, market_sector: str, leads: list[Lead]) -> EnrichmentResult:

    async def enrich_one(lead: Lead) -> list[ScrapedPage]:
        content = await scrape_page(ctx, lead.url, CACHE_CATEGORY)
        if not content:
            return [ScrapedPage(url=lead.url, error="No content scraped")]

        ctx.progress.report("enrichment", "reflecting", f"Analyzing {lead.name}", company=lead.name)
        reflection = await reflect_for_companies(ctx, market_sector, lead.url, content)
        return [ScrapedPage(url=lead.url, companies=companies_from_reflection(lead, reflection))]

    def enrich_failed(lead: Lead, error: Exception) -> list[ScrapedPage]:
        return [ScrapedPage(url=lead.url, error=str(error) or type(error).__name__)]

    outcome = await FanOutStage(ctx, "enrichment", "scraping", ctx.config.enrichment_concurrency).run(
        leads,
        enrich_one,
        on_error=enrich_failed,
        skip=lambda lead: should_skip_url(lead.url),
        describe=lambda lead: f"Scraped {lead.name}",
        company=lambda lead: lead.name,
    )

    ctx.progress.report("enrichment", "aggregating", "Merging companies across pages")
    pages = outcome.results
    all_companies = [company for page in pages for company in page.companies]
    deduped = dedupe_companies(all_companies)

    stats = EnrichmentStats(
        input_leads=len(leads),
        pages_scraped=len(pages),
        companies_extracted=len(all_companies),
        after_dedupe=len(deduped),
        skipped_urls=outcome.skipped,
        failed_pages=sum(1 for page in pages if page.error),
    )
    ctx.progress.report("enrichment", "aggregating", f"Identified {len(deduped)} unique companies")
    logger.info("Enrichment: %s", stats.model_dump())
    return EnrichmentResult(companies=deduped, stats=stats)
