"""Extraction: per company, scrape pricing/docs/about concurrently and extract structure."""

from __future__ import annotations

import asyncio
import logging

from tech_analyst.analysis.extraction import extract_company_data, fallback_extraction
from tech_analyst.concurrency.fanout import FanOutStage
from tech_analyst.context import RunContext
from tech_analyst.models import CompanyInput, ExtractedCompanyData, ScrapeResult
from tech_analyst.scrape.fetch import scrape_path
from tech_analyst.scrape.paths import detect_paths

logger = logging.getLogger(__name__)

CATEGORIES = ("pricing", "docs", "about")


async def extract_single_company(ctx: RunContext, company: CompanyInput) -> ExtractedCompanyData:
    paths = detect_paths(company.url)
    gate = asyncio.Semaphore(max(1, ctx.config.category_concurrency))

    async def scrape_category(category: str) -> ScrapeResult | None:
        async with gate:
            return await scrape_path(ctx, category, paths[category], company.name)

    pricing, docs, about = await asyncio.gather(*(scrape_category(c) for c in CATEGORIES))
    found = [c for c, r in zip(CATEGORIES, (pricing, docs, about)) if r is not None]
    logger.debug("%s: scraped %s", company.name, ", ".join(found) or "nothing")

    ctx.progress.report(
        "extraction", "reflecting", f"Extracting data for {company.name}", company=company.name,
    )
    return await extract_company_data(ctx, company, pricing, docs, about)


async def run_extraction(ctx: RunContext, companies: list[CompanyInput]) -> list[ExtractedCompanyData]:

    async def extract_one(company: CompanyInput) -> list[ExtractedCompanyData]:
        return [await extract_single_company(ctx, company)]

    def extract_failed(company: CompanyInput, error: Exception) -> list[ExtractedCompanyData]:
        return [fallback_extraction(company, None, None, None)]

    outcome = await FanOutStage(ctx, "extraction", "extracting", ctx.config.extraction_concurrency).run(
        companies,
        extract_one,
        on_error=extract_failed,
        describe=lambda company: f"Extracted {company.name}",
        company=lambda company: company.name,
    )
    logger.info(
        "Extraction: %d companies, %d failed", outcome.dispatched, len(outcome.failures),
    )
    return outcome.results
