"""Structured company extraction from scraped pricing/docs/about pages."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from tech_analyst.analysis.parsing import extract_json_object
from tech_analyst.analysis.prompts import (
    EXTRACTION_SYSTEM_PROMPT,
    EXTRACTION_USER_PROMPT,
    truncate,
)
from tech_analyst.concurrency.retry import LLM_RETRY_POLICY
from tech_analyst.context import RunContext
from tech_analyst.errors import ConfigurationError, PipelineCancelled, describe_error
from tech_analyst.models import (
    CompanyInput,
    ExtractedCompanyData,
    ScrapeResult,
    Sources,
    TechnicalCapabilities,
)

logger = logging.getLogger(__name__)

FALLBACK_NOTES = "LLM extraction failed or insufficient content."


def fallback_extraction(
    company: CompanyInput,
    pricing: ScrapeResult | None,
    docs: ScrapeResult | None,
    about: ScrapeResult | None,
) -> ExtractedCompanyData:
    return ExtractedCompanyData(
        company=company.name,
        url=company.url,
        business_model="Unknown",
        sources=_scrape_sources(pricing, docs, about),
        notes=FALLBACK_NOTES,
    )


def _scrape_sources(
    pricing: ScrapeResult | None,
    docs: ScrapeResult | None,
    about: ScrapeResult | None,
) -> Sources:
    return Sources(
        pricing=pricing.url if pricing else None,
        docs=docs.url if docs else None,
        about=about.url if about else None,
    )


async def extract_company_data(
    ctx: RunContext,
    company: CompanyInput,
    pricing: ScrapeResult | None,
    docs: ScrapeResult | None,
    about: ScrapeResult | None,
) -> ExtractedCompanyData:
    """Call the LLM to turn scraped pages into ExtractedCompanyData.

    Falls back to an empty-but-complete record on any LLM or parse failure.
    """
    limit = ctx.config.extraction_section_max_chars
    user = EXTRACTION_USER_PROMPT.format(
        company=company.name,
        url=company.url,
        pricing=truncate(pricing.content if pricing else None, limit) or "[missing]",
        docs=truncate(docs.content if docs else None, limit) or "[missing]",
        about=truncate(about.content if about else None, limit) or "[missing]",
    )

    def on_retry(attempt: int, delay: float, error: BaseException) -> None:
        info = describe_error(error)
        logger.debug(
            "Extraction retry %d for %s in %.2fs: %s (status=%s)",
            attempt, company.name, delay, info.message, info.status,
        )

    try:
        text = await ctx.retrier(LLM_RETRY_POLICY, on_retry).run(
            lambda: ctx.llm.complete(EXTRACTION_SYSTEM_PROMPT, user)
        )
    except (ConfigurationError, PipelineCancelled):
        raise
    except Exception as e:
        logger.error("Extraction failed for %s: %s", company.name, e)
        return fallback_extraction(company, pricing, docs, about)

    return parse_extraction_response(text, company, pricing, docs, about)


def parse_extraction_response(
    text: str,
    company: CompanyInput,
    pricing: ScrapeResult | None = None,
    docs: ScrapeResult | None = None,
    about: ScrapeResult | None = None,
) -> ExtractedCompanyData:
    """Map the LLM's camelCase JSON onto the snake_case model."""
    data = extract_json_object(text)
    if data is None:
        logger.warning("No JSON in extraction response for %s", company.name)
        return fallback_extraction(company, pricing, docs, about)

    tech = data.get("technicalCapabilities")
    tech = tech if isinstance(tech, dict) else {}
    raw_sources = data.get("sources")
    if isinstance(raw_sources, dict) and any(raw_sources.values()):
        sources = Sources(
            pricing=raw_sources.get("pricing") or None,
            docs=raw_sources.get("docs") or None,
            about=raw_sources.get("about") or None,
        )
    else:
        sources = _scrape_sources(pricing, docs, about)

    try:
        return ExtractedCompanyData(
            company=_text_or(data.get("company"), company.name),
            url=_text_or(data.get("url"), company.url),
            business_model=data.get("businessModel"),
            pricing_tiers=data.get("pricingTiers"),
            key_features=data.get("keyFeatures"),
            technical_capabilities=TechnicalCapabilities(
                scalability=tech.get("scalability"),
                security=tech.get("security"),
                integrations=tech.get("integrations"),
            ),
            headquarters=data.get("headquarters"),
            founding_year=data.get("foundingYear"),
            enterprise_customers=data.get("enterpriseCustomers"),
            sources=sources,
            notes=data.get("notes"),
        )
    except ValidationError as e:
        logger.error("Error mapping extraction data for %s: %s", company.name, e)
        return fallback_extraction(company, pricing, docs, about)


def _text_or(value: object, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default
