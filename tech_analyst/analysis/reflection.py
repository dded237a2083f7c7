"""Lightweight LLM reflection: is this lead a company page, and who does it list?"""

from __future__ import annotations

import logging

from tech_analyst.analysis.parsing import extract_json_object
from tech_analyst.analysis.prompts import (
    REFLECTION_SYSTEM_PROMPT,
    REFLECTION_USER_PROMPT,
    truncate,
)
from tech_analyst.concurrency.retry import REFLECTION_RETRY_POLICY
from tech_analyst.context import RunContext
from tech_analyst.errors import ConfigurationError, PipelineCancelled, describe_error
from tech_analyst.models import ReflectedCompany, ReflectionResult

logger = logging.getLogger(__name__)


async def reflect_for_companies(
    ctx: RunContext,
    market_sector: str,
    url: str,
    content: str,
) -> ReflectionResult:
    """Classify a scraped lead page. Any LLM or parse failure yields an empty result."""
    user = REFLECTION_USER_PROMPT.format(
        market_sector=market_sector,
        url=url,
        content=truncate(content, ctx.config.reflection_max_chars),
    )

    def on_retry(attempt: int, delay: float, error: BaseException) -> None:
        info = describe_error(error)
        logger.debug("Reflection retry %d for %s in %.2fs: %s", attempt, url[:80], delay, info.message)

    try:
        text = await ctx.retrier(REFLECTION_RETRY_POLICY, on_retry).run(
            lambda: ctx.llm.complete(REFLECTION_SYSTEM_PROMPT, user)
        )
    except (ConfigurationError, PipelineCancelled):
        raise
    except Exception as e:
        logger.warning("Reflection failed for %s: %s", url[:80], e)
        return ReflectionResult()

    return parse_reflection_response(text, url)


def parse_reflection_response(text: str, url: str = "") -> ReflectionResult:
    data = extract_json_object(text)
    if data is None:
        logger.debug("Reflection returned no JSON for %s", url[:80])
        return ReflectionResult()

    companies = []
    raw_companies = data.get("extractedCompanies")
    for item in raw_companies if isinstance(raw_companies, list) else []:
        if not isinstance(item, dict):
            continue
        name = item.get("name")
        if not isinstance(name, str) or not name.strip():
            continue
        company_url = item.get("url")
        companies.append(ReflectedCompany(
            name=name.strip(),
            url=company_url.strip() if isinstance(company_url, str) and company_url.strip() else None,
        ))

    company_name = data.get("companyName")
    return ReflectionResult(
        is_company_page=bool(data.get("isCompanyPage")),
        company_name=company_name.strip() if isinstance(company_name, str) and company_name.strip() else None,
        extracted_companies=companies,
    )
