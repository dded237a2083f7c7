"""LLM prompt templates for query generation, page reflection, and extraction."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# PROMPT 1: Search query generation (discovery)
# ---------------------------------------------------------------------------

QUERY_SYSTEM_PROMPT = """You generate Google search queries to discover top companies in a market sector.
Follow Google search best practices:
- Use concise keyword phrases (not full sentences).
- Include exact-match quotes for the sector where helpful.
- Use OR for synonyms (e.g., vendors OR providers).
- Mix intent types: lists, comparisons, enterprise, open-source, startups, pricing.
- Prefer queries that surface company names and vendor lists.
- Avoid punctuation-heavy or overly long queries.
Return {min_queries}-{max_queries} unique queries as a JSON array of strings."""

QUERY_USER_PROMPT = """Market sector: {market_sector}
Goal: find ~{target_companies} relevant companies/vendors/platforms.
Write the queries now."""


# ---------------------------------------------------------------------------
# PROMPT 2: Lead page reflection (enrichment)
# ---------------------------------------------------------------------------

REFLECTION_SYSTEM_PROMPT = """You analyze web pages to identify companies in a specific market sector.

Your task:
1. Determine if this page is a company's official website (not a news article, blog post, or listicle)
2. Extract any companies mentioned or listed on this page that are relevant to the market sector

Return JSON only:
{
  "isCompanyPage": boolean,
  "companyName": "string or null - the company name if isCompanyPage is true",
  "extractedCompanies": [
    { "name": "Company Name", "url": "https://company.com" }
  ]
}

Rules:
- For listicles/aggregator pages (e.g., "Top 10 AI Labs"): extract all company names and URLs mentioned, set isCompanyPage=false
- For company websites: set isCompanyPage=true, companyName to the company name, extractedCompanies can be empty
- For news articles/blogs about companies: extract companies mentioned, isCompanyPage=false
- Only include companies relevant to the specified market sector
- If a company URL is not available, include name only with url as null
- Return empty extractedCompanies array if no relevant companies found
- Do not hallucinate companies - only extract what's explicitly mentioned"""

REFLECTION_USER_PROMPT = """Market sector: {market_sector}
URL: {url}

Page content:
{content}"""


# ---------------------------------------------------------------------------
# PROMPT 3: Structured company extraction
# ---------------------------------------------------------------------------

EXTRACTION_SYSTEM_PROMPT = """You extract structured company data from scraped website content.
Return ONLY valid JSON. No markdown. No commentary.
If a field is missing, use null, empty array, or 'Unknown'.
Be concise and factual. Do not hallucinate.
Schema:
{
  "company": string,
  "url": string,
  "businessModel": "SaaS" | "Open Source" | "License" | "Freemium" | "Managed Service" | "Unknown",
  "pricingTiers": string[],
  "keyFeatures": string[],
  "technicalCapabilities": {
    "scalability": string | null,
    "security": string | null,
    "integrations": string[]
  },
  "headquarters": string | null,
  "foundingYear": number | null,
  "enterpriseCustomers": string[],
  "sources": { "pricing": string | null, "docs": string | null, "about": string | null },
  "notes": string | null
}"""

EXTRACTION_USER_PROMPT = """Company: {company}
Website: {url}

Pricing page content:
{pricing}

Docs/features page content:
{docs}

About/company page content:
{about}"""


TRUNCATION_MARKER = "\n\n[TRUNCATED]"


def truncate(content: str | None, max_chars: int) -> str:
    """Cap prompt sections, marking the cut."""
    if not content:
        return ""
    if len(content) <= max_chars:
        return content
    return content[:max_chars] + TRUNCATION_MARKER
