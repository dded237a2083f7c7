"""Pydantic data models for the market analysis pipeline."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


Stage = Literal["discovery", "enrichment", "extraction", "synthesis", "visualization"]
Substage = Literal[
    "queries", "searching", "extracting", "deduplicating", "scraping",
    "reflecting", "aggregating", "scoring", "normalizing", "charts",
]
BusinessModel = Literal["SaaS", "OpenSource", "License", "Freemium", "ManagedService", "Unknown"]
Quadrant = Literal["Leaders", "Challengers", "Visionaries", "NichePlayers"]
ScrapeCategory = Literal["pricing", "docs", "about", "enrichment"]
RunStatus = Literal[
    "discovery", "enrichment", "extraction", "synthesis", "visualization",
    "completed", "failed",
]

SCRAPE_CATEGORIES: tuple[str, ...] = ("pricing", "docs", "about", "enrichment")


# ---------------------------------------------------------------------------
# Discovery models
# ---------------------------------------------------------------------------

class Lead(BaseModel):
    """A candidate company surfaced by search."""
    name: str
    url: str
    snippet: str = ""
    source_query: str = ""
    occurrences: int = 1


class SearchRunResult(BaseModel):
    """Outcome of one query x cursor search unit."""
    query: str
    cursor: int
    raw: Any = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Enrichment models
# ---------------------------------------------------------------------------

class ReflectedCompany(BaseModel):
    name: str
    url: str | None = None


class ReflectionResult(BaseModel):
    """LLM verdict on one scraped lead page."""
    is_company_page: bool = False
    company_name: str | None = None
    extracted_companies: list[ReflectedCompany] = Field(default_factory=list)


class ScrapedPage(BaseModel):
    """Companies found on one enrichment page (or the reason none were)."""
    url: str
    companies: list[Lead] = Field(default_factory=list)
    error: str | None = None


class EnrichmentStats(BaseModel):
    input_leads: int = 0
    pages_scraped: int = 0
    companies_extracted: int = 0
    after_dedupe: int = 0
    skipped_urls: int = 0
    failed_pages: int = 0


# ---------------------------------------------------------------------------
# Extraction models
# ---------------------------------------------------------------------------

class CompanyInput(BaseModel):
    """Stable company identity passed into extraction. ``url`` is a homepage."""
    name: str
    url: str


class ScrapeResult(BaseModel):
    url: str
    content: str


class TechnicalCapabilities(BaseModel):
    scalability: str | None = None
    security: str | None = None
    integrations: list[str] = Field(default_factory=list)

    @field_validator("integrations", mode="before")
    @classmethod
    def coerce_list(cls, v):
        return _string_list(v)

    @field_validator("scalability", "security", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return _optional_text(v)


class Sources(BaseModel):
    pricing: str | None = None
    docs: str | None = None
    about: str | None = None


class ExtractedCompanyData(BaseModel):
    """Structured competitive data for one company. Always fully populated."""
    company: str
    url: str
    business_model: BusinessModel = "Unknown"
    pricing_tiers: list[str] = Field(default_factory=list)
    key_features: list[str] = Field(default_factory=list)
    technical_capabilities: TechnicalCapabilities = Field(default_factory=TechnicalCapabilities)
    headquarters: str | None = None
    founding_year: int | None = None
    enterprise_customers: list[str] = Field(default_factory=list)
    sources: Sources = Field(default_factory=Sources)
    notes: str | None = None

    @field_validator("business_model", mode="before")
    @classmethod
    def coerce_business_model(cls, v):
        return normalize_business_model(v)

    @field_validator("pricing_tiers", "key_features", "enterprise_customers", mode="before")
    @classmethod
    def coerce_list(cls, v):
        return _string_list(v)

    @field_validator("technical_capabilities", "sources", mode="before")
    @classmethod
    def coerce_nested(cls, v):
        return v if v is not None else {}

    @field_validator("headquarters", "notes", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return _optional_text(v)

    @field_validator("founding_year", mode="before")
    @classmethod
    def coerce_year(cls, v):
        if v is None or isinstance(v, bool):
            return None
        try:
            year = int(str(v).strip()[:4])
        except ValueError:
            return None
        return year if year > 0 else None


def normalize_business_model(value: object) -> str:
    """Map free-form LLM spellings ("Open Source", "managed service") onto the enum."""
    if not isinstance(value, str):
        return "Unknown"
    key = value.lower().replace(" ", "").replace("-", "").replace("_", "")
    if "managed" in key:
        return "ManagedService"
    if "saas" in key:
        return "SaaS"
    if "freemium" in key:
        return "Freemium"
    if "opensource" in key:
        return "OpenSource"
    if "licen" in key:
        return "License"
    return "Unknown"


def _string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def _optional_text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# ---------------------------------------------------------------------------
# Synthesis models
# ---------------------------------------------------------------------------

class ScoreBreakdown(BaseModel):
    feature_depth: int = 0
    innovation: int = 0
    positioning: int = 0
    pricing_maturity: int = 0
    enterprise_presence: int = 0
    documentation_quality: int = 0
    viability: int = 0


class ScoredCompany(BaseModel):
    company: str
    url: str
    vision: int = Field(ge=0, le=100)
    execution: int = Field(ge=0, le=100)
    quadrant: Quadrant
    breakdown: ScoreBreakdown
    raw: ExtractedCompanyData


# ---------------------------------------------------------------------------
# Cache / progress
# ---------------------------------------------------------------------------

class CacheEntry(BaseModel):
    url: str
    data: dict[str, str] = Field(default_factory=dict)
    scraped_at: datetime
    expires_at: datetime


class ProgressEvent(BaseModel):
    stage: Stage
    substage: Substage
    message: str
    progress: int | None = None
    total: int | None = None
    company: str | None = None


# ---------------------------------------------------------------------------
# Chart data
# ---------------------------------------------------------------------------

class QuadrantPoint(BaseModel):
    company: str
    vision: int
    execution: int
    quadrant: Quadrant


class WavePoint(BaseModel):
    company: str
    strategy: int
    current_offering: int
    market_presence: int


class RadarPoint(BaseModel):
    company: str
    tier: Literal["Leader", "Challenger", "Entrant"]
    angle: int
    radius: int
    movement: Literal["forward", "fast", "outperformer"] | None = None
    movement_angle: int


class QuadrantChart(BaseModel):
    title: str
    data: list[QuadrantPoint] = Field(default_factory=list)


class WaveChart(BaseModel):
    subtitle: str
    data: list[WavePoint] = Field(default_factory=list)


class RadarChart(BaseModel):
    category: str
    data: list[RadarPoint] = Field(default_factory=list)


class ChartData(BaseModel):
    quadrant: QuadrantChart
    wave: WaveChart
    radar: RadarChart


# ---------------------------------------------------------------------------
# Final result model
# ---------------------------------------------------------------------------

class AnalysisResult(BaseModel):
    """Everything one pipeline run produced, plus how it ended."""
    market_sector: str
    status: RunStatus = "discovery"
    error: str | None = None
    queries: list[str] = Field(default_factory=list)
    leads: list[Lead] = Field(default_factory=list)
    companies: list[CompanyInput] = Field(default_factory=list)
    enrichment_stats: EnrichmentStats | None = None
    extracted_data: list[ExtractedCompanyData] = Field(default_factory=list)
    scores: list[ScoredCompany] = Field(default_factory=list)
    chart_data: ChartData | None = None
    started_at: str = Field(default_factory=lambda: datetime.now().isoformat())
    finished_at: str | None = None
