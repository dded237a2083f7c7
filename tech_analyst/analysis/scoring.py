"""Algorithmic vision/execution scoring. Deterministic, no LLM involvement."""

from __future__ import annotations

import math
from datetime import datetime

from tech_analyst.models import (
    ExtractedCompanyData,
    ScoreBreakdown,
    ScoredCompany,
    TechnicalCapabilities,
)

# Customer names that signal enterprise traction
ENTERPRISE_NAMES = [
    "microsoft", "google", "amazon", "aws", "meta", "apple", "ibm",
    "oracle", "salesforce", "sap", "netflix", "uber", "snowflake", "databricks",
]

SCALE_KEYWORDS = ["million", "billion", "high qps", "low latency"]
COMPLIANCE_KEYWORDS = ["soc", "iso", "hipaa", "gdpr", "pci"]

POSITIONING_SCORES = {
    "ManagedService": 80,
    "SaaS": 75,
    "Freemium": 70,
    "OpenSource": 65,
    "License": 55,
}

# Normalization is skipped when an axis spans less than this
MIN_NORMALIZE_SPREAD = 10
DEFAULT_THRESHOLD = 50.0


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    if math.isnan(value):
        return low
    return min(max(value, low), high)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _score(value: float) -> int:
    return int(clamp(round_half_up(value)))


# --- Component scores ---

def score_feature_depth(features: list[str]) -> int:
    count = len(features)
    if count == 0:
        score = 15
    elif count <= 2:
        score = 30
    elif count <= 4:
        score = 50
    elif count <= 7:
        score = 70
    elif count <= 10:
        score = 85
    else:
        score = 95
    if any(len(feature) >= 80 for feature in features):
        score += 5
    return _score(score)


def score_innovation(capabilities: TechnicalCapabilities) -> int:
    scalability = (capabilities.scalability or "").lower()
    security = (capabilities.security or "").lower()

    score = 40
    if len(scalability) > 40:
        score += 10
    if any(keyword in scalability for keyword in SCALE_KEYWORDS):
        score += 15
    if any(keyword in security for keyword in COMPLIANCE_KEYWORDS):
        score += 10
    score += min(len(capabilities.integrations) * 2, 20)
    return _score(score)


def score_positioning(business_model: str) -> int:
    return POSITIONING_SCORES.get(business_model, 45)


def score_pricing_maturity(pricing_tiers: list[str]) -> int:
    tiers = [tier.lower() for tier in pricing_tiers]
    count = len(tiers)
    if count == 0:
        score = 25
    elif count == 1:
        score = 40
    elif count == 2:
        score = 55
    elif count == 3:
        score = 70
    else:
        score = 80
    if any("enterprise" in tier for tier in tiers):
        score += 10
    if any("free" in tier for tier in tiers):
        score += 5
    return _score(score)


def score_enterprise_presence(customers: list[str]) -> int:
    count = len(customers)
    if count == 0:
        score = 20
    elif count <= 2:
        score = 40
    elif count <= 5:
        score = 55
    elif count <= 10:
        score = 70
    elif count <= 20:
        score = 80
    else:
        score = 90
    lowered = [customer.lower() for customer in customers]
    if any(name in customer for customer in lowered for name in ENTERPRISE_NAMES):
        score += 10
    return _score(score)


def score_documentation_quality(
    capabilities: TechnicalCapabilities,
    key_features: list[str],
    docs_available: bool,
) -> int:
    score = 40 if docs_available else 20
    score += min(len(capabilities.integrations) * 2, 20)
    score += min(len(key_features) * 2, 20)
    return _score(score)


def score_viability(founding_year: int | None, current_year: int | None = None) -> int:
    if not founding_year:
        return 50
    current_year = current_year or datetime.now().year
    age = max(0, current_year - founding_year)
    if age <= 1:
        return 35
    if age <= 3:
        return 50
    if age <= 5:
        return 65
    if age <= 8:
        return 80
    if age <= 12:
        return 90
    return 95


def score_breakdown(data: ExtractedCompanyData, current_year: int | None = None) -> ScoreBreakdown:
    caps = data.technical_capabilities
    return ScoreBreakdown(
        feature_depth=score_feature_depth(data.key_features),
        innovation=score_innovation(caps),
        positioning=score_positioning(data.business_model),
        pricing_maturity=score_pricing_maturity(data.pricing_tiers),
        enterprise_presence=score_enterprise_presence(data.enterprise_customers),
        documentation_quality=score_documentation_quality(
            caps, data.key_features, bool(data.sources.docs),
        ),
        viability=score_viability(data.founding_year, current_year),
    )


def vision_score(b: ScoreBreakdown) -> float:
    return b.feature_depth * 0.4 + b.innovation * 0.3 + b.positioning * 0.3


def execution_score(b: ScoreBreakdown) -> float:
    return (
        b.pricing_maturity * 0.3
        + b.enterprise_presence * 0.25
        + b.documentation_quality * 0.2
        + b.viability * 0.25
    )


# --- Batch helpers ---

def normalize_scores(scores: list[float]) -> list[float]:
    """Rescale to [0, 100] unless the spread is too small to be meaningful."""
    if not scores:
        return scores
    low, high = min(scores), max(scores)
    if high - low < MIN_NORMALIZE_SPREAD:
        return list(scores)
    return [(score - low) / (high - low) * 100 for score in scores]


def median(values: list[float]) -> float:
    if not values:
        return DEFAULT_THRESHOLD
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def determine_quadrant(vision: float, execution: float, threshold: float) -> str:
    if vision >= threshold and execution >= threshold:
        return "Leaders"
    if vision < threshold and execution >= threshold:
        return "Challengers"
    if vision >= threshold and execution < threshold:
        return "Visionaries"
    return "NichePlayers"


def calculate_scores(
    data: list[ExtractedCompanyData],
    normalize: bool = True,
    current_year: int | None = None,
) -> list[ScoredCompany]:
    """Score a batch of companies and place each in a quadrant.

    The quadrant threshold is the median of the pooled vision and execution
    values of this batch, so quadrant membership is relative to the cohort.
    """
    breakdowns = [score_breakdown(company, current_year) for company in data]
    visions = [vision_score(b) for b in breakdowns]
    executions = [execution_score(b) for b in breakdowns]

    if normalize:
        visions = normalize_scores(visions)
        executions = normalize_scores(executions)
    threshold = median(visions + executions)

    scored = []
    for company, breakdown, vision_raw, execution_raw in zip(data, breakdowns, visions, executions):
        vision = _score(vision_raw)
        execution = _score(execution_raw)
        scored.append(ScoredCompany(
            company=company.company,
            url=company.url,
            vision=vision,
            execution=execution,
            quadrant=determine_quadrant(vision, execution, threshold),
            breakdown=breakdown,
            raw=company,
        ))
    return scored
