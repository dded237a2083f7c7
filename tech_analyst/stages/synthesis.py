"""Synthesis and visualization prep: pure transforms, no I/O."""

from __future__ import annotations

import logging

from tech_analyst.analysis.scoring import calculate_scores
from tech_analyst.context import RunContext
from tech_analyst.models import ChartData, ExtractedCompanyData, ScoredCompany
from tech_analyst.output.chart_data import generate_chart_data

logger = logging.getLogger(__name__)


def run_synthesis(
    ctx: RunContext,
    extracted: list[ExtractedCompanyData],
    normalize: bool = True,
) -> list[ScoredCompany]:
    ctx.progress.report("synthesis", "scoring", f"Scoring {len(extracted)} companies")
    if normalize:
        ctx.progress.report("synthesis", "normalizing", "Normalizing scores across companies")
    scores = calculate_scores(extracted, normalize=normalize)

    counts: dict[str, int] = {}
    for score in scores:
        counts[score.quadrant] = counts.get(score.quadrant, 0) + 1
    ctx.progress.report("synthesis", "scoring", f"Scored {len(scores)} companies")
    logger.info("Synthesis quadrants: %s", counts)
    return scores


def run_visualization(
    ctx: RunContext,
    scores: list[ScoredCompany],
    market_sector: str,
) -> ChartData:
    ctx.progress.report("visualization", "charts", "Preparing chart data")
    charts = generate_chart_data(
        scores,
        quadrant_title=f"Magic Quadrant: {market_sector}",
        wave_subtitle=f"{market_sector} Competitive Analysis",
        radar_category=market_sector,
    )
    ctx.progress.report("visualization", "charts", "Chart data ready")
    return charts
