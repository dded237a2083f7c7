"""Chart-ready data (quadrant, wave, radar) derived from scored companies."""

from __future__ import annotations

from tech_analyst.analysis.scoring import round_half_up
from tech_analyst.models import (
    ChartData,
    QuadrantChart,
    QuadrantPoint,
    RadarChart,
    RadarPoint,
    ScoredCompany,
    WaveChart,
    WavePoint,
)

DEFAULT_QUADRANT_TITLE = "Magic Quadrant Analysis"
DEFAULT_WAVE_SUBTITLE = "Competitive Analysis"
DEFAULT_RADAR_CATEGORY = "Market Analysis"

# Radius band per radar tier; a higher combined score sits higher in its band
TIER_RADIUS = {
    "Leader": (60, 80),
    "Challenger": (35, 60),
    "Entrant": (15, 35),
}


def to_quadrant_data(scores: list[ScoredCompany]) -> list[QuadrantPoint]:
    return [
        QuadrantPoint(
            company=s.company, vision=s.vision, execution=s.execution, quadrant=s.quadrant,
        )
        for s in scores
    ]


def market_presence(vision: int, execution: int) -> int:
    return round_half_up(execution * 0.55 + vision * 0.45)


def to_wave_data(scores: list[ScoredCompany]) -> list[WavePoint]:
    return [
        WavePoint(
            company=s.company,
            strategy=s.vision,
            current_offering=s.execution,
            market_presence=market_presence(s.vision, s.execution),
        )
        for s in scores
    ]


def radar_tier(quadrant: str, vision: int, execution: int) -> str:
    combined = (vision + execution) / 2
    if quadrant == "Leaders":
        return "Leader" if combined >= 80 else "Challenger"
    if quadrant in ("Challengers", "Visionaries"):
        return "Challenger" if combined >= 60 else "Entrant"
    return "Challenger" if combined >= 50 else "Entrant"


def radar_angle(vision: int, execution: int) -> int:
    """Position around the radar by high/low vision and execution, jittered by score."""
    high_vision = vision >= 50
    high_execution = execution >= 50
    if high_vision and high_execution:
        base = 30
    elif high_execution:
        base = 300
    elif high_vision:
        base = 120
    else:
        base = 210
    angle = base + (vision % 20) / 20 * 30 - (execution % 20) / 20 * 15
    return round_half_up(angle % 360) % 360


def radar_radius(vision: int, execution: int, tier: str) -> int:
    low, high = TIER_RADIUS[tier]
    combined = (vision + execution) / 2
    return round_half_up(low + (high - low) * combined / 100)


def radar_movement(vision: int, execution: int) -> str | None:
    combined = (vision + execution) / 2
    if combined >= 75 and abs(vision - execution) <= 15:
        return "outperformer"
    if vision > execution + 10 and vision >= 60:
        return "fast"
    if execution >= 50 and vision >= 40:
        return "forward"
    return "forward" if combined >= 50 else None


def movement_angle(angle: int, movement: str | None) -> int:
    if movement == "outperformer":
        return (angle + 180) % 360
    if movement == "fast":
        return 180
    if movement == "forward":
        return 0
    return angle


def to_radar_data(scores: list[ScoredCompany]) -> list[RadarPoint]:
    ranked = sorted(scores, key=lambda s: s.vision + s.execution, reverse=True)
    points = []
    for s in ranked:
        tier = radar_tier(s.quadrant, s.vision, s.execution)
        angle = radar_angle(s.vision, s.execution)
        movement = radar_movement(s.vision, s.execution)
        points.append(RadarPoint(
            company=s.company,
            tier=tier,
            angle=angle,
            radius=radar_radius(s.vision, s.execution, tier),
            movement=movement,
            movement_angle=movement_angle(angle, movement),
        ))
    return points


def generate_chart_data(
    scores: list[ScoredCompany],
    quadrant_title: str | None = None,
    wave_subtitle: str | None = None,
    radar_category: str | None = None,
) -> ChartData:
    """Quadrant, wave and radar series for one scored batch."""
    return ChartData(
        quadrant=QuadrantChart(
            title=quadrant_title or DEFAULT_QUADRANT_TITLE,
            data=to_quadrant_data(scores),
        ),
        wave=WaveChart(
            subtitle=wave_subtitle or DEFAULT_WAVE_SUBTITLE,
            data=to_wave_data(scores),
        ),
        radar=RadarChart(
            category=radar_category or DEFAULT_RADAR_CATEGORY,
            data=to_radar_data(scores),
        ),
    )
