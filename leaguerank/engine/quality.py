"""Per-team data quality signal.

Rankings are only as good as the feeds behind them. Each team gets a
confidence score built from how much of its roster is valued, how many weeks
it has played, and how fresh the injury, valuation and league data are.
Missing feeds are surfaced as caveats so consumers can tell a confident rank
from a guess.
"""

from dataclasses import dataclass, field
from datetime import datetime

from .percentile import clamp
from .records import TeamDataQuality

BASE_CONFIDENCE = 50
MIN_CONFIDENCE = 10
MAX_CONFIDENCE = 100

SOURCE_CAVEATS = {
    "valuations": "Player valuations unavailable; market and power scores are neutral",
    "injuries": "Injury feed unavailable; all players treated as healthy",
    "trades": "Trade history unavailable; trade skill is neutral",
    "demand": "League demand index unavailable; positional demand is neutral",
    "matchups": "Weekly scores unavailable; luck and consistency are neutral",
    "bracket": "Playoff bracket unavailable; playoff finish is unknown",
    "draft": "Draft results unavailable; draft gain is neutral",
}


@dataclass
class QualityInputs:
    players: int = 0
    valued_players: int = 0
    weeks_played: int = 0
    injury_entries: int = 0
    injured_starters: int = 0
    injury_report_at: datetime | None = None
    valuation_at: datetime | None = None
    synced_at: datetime | None = None
    missing_sources: list[str] = field(default_factory=list)


def _age_hours(at: datetime | None, now: datetime) -> float | None:
    if at is None:
        return None
    if at.tzinfo is None and now.tzinfo is not None:
        at = at.replace(tzinfo=now.tzinfo)
    elif at.tzinfo is not None and now.tzinfo is None:
        now = now.replace(tzinfo=at.tzinfo)
    return round(max(0.0, (now - at).total_seconds() / 3600), 1)


def assess_data_quality(inputs: QualityInputs, now: datetime) -> TeamDataQuality:
    confidence = BASE_CONFIDENCE
    caveats: list[str] = []

    value_coverage = inputs.valued_players / inputs.players if inputs.players else 0.0
    if value_coverage >= 0.9:
        confidence += 20
    elif value_coverage >= 0.7:
        confidence += 12
    else:
        confidence += 5
        caveats.append(f"Only {round(value_coverage * 100)}% of roster has market values")

    if inputs.weeks_played >= 4:
        confidence += 15
    elif inputs.weeks_played >= 2:
        confidence += 8
    else:
        confidence += 2
        caveats.append("Fewer than 2 weeks of results; rankings rely on roster value")

    injury_hours = _age_hours(inputs.injury_report_at, now)
    if injury_hours is not None and injury_hours <= 24:
        confidence += 5
    elif injury_hours is not None and injury_hours <= 72:
        confidence += 3
    elif injury_hours is not None:
        caveats.append(f"Injury data is {round(injury_hours)}h old")

    injury_coverage = inputs.injury_entries / inputs.players if inputs.players else 0.0
    if injury_coverage >= 0.3:
        confidence += 3
    elif injury_coverage > 0:
        confidence += 1
    else:
        caveats.append("No injury designations matched this roster")

    valuation_hours = _age_hours(inputs.valuation_at, now)
    if valuation_hours is not None and valuation_hours <= 1:
        confidence += 2
    elif valuation_hours is not None and valuation_hours > 24:
        confidence -= 3
        caveats.append(f"Player valuations are {round(valuation_hours)}h old")

    sync_hours = _age_hours(inputs.synced_at, now)
    if sync_hours is not None and sync_hours <= 6:
        confidence += 2
    elif sync_hours is not None:
        caveats.append(f"League data last synced {round(sync_hours)}h ago")

    if inputs.injured_starters >= 3:
        confidence -= 5

    for source in inputs.missing_sources:
        confidence -= 5
        caveats.append(SOURCE_CAVEATS.get(source, f"{source} unavailable"))

    confidence = int(clamp(confidence, MIN_CONFIDENCE, MAX_CONFIDENCE))

    if value_coverage >= 0.85 and inputs.weeks_played >= 3 and injury_coverage >= 0.10:
        coverage = "FULL"
    elif value_coverage >= 0.5 or inputs.weeks_played >= 2:
        coverage = "PARTIAL"
    else:
        coverage = "MINIMAL"

    if confidence >= 75:
        rating = "HIGH"
    elif confidence >= 50:
        rating = "MEDIUM"
    else:
        rating = "LOW"

    return TeamDataQuality(
        confidence=confidence,
        rating=rating,
        coverage=coverage,
        staleness_hours={
            "injuries": injury_hours,
            "valuations": valuation_hours,
            "league_sync": sync_hours,
        },
        caveats=tuple(caveats),
    )
