"""Injury impact modeling.

Turns raw injury designations into a severity and an uncertainty per player,
decays severity with time since the report, and rolls those up to three
team-level signals used by the power and market scores:

- power_health_ratio: value-weighted healthy fraction of the starting lineup
- market_discount: value-weighted injured fraction of the whole roster
- risk_concentration: how many high-value players carry a serious injury
"""

from dataclasses import dataclass, field
from datetime import datetime

from ..providers.contracts import InjuryEntry, InjuryReport, RosterRecord, ValuationSnapshot
from .percentile import clamp01

INJURY_STATUS_SEVERITY: dict[str, float] = {
    "Out": 0.90,
    "IR": 1.00,
    "Doubtful": 0.60,
    "Questionable": 0.25,
    "Probable": 0.05,
    "Suspension": 0.80,
    "PUP": 0.75,
    "NFI": 0.75,
    "COV": 0.70,
    "NA": 0.0,
    "Active": 0.0,
}

INJURY_UNCERTAINTY: dict[str, float] = {
    "Out": 0.10,
    "IR": 0.05,
    "Doubtful": 0.30,
    "Questionable": 0.50,
    "Probable": 0.60,
    "Suspension": 0.10,
    "PUP": 0.35,
    "NFI": 0.35,
    "COV": 0.40,
    "NA": 0.0,
    "Active": 0.0,
}

# (max days since report, multiplier)
RECENCY_DECAY_STEPS: list[tuple[int, float]] = [
    (3, 1.0),
    (7, 0.95),
    (14, 0.80),
    (28, 0.55),
    (56, 0.30),
]
RECENCY_DECAY_FLOOR = 0.15

SEASON_ENDING_KEYWORDS = ("acl", "achilles", "torn")
SOFT_TISSUE_KEYWORDS = ("hamstring", "groin", "calf")

INJURED_THRESHOLD = 0.1
HIGH_SEVERITY = 0.5
HIGH_VALUE = 50.0
RISK_SATURATION = 3


@dataclass
class PlayerInjuryProfile:
    player_id: str
    is_starter: bool
    value: float
    severity: float = 0.0
    uncertainty: float = 0.0
    recency_decay: float = 1.0

    @property
    def effective_severity(self) -> float:
        return self.severity * self.recency_decay

    @property
    def is_injured(self) -> bool:
        return self.effective_severity > INJURED_THRESHOLD


@dataclass
class RosterInjuryImpact:
    power_health_ratio: float = 0.5
    market_discount: float = 0.0
    risk_concentration: float = 0.0
    profiles: dict[str, PlayerInjuryProfile] = field(default_factory=dict)

    def injured_starters(self, threshold: float = 0.3) -> int:
        return sum(
            1 for p in self.profiles.values() if p.is_starter and p.effective_severity > threshold
        )


def recency_decay(reported_at: datetime | None, now: datetime) -> float:
    """Multiplier applied to severity based on days since the injury report."""
    if reported_at is None:
        return 1.0
    if reported_at.tzinfo is None and now.tzinfo is not None:
        reported_at = reported_at.replace(tzinfo=now.tzinfo)
    elif reported_at.tzinfo is not None and now.tzinfo is None:
        now = now.replace(tzinfo=reported_at.tzinfo)
    days = (now - reported_at).total_seconds() / 86400
    for max_days, multiplier in RECENCY_DECAY_STEPS:
        if days <= max_days:
            return multiplier
    return RECENCY_DECAY_FLOOR


def status_severity(entry: InjuryEntry) -> tuple[float, float]:
    """(severity, uncertainty) for a designation, adjusted by injury type."""
    severity = INJURY_STATUS_SEVERITY.get(entry.status, 0.0)
    uncertainty = INJURY_UNCERTAINTY.get(entry.status, 0.0)

    injury_type = (entry.injury_type or "").lower()
    if injury_type and severity > 0:
        if any(k in injury_type for k in SEASON_ENDING_KEYWORDS):
            severity = max(severity, 0.95)
            uncertainty = min(uncertainty, 0.10)
        elif "concussion" in injury_type:
            uncertainty = max(uncertainty, 0.55)
        elif any(k in injury_type for k in SOFT_TISSUE_KEYWORDS):
            uncertainty = max(uncertainty, 0.40)

    return severity, uncertainty


def player_injury_profile(
    player_id: str,
    is_starter: bool,
    value: float,
    entry: InjuryEntry | None,
    now: datetime,
) -> PlayerInjuryProfile:
    profile = PlayerInjuryProfile(player_id=player_id, is_starter=is_starter, value=value)
    if entry is None:
        return profile
    profile.severity, profile.uncertainty = status_severity(entry)
    profile.recency_decay = recency_decay(entry.reported_at, now)
    return profile


def roster_injury_impact(
    roster: RosterRecord,
    valuations: ValuationSnapshot,
    injuries: InjuryReport,
    now: datetime,
) -> RosterInjuryImpact:
    """Team-level injury signals for one roster.

    Player value is max(dynasty, redraft), floored at 1 so that unvalued depth
    players still count. An empty roster yields neutral values.
    """
    starters = set(roster.starters)
    profiles: dict[str, PlayerInjuryProfile] = {}
    for player_id in roster.players:
        if not player_id or player_id == "0":
            continue
        pv = valuations.get(player_id)
        value = max(pv.dynasty_value, pv.redraft_value, 1.0) if pv else 1.0
        entry = injuries.lookup(player_id, pv.name if pv else None)
        profiles[player_id] = player_injury_profile(
            player_id, player_id in starters, value, entry, now
        )

    if not profiles:
        return RosterInjuryImpact()

    starter_total = 0.0
    healthy = 0.0
    for p in profiles.values():
        if not p.is_starter:
            continue
        eff = p.effective_severity
        starter_total += p.value
        # Uncertain designations keep a little of the player's expected output
        healthy += p.value * (1 - eff + p.uncertainty * 0.15 * eff)
    power_health_ratio = clamp01(healthy / starter_total) if starter_total > 0 else 0.5

    total = sum(p.value for p in profiles.values())
    injured = sum(
        p.value * p.effective_severity * (1 - p.uncertainty * 0.3)
        for p in profiles.values()
        if p.is_injured
    )
    market_discount = clamp01(injured / total) if total > 0 else 0.0

    serious = sum(
        1 for p in profiles.values() if p.effective_severity > HIGH_SEVERITY and p.value > HIGH_VALUE
    )
    risk_concentration = min(1.0, serious / RISK_SATURATION)

    return RosterInjuryImpact(
        power_health_ratio=power_health_ratio,
        market_discount=market_discount,
        risk_concentration=risk_concentration,
        profiles=profiles,
    )
