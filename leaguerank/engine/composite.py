"""Composite score: the weighted sum of sub-scores under a weight profile.

This module holds the single composite formula used everywhere a composite is
needed: the weekly ranking run and the backtest recompute of stored weeks
under candidate parameters. Keeping one formula means a backtest measures
exactly what the ranking run would have produced.

Key Concepts:

Sub-scores: Seven integers in [0, 100] (win, power, luck, market, skill,
draft gain, future capital), each already normalised within the league.

Weight profile: Non-negative weights per sub-score, chosen by season phase
and league format and optionally adjusted by learned parameters.

Deserved luck: Luck is not rewarded linearly. A team whose results match its
all-play expectation (luck near 50) is rewarded most, while very lucky and
very unlucky teams are both pulled back towards their underlying strength.
"""

from dataclasses import asdict, dataclass

from .percentile import clamp01
from .weights import WeightProfile


@dataclass(frozen=True)
class SubScores:
    """The seven 0-100 sub-scores of one team."""

    win: int
    power: int
    luck: int
    market: int
    skill: int
    draft_gain: int = 50
    future_capital: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, float]) -> "SubScores":
        return cls(**{k: int(round(data.get(k, 0))) for k in cls.__dataclass_fields__})


def deserved_luck(luck_score: float) -> float:
    """Near-neutral luck contributes most.

    Lucky and unlucky teams are both pulled away from their results, so luck is
    folded as 1 - |l - 0.5| * 2 before weighting.
    """
    return 1 - abs(luck_score / 100 - 0.5) * 2


def compute_composite(scores: SubScores, profile: WeightProfile) -> int:
    raw = (
        profile.win * scores.win / 100
        + profile.power * scores.power / 100
        + profile.luck * deserved_luck(scores.luck)
        + profile.market * scores.market / 100
        + profile.skill * scores.skill / 100
        + profile.draft_gain * scores.draft_gain / 100
        + profile.future_capital * scores.future_capital / 100
    )
    return int(round(100 * clamp01(raw)))
