"""Scoring engine: percentiles, sub-scores, weights, composite and anti-gaming."""

from .composite import SubScores, compute_composite, deserved_luck
from .params import LearnedParams
from .percentile import percentile_rank
from .phase import LeagueFormat, Phase, detect_phase, league_class, segment_key
from .weights import WeightProfile, WeightResolver

__all__ = [
    "LeagueFormat",
    "LearnedParams",
    "Phase",
    "SubScores",
    "WeightProfile",
    "WeightResolver",
    "compute_composite",
    "deserved_luck",
    "detect_phase",
    "league_class",
    "percentile_rank",
    "segment_key",
]
