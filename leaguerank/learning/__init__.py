"""Parameter learning from backtest evidence."""

from .learner import (
    LearningOutcome,
    ParameterLearner,
    aggregate_score,
    candidate_params,
    cycle_start_for,
    projected_score,
)

__all__ = [
    "LearningOutcome",
    "ParameterLearner",
    "aggregate_score",
    "candidate_params",
    "cycle_start_for",
    "projected_score",
]
