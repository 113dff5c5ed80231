"""Backtesting of stored rankings against realized outcomes."""

from .evaluator import CHAMPIONSHIP_FINISH, PLAYOFF_QUAL, TARGETS, WIN_PCT_3W, BacktestEvaluator
from .metrics import (
    brier_score,
    calculate_metrics_suite,
    calculate_ndcg,
    calculate_spearman_correlation,
    expected_calibration_error,
    rank_array,
)

__all__ = [
    "CHAMPIONSHIP_FINISH",
    "PLAYOFF_QUAL",
    "TARGETS",
    "WIN_PCT_3W",
    "BacktestEvaluator",
    "brier_score",
    "calculate_metrics_suite",
    "calculate_ndcg",
    "calculate_spearman_correlation",
    "expected_calibration_error",
    "rank_array",
]
