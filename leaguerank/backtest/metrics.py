"""Calibration and ranking metrics for backtesting.

All metrics take a predicted probability (or score) per team and the realized
outcome per team, aligned by position.

- Brier score: mean squared error of probabilities (lower is better)
- ECE: expected calibration error over ten equal-width bins (lower is better)
- NDCG: how well predicted order surfaces the best actual outcomes (higher is better)
- Spearman: rank correlation between predicted and actual order (-1 to 1)
"""

import logging
from collections.abc import Sequence

import numpy as np
from scipy import stats

logger = logging.getLogger(__name__)

CALIBRATION_BINS = 10


def brier_score(predicted: Sequence[float], actual: Sequence[float]) -> float:
    if len(predicted) == 0:
        return 0.0
    p = np.asarray(predicted, dtype=float)
    y = np.asarray(actual, dtype=float)
    return float(np.mean((p - y) ** 2))


def expected_calibration_error(
    predicted: Sequence[float], actual: Sequence[float], bins: int = CALIBRATION_BINS
) -> float:
    """Weighted gap between mean prediction and mean outcome per bin.

    A prediction p falls in bin min(floor(p * bins), bins - 1), so 1.0 lands in
    the top bin.
    """
    n = len(predicted)
    if n == 0:
        return 0.0
    p = np.asarray(predicted, dtype=float)
    y = np.asarray(actual, dtype=float)
    idx = np.minimum(np.floor(np.clip(p, 0, 1) * bins).astype(int), bins - 1)

    ece = 0.0
    for b in range(bins):
        mask = idx == b
        count = int(mask.sum())
        if count == 0:
            continue
        ece += (count / n) * abs(p[mask].mean() - y[mask].mean())
    return float(ece)


def rank_array(values: Sequence[float]) -> np.ndarray:
    """1-based ranks with 1 for the highest value; ties keep input order."""
    v = np.asarray(values, dtype=float)
    order = np.argsort(-v, kind="stable")
    ranks = np.empty(len(v), dtype=int)
    ranks[order] = np.arange(1, len(v) + 1)
    return ranks


def calculate_ndcg(predicted_ranks: Sequence[int], actual: Sequence[float]) -> float:
    """NDCG of actual outcomes taken in predicted-rank order.

    Args:
        predicted_ranks: 1-based predicted rank per team
        actual: Realized outcome per team (non-negative relevance)

    Returns:
        Score between 0 and 1 (0 when every outcome is zero)
    """
    if len(actual) == 0:
        return 0.0
    if len(predicted_ranks) != len(actual):
        raise ValueError(
            f"Length mismatch: predicted_ranks={len(predicted_ranks)}, actual={len(actual)}"
        )

    relevance = np.maximum(np.asarray(actual, dtype=float), 0)
    order = np.argsort(np.asarray(predicted_ranks), kind="stable")
    discounts = 1 / np.log2(np.arange(len(relevance)) + 2)

    dcg = float(np.sum(relevance[order] * discounts))
    idcg = float(np.sum(np.sort(relevance)[::-1] * discounts))
    if idcg == 0.0:
        return 0.0
    return max(0.0, min(1.0, dcg / idcg))


def calculate_spearman_correlation(predicted: Sequence[float], actual: Sequence[float]) -> float:
    """Spearman correlation between the stable rank orders of both series.

    Fewer than three teams, or an undefined correlation, yields 0.
    """
    if len(predicted) < 3:
        return 0.0
    rho = stats.spearmanr(rank_array(predicted), rank_array(actual))[0]
    if rho is None or np.isnan(rho):
        return 0.0
    return float(rho)


def calculate_metrics_suite(
    predicted: Sequence[float],
    actual: Sequence[float],
    predicted_ranks: Sequence[int] | None = None,
) -> dict[str, float]:
    """All four backtest metrics, rounded to four decimals."""
    if predicted_ranks is None:
        predicted_ranks = rank_array(predicted)
    return {
        "brier_score": round(brier_score(predicted, actual), 4),
        "ece": round(expected_calibration_error(predicted, actual), 4),
        "ndcg": round(calculate_ndcg(predicted_ranks, actual), 4),
        "spearman": round(
            calculate_spearman_correlation(-np.asarray(predicted_ranks, dtype=float), actual), 4
        ),
    }
