"""Robust percentile ranking and small numeric helpers.

Every sub-score is a percentile of the team's raw metric within its league,
so the absolute scale of a metric never matters, only its ordering.
"""

from collections.abc import Sequence

import numpy as np

SMALL_LEAGUE_SIZE = 6
SMALL_LEAGUE_SHRINK = 0.7


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def clamp01(value: float) -> float:
    return clamp(value, 0.0, 1.0)


def population_stddev(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))


def percentile_rank(value: float, population: Sequence[float]) -> float:
    """Percentile of `value` within `population`, in [0, 1].

    Ties share the mid-rank of their group. A value absent from the population
    is placed at its insertion point. Populations smaller than six are pulled
    towards 0.5 because a handful of teams says little about true spread.

    Args:
        value: The raw metric to rank
        population: Raw metric for every team in the league (including `value`)

    Returns:
        Percentile between 0 and 1 (0.5 for degenerate populations)
    """
    n = len(population)
    if n < 2:
        return 0.5

    ordered = np.sort(np.asarray(population, dtype=float))
    if ordered[0] == ordered[-1]:
        return 0.5

    lo = int(np.searchsorted(ordered, value, side="left"))
    hi = int(np.searchsorted(ordered, value, side="right"))
    if hi > lo:
        raw = ((lo + hi - 1) / 2) / (n - 1)
    elif lo >= n:
        raw = 1.0
    else:
        raw = lo / (n - 1)

    if n < SMALL_LEAGUE_SIZE:
        raw = 0.5 + (raw - 0.5) * SMALL_LEAGUE_SHRINK
    return clamp01(raw)


def percentile_map(values: dict[int, float]) -> dict[int, float]:
    """Percentile of every entry against the whole mapping."""
    population = list(values.values())
    return {key: percentile_rank(v, population) for key, v in values.items()}


def to_score(fraction: float) -> int:
    """Map a [0, 1] fraction onto an integer 0-100 score."""
    return int(round(100 * clamp01(fraction)))
