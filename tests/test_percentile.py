"""Tests for percentile ranking and numeric helpers."""

import pytest

from leaguerank.engine.percentile import (
    clamp,
    percentile_map,
    percentile_rank,
    population_stddev,
    to_score,
)

SIX = [10, 20, 30, 40, 50, 60]


def test_degenerate_populations_are_neutral():
    assert percentile_rank(5, []) == 0.5
    assert percentile_rank(5, [5]) == 0.5
    assert percentile_rank(7, [7, 7, 7, 7, 7, 7]) == 0.5


def test_extremes_and_interior_values():
    assert percentile_rank(10, SIX) == 0.0
    assert percentile_rank(60, SIX) == 1.0
    assert percentile_rank(30, SIX) == pytest.approx(0.4)


def test_ties_share_the_mid_rank():
    population = [1, 2, 2, 3, 4, 5]
    # tied group occupies 0-based ranks 1 and 2 -> 1.5 / 5
    assert percentile_rank(2, population) == pytest.approx(0.3)


def test_absent_values_use_insertion_point():
    assert percentile_rank(35, SIX) == pytest.approx(0.6)
    assert percentile_rank(100, SIX) == 1.0
    assert percentile_rank(0, SIX) == 0.0


def test_small_leagues_shrink_towards_the_middle():
    assert percentile_rank(3, [1, 2, 3]) == pytest.approx(0.85)
    assert percentile_rank(1, [1, 2, 3]) == pytest.approx(0.15)
    assert percentile_rank(2, [1, 2, 3]) == pytest.approx(0.5)


def test_shift_invariance():
    shifted = [v + 1000 for v in SIX]
    for value in SIX:
        assert percentile_rank(value, SIX) == pytest.approx(percentile_rank(value + 1000, shifted))


def test_scale_does_not_matter():
    scaled = [v * 37.5 for v in SIX]
    assert percentile_map(dict(enumerate(SIX))) == pytest.approx(percentile_map(dict(enumerate(scaled))))


def test_percentile_map_covers_every_key():
    result = percentile_map({1: 10.0, 2: 20.0, 3: 30.0, 4: 40.0, 5: 50.0, 6: 60.0})
    assert set(result) == {1, 2, 3, 4, 5, 6}
    assert result[1] == 0.0
    assert result[6] == 1.0


def test_to_score_is_clamped_and_rounded():
    assert to_score(0.5) == 50
    assert to_score(0.876) == 88
    assert to_score(1.7) == 100
    assert to_score(-0.2) == 0


def test_helpers():
    assert clamp(5, 0, 3) == 3
    assert clamp(-1, 0, 3) == 0
    assert population_stddev([]) == 0.0
    assert population_stddev([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)
