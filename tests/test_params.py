"""Tests for learned parameter bounds, class defaults and movement limits."""

import pytest

from leaguerank.engine.params import (
    PARAM_BOUNDS,
    LearnedParams,
    clamp_movement,
    clamp_to_bounds,
    defaults_for_class,
)


def test_class_defaults():
    assert defaults_for_class("DYN_SF").starter_bench_split == 0.70
    assert defaults_for_class("RED_1QB").future_capital_influence == 0.0
    assert defaults_for_class("SPC") == LearnedParams(0.25, 0.75, 2.0, 0.05)
    assert defaults_for_class("SOMETHING_ELSE") == LearnedParams()


def test_defaults_are_within_bounds():
    for cls in ("DYN_SF", "DYN_1QB", "RED_SF", "RED_1QB", "SPC", "UNK"):
        params = defaults_for_class(cls)
        for name, (lo, hi) in PARAM_BOUNDS.items():
            assert lo <= getattr(params, name) <= hi


def test_movement_is_capped_per_cycle():
    previous = LearnedParams(starter_bench_split=0.70)
    proposed = LearnedParams(starter_bench_split=0.90)
    assert clamp_movement(proposed, previous).starter_bench_split == pytest.approx(0.73)


def test_luck_dampening_moves_ten_times_further():
    previous = LearnedParams(luck_dampening=2.0)
    proposed = LearnedParams(luck_dampening=4.0)
    assert clamp_movement(proposed, previous).luck_dampening == pytest.approx(2.3)


def test_small_moves_pass_through():
    previous = LearnedParams()
    proposed = LearnedParams(injury_influence=0.31)
    assert clamp_movement(proposed, previous).injury_influence == pytest.approx(0.31)


def test_clamp_to_bounds():
    params = clamp_to_bounds(LearnedParams(0.0, 1.0, 10.0, -1.0))
    assert params == LearnedParams(0.10, 0.90, 4.0, 0.0)


def test_from_dict_ignores_unknown_keys():
    params = LearnedParams.from_dict({"injury_influence": "0.4", "colour": 3})
    assert params.injury_influence == 0.4
    assert params.as_dict()["luck_dampening"] == 2.0
