"""Tests for the anti-gaming rank constraints."""

import random

from leaguerank.engine.anti_gaming import AntiGamingInput, apply_anti_gaming, composite_order
from leaguerank.engine.records import SnapshotMetrics, StoredSnapshot

FLAT = SnapshotMetrics(
    starter_value_percentile=0.5,
    expected_wins=3.0,
    injury_health_ratio=0.9,
    trade_efficiency_premium=0.0,
)


def _previous(ranks: dict[int, int], metrics: SnapshotMetrics = FLAT) -> dict[int, StoredSnapshot]:
    return {
        rid: StoredSnapshot(roster_id=rid, week=4, rank=rank, composite=100 - rank, metrics=metrics)
        for rid, rank in ranks.items()
    }


def _by_roster(results):
    return {r.roster_id: r for r in results}


def test_cold_start_is_never_constrained():
    teams = [AntiGamingInput(rid, composite, FLAT) for rid, composite in zip(range(1, 9), [40, 80, 55, 90, 10, 65, 30, 70])]
    results = apply_anti_gaming(teams, previous={})

    assert [r.roster_id for r in results] == [4, 2, 8, 6, 3, 1, 7, 5]
    assert [r.adjusted_rank for r in results] == list(range(1, 9))
    assert not any(r.constrained or r.capped for r in results)
    assert all(j.passed and j.previous_value is None for r in results for j in r.justifications)


def test_unjustified_climb_is_capped_one_above_previous_rank():
    composites = {1: 90, 3: 85, 2: 80, 4: 75, 5: 70, 6: 65, 7: 60, 8: 55, 9: 50, 10: 45}
    previous = _previous({1: 1, 2: 2, 4: 3, 5: 4, 6: 5, 7: 6, 8: 7, 3: 8, 9: 9, 10: 10})
    teams = [AntiGamingInput(rid, c, FLAT) for rid, c in composites.items()]

    results = _by_roster(apply_anti_gaming(teams, previous))

    team3 = results[3]
    assert team3.original_rank == 2
    assert team3.adjusted_rank == 7
    assert team3.capped
    assert team3.constrained
    assert set(team3.failed_metrics) == {
        "starter_value_percentile",
        "expected_wins",
        "injury_delta",
        "trade_efficiency",
    }

    final = {rid: r.adjusted_rank for rid, r in results.items()}
    assert final == {1: 1, 2: 2, 4: 3, 5: 4, 6: 5, 7: 6, 3: 7, 8: 8, 9: 9, 10: 10}
    assert results[2].constrained and not results[2].capped
    assert not results[8].constrained


def test_justified_climb_keeps_composite_rank():
    composites = {1: 90, 3: 85, 2: 80, 4: 75}
    previous = _previous({1: 1, 2: 2, 4: 3, 3: 4})
    better = SnapshotMetrics(
        starter_value_percentile=0.55,
        expected_wins=3.0,
        injury_health_ratio=0.9,
        trade_efficiency_premium=0.0,
    )
    teams = [AntiGamingInput(rid, c, better if rid == 3 else FLAT) for rid, c in composites.items()]

    results = _by_roster(apply_anti_gaming(teams, previous))

    assert results[3].adjusted_rank == 2
    assert not results[3].capped
    passed = {j.metric for j in results[3].justifications if j.passed}
    assert passed == {"starter_value_percentile"}


def test_expected_wins_gain_justifies_climb():
    previous = _previous({1: 1, 3: 2, 2: 3})
    gained = SnapshotMetrics(0.5, 3.25, 0.9, 0.0)

    justified = _by_roster(
        apply_anti_gaming(
            [AntiGamingInput(1, 50, FLAT), AntiGamingInput(3, 40, FLAT), AntiGamingInput(2, 60, gained)],
            previous,
        )
    )
    unjustified = _by_roster(
        apply_anti_gaming(
            [AntiGamingInput(1, 50, FLAT), AntiGamingInput(3, 40, FLAT), AntiGamingInput(2, 60, FLAT)],
            previous,
        )
    )

    assert justified[2].adjusted_rank == 1
    assert unjustified[2].adjusted_rank == 2
    assert unjustified[2].capped


def test_dropping_teams_are_never_capped():
    previous = _previous({1: 1, 2: 2, 3: 3})
    teams = [AntiGamingInput(1, 10, FLAT), AntiGamingInput(2, 50, FLAT), AntiGamingInput(3, 60, FLAT)]
    results = _by_roster(apply_anti_gaming(teams, previous))
    assert not results[1].capped
    assert results[1].adjusted_rank == 3


def test_new_teams_without_history_are_unconstrained():
    previous = _previous({1: 1, 2: 2})
    teams = [AntiGamingInput(1, 10, FLAT), AntiGamingInput(2, 20, FLAT), AntiGamingInput(3, 90, FLAT)]
    results = _by_roster(apply_anti_gaming(teams, previous))
    assert results[3].adjusted_rank == 1
    assert not results[3].capped


def test_colliding_caps_still_form_a_permutation():
    previous = _previous({1: 1, 2: 2, 3: 3, 4: 4})
    teams = [
        AntiGamingInput(1, 10, FLAT),
        AntiGamingInput(2, 20, FLAT),
        AntiGamingInput(3, 80, FLAT),
        AntiGamingInput(4, 90, FLAT),
    ]
    results = _by_roster(apply_anti_gaming(teams, previous))

    assert results[3].adjusted_rank == 2
    assert results[4].adjusted_rank == 3
    assert sorted(r.adjusted_rank for r in results.values()) == [1, 2, 3, 4]


def test_adjusted_ranks_are_always_a_permutation():
    rng = random.Random(7)
    for _ in range(200):
        n = rng.randint(2, 14)
        prev_order = list(range(1, n + 1))
        rng.shuffle(prev_order)
        previous = _previous({rid: rank for rank, rid in enumerate(prev_order, start=1)})
        teams = [AntiGamingInput(rid, rng.randint(0, 100), FLAT) for rid in range(1, n + 1)]

        results = apply_anti_gaming(teams, previous)

        assert sorted(r.adjusted_rank for r in results) == list(range(1, n + 1))
        for r in results:
            if r.capped:
                assert r.adjusted_rank >= previous[r.roster_id].rank - 1


def test_composite_ties_keep_input_order():
    teams = [AntiGamingInput(5, 70, FLAT), AntiGamingInput(2, 70, FLAT), AntiGamingInput(9, 80, FLAT)]
    assert [t.roster_id for t in composite_order(teams)] == [9, 5, 2]
