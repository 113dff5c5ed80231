"""Tests for the snapshot store and the backtest / learned-parameter repositories."""

from datetime import date

from leaguerank.database.repositories import (
    STATUS_APPLIED,
    STATUS_INSUFFICIENT_DATA,
    STATUS_REJECTED,
    STATUS_ROLLED_BACK,
    BacktestRepository,
    LearnedParamsRepository,
)
from leaguerank.database.snapshot_store import SqlSnapshotStore
from leaguerank.engine.composite import SubScores
from leaguerank.engine.params import LearnedParams, defaults_for_class
from leaguerank.engine.records import BacktestResult, SnapshotMetrics, TeamBacktestDetail

# ========== SNAPSHOTS ==========


def test_upsert_and_get_round_trip(session_factory, make_team_record):
    store = SqlSnapshotStore(session_factory)
    metrics = SnapshotMetrics(0.8, 3.5, 0.95, 0.1)
    scores = SubScores(win=70, power=80, luck=40, market=60, skill=55, draft_gain=50, future_capital=12)
    teams = [make_team_record(1, 1, 75, metrics, scores), make_team_record(2, 2, 60)]

    assert store.upsert("L1", "2024", 5, teams, segment_key="DYN_SF_inseason") == 2

    stored = store.get("L1", "2024", 5)
    assert set(stored) == {1, 2}
    assert stored[1].rank == 1
    assert stored[1].composite == 75
    assert stored[1].metrics == metrics
    assert stored[1].scores == scores


def test_upsert_overwrites_the_same_week(session_factory, make_team_record):
    store = SqlSnapshotStore(session_factory)
    store.upsert("L1", "2024", 5, [make_team_record(1, 1, 75), make_team_record(2, 2, 60)])
    store.upsert("L1", "2024", 5, [make_team_record(1, 2, 55), make_team_record(2, 1, 70)])

    stored = store.get("L1", "2024", 5)
    assert len(stored) == 2
    assert stored[1].rank == 2
    assert stored[2].composite == 70


def test_previous_is_latest_earlier_week(session_factory, make_team_record):
    store = SqlSnapshotStore(session_factory)
    store.upsert("L1", "2024", 3, [make_team_record(1, 2, 50)])
    store.upsert("L1", "2024", 5, [make_team_record(1, 1, 70)])

    assert store.previous("L1", "2024", 6)[1].week == 5
    assert store.previous("L1", "2024", 5)[1].week == 3
    assert store.previous("L1", "2024", 3) == {}
    assert store.previous("L1", "2023", 6) == {}
    assert store.previous("other", "2024", 6) == {}


def test_season_end_takes_latest_week_per_roster(session_factory, make_team_record):
    store = SqlSnapshotStore(session_factory)
    store.upsert("L1", "2024", 13, [make_team_record(1, 1, 80), make_team_record(2, 2, 70)])
    store.upsert("L1", "2024", 14, [make_team_record(1, 2, 60), make_team_record(2, 1, 75)])
    store.upsert("L1", "2024", 15, [make_team_record(1, 1, 90)])

    end = store.season_end("L1", "2024", min_week=14)
    assert end[1].week == 15
    assert end[2].week == 14
    assert end[2].rank == 1


def test_weeks_and_invalidate(session_factory, make_team_record):
    store = SqlSnapshotStore(session_factory)
    for week in (2, 1, 3):
        store.upsert("L1", "2024", week, [make_team_record(1, 1, 50), make_team_record(2, 2, 40)])

    assert store.weeks("L1", "2024") == [1, 2, 3]
    assert store.invalidate("L1", "2024", 2) == 2
    assert store.weeks("L1", "2024") == [1, 3]


# ========== BACKTEST RESULTS ==========


def _result(week, target="win_pct_3w", segment="DYN_SF_inseason", brier=0.2, league="L1"):
    return BacktestResult(
        league_id=league,
        season="2024",
        week_evaluated=week,
        target_type=target,
        horizon_weeks=3,
        segment_key=segment,
        n_teams=4,
        brier_score=brier,
        ece=0.1,
        ndcg=0.9,
        spearman=0.5,
        details=(TeamBacktestDetail(1, 1, 0.8, 1.0),),
    )


def test_backtest_upsert_is_idempotent(session_factory):
    repo = BacktestRepository(session_factory)
    repo.upsert(_result(3, brier=0.3))
    repo.upsert(_result(3, brier=0.1))

    history = repo.history("L1", "2024")
    assert len(history) == 1
    assert history[0].brier_score == 0.1
    assert history[0].details == (TeamBacktestDetail(1, 1, 0.8, 1.0),)


def test_recent_for_class_matches_class_prefix_only(session_factory):
    repo = BacktestRepository(session_factory)
    repo.upsert(_result(1, segment="DYN_SF_inseason"))
    repo.upsert(_result(2, segment="DYN_SF_offseason"))
    repo.upsert(_result(3, segment="DYN_SFX_inseason"))
    repo.upsert(_result(4, segment="RED_SF_inseason"))

    recent = repo.recent_for_class("DYN_SF")
    assert sorted(r.week_evaluated for r in recent) == [1, 2]
    assert len(repo.recent_for_class("DYN_SF", limit=1)) == 1


def test_aggregate_by_target(session_factory):
    repo = BacktestRepository(session_factory)
    assert repo.aggregate().empty

    repo.upsert(_result(1, brier=0.2))
    repo.upsert(_result(2, brier=0.4))
    repo.upsert(_result(1, target="playoff_qual", brier=0.1))

    summary = repo.aggregate("DYN_SF_inseason", "2024")
    assert summary.loc["win_pct_3w", "brier_score"] == 0.3
    assert summary.loc["win_pct_3w", "count"] == 2
    assert summary.loc["playoff_qual", "count"] == 1


# ========== LEARNED PARAMETERS ==========


def test_active_defaults_to_class_params(session_factory):
    repo = LearnedParamsRepository(session_factory)
    assert repo.active("DYN_SF_inseason", "DYN_SF") == defaults_for_class("DYN_SF")


def test_latest_applied_row_is_active(session_factory):
    repo = LearnedParamsRepository(session_factory)
    applied = LearnedParams(0.33, 0.70, 2.0, 0.10)
    repo.record("DYN_SF_inseason", "DYN_SF", STATUS_APPLIED, applied, date(2024, 10, 7))
    repo.record(
        "DYN_SF_inseason", "DYN_SF", STATUS_REJECTED, LearnedParams(0.5, 0.9, 3.0, 0.2), date(2024, 10, 14)
    )

    assert repo.active("DYN_SF_inseason", "DYN_SF") == applied
    assert repo.active("DYN_SF_offseason", "DYN_SF") == defaults_for_class("DYN_SF")


def test_has_cycle(session_factory):
    repo = LearnedParamsRepository(session_factory)
    repo.record("RED_1QB_inseason", "RED_1QB", STATUS_INSUFFICIENT_DATA, LearnedParams(), date(2024, 10, 7))
    assert repo.has_cycle("RED_1QB_inseason", date(2024, 10, 7))
    assert not repo.has_cycle("RED_1QB_inseason", date(2024, 10, 14))


def test_rollback_restores_previous_applied(session_factory):
    repo = LearnedParamsRepository(session_factory)
    first = LearnedParams(0.33, 0.70, 2.0, 0.10)
    second = LearnedParams(0.36, 0.70, 2.0, 0.10)
    repo.record("DYN_SF_inseason", "DYN_SF", STATUS_APPLIED, first, date(2024, 10, 7))
    repo.record("DYN_SF_inseason", "DYN_SF", STATUS_APPLIED, second, date(2024, 10, 14))

    assert repo.rollback("DYN_SF_inseason")
    assert repo.active("DYN_SF_inseason", "DYN_SF") == first
    assert repo.rollback("DYN_SF_inseason")
    assert repo.active("DYN_SF_inseason", "DYN_SF") == defaults_for_class("DYN_SF")
    assert not repo.rollback("DYN_SF_inseason")

    statuses = [entry["status"] for entry in repo.history("DYN_SF_inseason")]
    assert statuses == [STATUS_ROLLED_BACK, STATUS_ROLLED_BACK]
