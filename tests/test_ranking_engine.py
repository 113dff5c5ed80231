"""End-to-end tests for ranking runs."""

import asyncio
from datetime import UTC, datetime

import pytest

from leaguerank.engine.phase import Phase
from leaguerank.engine.records import RankingResult
from leaguerank.engine.weights import EMBEDDED_VERSION, WeightResolver
from leaguerank.exceptions import InsufficientSampleError, LeagueNotFoundError
from leaguerank.providers.contracts import InjuryEntry, InjuryReport, RosterRecord
from leaguerank.providers.memory import InMemoryLeagueSource
from leaguerank.services import build_services

NOW = datetime(2024, 10, 8, 12, 0, tzinfo=UTC)


def _rank(services, league_id="L1", **kwargs) -> RankingResult:
    return asyncio.run(services.engine.rank_league(league_id, **kwargs))


def _services_for(source, test_settings, session_factory):
    return build_services(
        test_settings,
        source=source,
        session_factory=session_factory,
        weights=WeightResolver(),
        clock=lambda: NOW,
    )


def test_ranking_produces_a_full_permutation(services):
    result = _rank(services)

    assert result.league_id == "L1"
    assert result.phase == Phase.IN_SEASON
    assert result.segment_key == "DYN_SF_inseason"
    assert result.weight_version == EMBEDDED_VERSION
    assert [t.rank for t in result.teams] == [1, 2, 3, 4, 5, 6]
    assert sorted(t.roster_id for t in result.teams) == [1, 2, 3, 4, 5, 6]
    for team in result.teams:
        assert 0 <= team.composite <= 100
        for score in team.scores.as_dict().values():
            assert 0 <= score <= 100


def test_first_week_is_a_cold_start(services):
    result = _rank(services)
    assert result.cold_start
    assert all(not t.anti_gaming.constrained for t in result.teams)
    assert all(t.prev_rank is None for t in result.teams)
    assert [t.rank for t in result.teams] == [t.composite_rank for t in result.teams]


def test_strongest_roster_ranks_first(services):
    result = _rank(services)
    assert result.teams[0].roster_id in (1, 2)
    assert result.teams[-1].roster_id in (5, 6)


def test_rankings_are_deterministic(services):
    first = _rank(services, persist=False)
    second = _rank(services, persist=False)
    assert first.teams == second.teams


def test_persisted_week_feeds_the_next_run(services):
    _rank(services, week=5)
    result = _rank(services, week=6)

    assert not result.cold_start
    assert all(t.prev_rank is not None for t in result.teams)
    for team in result.teams:
        assert team.rank_delta == team.prev_rank - team.rank
    assert set(services.snapshots.weeks("L1", "2024")) == {5, 6}


def test_no_persist_leaves_store_untouched(services):
    _rank(services, persist=False)
    assert services.snapshots.weeks("L1", "2024") == []


def test_degraded_valuations_still_rank(make_league, test_settings, session_factory):
    source = InMemoryLeagueSource(leagues=[make_league()], failing={"valuations"})
    services = _services_for(source, test_settings, session_factory)

    result = _rank(services)

    assert "valuations" in result.missing_sources
    assert len(result.teams) == 6
    assert sorted(t.rank for t in result.teams) == [1, 2, 3, 4, 5, 6]
    for team in result.teams:
        assert any("valuations unavailable" in c for c in team.data_quality.caveats)


def test_missing_feeds_lower_confidence(make_league, test_settings, session_factory):
    healthy = _rank(_services_for(InMemoryLeagueSource([make_league()]), test_settings, session_factory), persist=False)
    degraded_source = InMemoryLeagueSource([make_league()], failing={"trades", "demand", "injuries"})
    degraded = _rank(_services_for(degraded_source, test_settings, session_factory), persist=False)

    assert set(degraded.missing_sources) == {"trades", "demand", "injuries"}
    before = {t.roster_id: t.data_quality.confidence for t in healthy.teams}
    for team in degraded.teams:
        assert team.data_quality.confidence < before[team.roster_id]


def test_injured_starters_lower_power(make_league, test_settings, session_factory):
    league = make_league()
    starters = league.rosters[0].starters
    injuries = InjuryReport(
        by_player_id={pid: InjuryEntry("Out", reported_at=NOW) for pid in starters},
        fetched_at=NOW,
    )
    healthy = _rank(_services_for(InMemoryLeagueSource([league]), test_settings, session_factory), persist=False)
    hurt = _rank(
        _services_for(InMemoryLeagueSource([league], injuries=injuries), test_settings, session_factory),
        persist=False,
    )

    def power(result):
        return next(t.scores.power for t in result.teams if t.roster_id == 1)

    assert power(hurt) < power(healthy)


def test_unknown_league_raises(services):
    with pytest.raises(LeagueNotFoundError):
        _rank(services, league_id="nope")


def test_unreachable_league_raises(make_league, test_settings, session_factory):
    source = InMemoryLeagueSource([make_league()], failing={"league"})
    with pytest.raises(LeagueNotFoundError):
        _rank(_services_for(source, test_settings, session_factory))


def test_league_without_rosters_is_insufficient(make_league, test_settings, session_factory):
    league = make_league()
    league.rosters = []
    with pytest.raises(InsufficientSampleError):
        _rank(_services_for(InMemoryLeagueSource([league]), test_settings, session_factory))


def test_one_failing_league_does_not_affect_others(services):
    results = asyncio.run(services.engine.rank_leagues(["L1", "missing"]))

    assert isinstance(results["L1"], RankingResult)
    assert isinstance(results["missing"], LeagueNotFoundError)


def test_unnamed_manager_gets_positional_name(make_league, test_settings, session_factory):
    league = make_league()
    league.rosters[2] = RosterRecord(
        roster_id=3, players=league.rosters[2].players, starters=league.rosters[2].starters
    )
    result = _rank(_services_for(InMemoryLeagueSource([league]), test_settings, session_factory))
    assert next(t.display_name for t in result.teams if t.roster_id == 3) == "Team 3"


def test_redraft_leagues_have_no_future_capital(make_league, test_settings, session_factory):
    source = InMemoryLeagueSource([make_league(is_dynasty=False, is_superflex=False)])
    result = _rank(_services_for(source, test_settings, session_factory))

    assert result.segment_key == "RED_1QB_inseason"
    assert all(t.scores.future_capital == 0 for t in result.teams)


def test_offseason_phase_from_status(make_league, test_settings, session_factory):
    source = InMemoryLeagueSource([make_league(status="pre_draft", week=0)])
    result = _rank(_services_for(source, test_settings, session_factory))
    assert result.phase == Phase.OFFSEASON
    assert len(result.teams) == 6
