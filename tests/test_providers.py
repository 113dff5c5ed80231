"""Tests for upstream fetching and fixture-backed sources."""

import asyncio
from datetime import UTC, datetime
from pathlib import Path

import pytest

from leaguerank.engine.weights import WeightResolver
from leaguerank.exceptions import MissingUpstreamDataError
from leaguerank.providers.fetch import FetchPolicy, fetch_with_fallback, fetch_with_retry
from leaguerank.providers.memory import InMemoryLeagueSource, load_fixture
from leaguerank.services import build_services

NOW = datetime(2024, 10, 8, 12, 0, tzinfo=UTC)

SAMPLE_FIXTURE = Path(__file__).parent.parent / "data" / "fixtures" / "sample_league.json"
FAST = FetchPolicy(timeout=0.5, retries=2, backoff=0.0)


def test_retry_recovers_from_transient_failures():
    calls = []

    async def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise ConnectionError("connection reset")
        return "ok"

    assert asyncio.run(fetch_with_retry("league", flaky, FAST)) == "ok"
    assert len(calls) == 3


def test_retry_gives_up_after_policy_attempts():
    calls = []

    async def broken():
        calls.append(1)
        raise ConnectionError("down")

    with pytest.raises(MissingUpstreamDataError) as exc:
        asyncio.run(fetch_with_retry("trades", broken, FAST))
    assert exc.value.source == "trades"
    assert len(calls) == 3


def test_timeout_falls_back_to_default():
    async def slow():
        await asyncio.sleep(1.0)
        return {"QB": 1}

    policy = FetchPolicy(timeout=0.01, retries=0, backoff=0.0)
    outcome = asyncio.run(fetch_with_fallback("demand", slow, {}, policy))

    assert not outcome.ok
    assert outcome.value == {}
    assert "timed out" in str(outcome.error)


def test_fallback_passes_successful_values_through():
    async def good():
        return [1, 2]

    outcome = asyncio.run(fetch_with_fallback("matchups", good, [], FAST))
    assert outcome.ok
    assert outcome.value == [1, 2]


def test_memory_source_failing_feeds(make_league):
    source = InMemoryLeagueSource([make_league()], failing={"demand"})
    with pytest.raises(MissingUpstreamDataError):
        asyncio.run(source.get_demand("L1"))
    assert source.calls["demand"] == 1


def test_memory_source_filters_injuries_to_requested_players():
    source = load_fixture(SAMPLE_FIXTURE)
    report = asyncio.run(source.get_injuries(["2002"]))
    assert set(report.by_player_id) == {"2002"}


def test_load_sample_fixture():
    source = load_fixture(SAMPLE_FIXTURE)

    fixture = source.leagues["demo-dynasty"]
    assert fixture.league.is_dynasty
    assert fixture.league.is_superflex
    assert len(fixture.rosters) == 6
    assert len(source.injuries.by_player_id) == 3
    assert fixture.synced_at is not None
    assert any(v.is_devy for v in fixture.valuations.values.values())


def test_sample_fixture_ranks_end_to_end(test_settings, session_factory):
    services = build_services(
        test_settings,
        source=load_fixture(SAMPLE_FIXTURE),
        session_factory=session_factory,
        weights=WeightResolver(),
        clock=lambda: NOW,
    )

    result = asyncio.run(services.engine.rank_league("demo-dynasty"))

    assert result.segment_key == "DYN_SF_inseason"
    assert result.missing_sources == ()
    assert sorted(t.rank for t in result.teams) == [1, 2, 3, 4, 5, 6]
    names = {t.roster_id: t.display_name for t in result.teams}
    assert names[1] == "gridiron_greg"
    assert names[3] == "Third Down Dan"
    assert any(t.scores.future_capital > 0 for t in result.teams)
