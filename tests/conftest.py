"""Shared fixtures: a deterministic league generator, in-memory storage and wired services.

The generated league plays a round robin where lower roster ids score more,
so roster 1 is the strongest team on paper and on the field. Records, player
values and matchups are all derived from the same schedule, which keeps the
league internally consistent without hand-maintained numbers.
"""

from datetime import UTC, datetime, timedelta

import pytest

from leaguerank.config.settings import Settings
from leaguerank.database.connection import create_session_factory
from leaguerank.database.init_db import create_database
from leaguerank.engine.composite import SubScores
from leaguerank.engine.records import (
    AntiGamingResult,
    SnapshotMetrics,
    TeamDataQuality,
    TeamScoreRecord,
)
from leaguerank.engine.weights import WeightResolver
from leaguerank.providers.contracts import (
    InjuryReport,
    LeagueSettings,
    PlayerValue,
    RosterRecord,
    ValuationSnapshot,
    WeeklyMatchup,
)
from leaguerank.providers.memory import InMemoryLeagueSource, LeagueFixture
from leaguerank.services import build_services

NOW = datetime(2024, 10, 8, 12, 0, tzinfo=UTC)
POSITIONS = ["QB", "RB", "WR", "TE", "WR"]


def weekly_pairs(n: int, week: int) -> list[tuple[int, int]]:
    """Round-robin pairing of team indexes 0..n-1 (n even) for a week."""
    m = n - 1
    pairs = []
    for a in range(m):
        b = (week - a) % m
        if a == b:
            pairs.append((a, m))
        elif a < b:
            pairs.append((a, b))
    return pairs


def team_points(index: int, week: int) -> float:
    return float(130 - 6 * index + (week * 7 + index * 3) % 11)


def generate_league(
    league_id: str = "L1",
    num_teams: int = 6,
    week: int = 6,
    is_dynasty: bool = True,
    is_superflex: bool = True,
    status: str = "in_season",
    season: str = "2024",
) -> LeagueFixture:
    roster_ids = list(range(1, num_teams + 1))
    matchups = []
    records = {rid: {"wins": 0, "losses": 0, "ties": 0, "pf": 0.0, "pa": 0.0} for rid in roster_ids}
    for wk in range(1, max(week, 1)):
        for matchup_id, (a, b) in enumerate(weekly_pairs(num_teams, wk), start=1):
            pa, pb = team_points(a, wk), team_points(b, wk)
            ra, rb = roster_ids[a], roster_ids[b]
            matchups.append(WeeklyMatchup(wk, ra, pa, matchup_id))
            matchups.append(WeeklyMatchup(wk, rb, pb, matchup_id))
            records[ra]["pf"] += pa
            records[ra]["pa"] += pb
            records[rb]["pf"] += pb
            records[rb]["pa"] += pa
            if pa == pb:
                records[ra]["ties"] += 1
                records[rb]["ties"] += 1
            else:
                winner, loser = (ra, rb) if pa > pb else (rb, ra)
                records[winner]["wins"] += 1
                records[loser]["losses"] += 1

    rosters = []
    values = {}
    for index, rid in enumerate(roster_ids):
        players = [f"{rid}-{j}" for j in range(5)]
        for j, player_id in enumerate(players):
            values[player_id] = PlayerValue(
                player_id=player_id,
                name=f"Player {player_id}",
                position=POSITIONS[j],
                dynasty_value=9000 - 700 * index - 900 * j,
                redraft_value=8500 - 650 * index - 900 * j,
                age=24 + j,
            )
        rec = records[rid]
        rosters.append(
            RosterRecord(
                roster_id=rid,
                owner_id=f"owner-{rid}",
                username=f"manager{rid}",
                wins=rec["wins"],
                losses=rec["losses"],
                ties=rec["ties"],
                points_for=rec["pf"],
                points_against=rec["pa"],
                players=players,
                starters=players[:3],
            )
        )

    league = LeagueSettings(
        league_id=league_id,
        name=f"League {league_id}",
        season=season,
        is_dynasty=is_dynasty,
        is_superflex=is_superflex,
        num_teams=num_teams,
        status=status,
        week=week,
    )
    return LeagueFixture(
        league=league,
        rosters=rosters,
        matchups=matchups,
        valuations=ValuationSnapshot(values=values, fetched_at=NOW - timedelta(minutes=30)),
        synced_at=NOW - timedelta(hours=1),
    )


def team_record(
    roster_id: int,
    rank: int,
    composite: int,
    metrics: SnapshotMetrics | None = None,
    scores: SubScores | None = None,
) -> TeamScoreRecord:
    metrics = metrics or SnapshotMetrics(0.5, 2.0, 1.0, 0.0)
    scores = scores or SubScores(win=composite, power=composite, luck=50, market=composite, skill=50)
    return TeamScoreRecord(
        roster_id=roster_id,
        owner_id=f"owner-{roster_id}",
        display_name=f"manager{roster_id}",
        scores=scores,
        composite=composite,
        rank=rank,
        composite_rank=rank,
        prev_rank=None,
        rank_delta=None,
        wins=0,
        losses=0,
        ties=0,
        points_for=0.0,
        points_against=0.0,
        expected_wins=metrics.expected_wins,
        luck_delta=0.0,
        metrics=metrics,
        anti_gaming=AntiGamingResult(roster_id, rank, rank, False),
        data_quality=TeamDataQuality(confidence=80, rating="HIGH", coverage="FULL"),
    )


@pytest.fixture
def make_league():
    return generate_league


@pytest.fixture
def make_team_record():
    return team_record


@pytest.fixture
def session_factory():
    factory = create_session_factory("sqlite://")
    create_database(factory.kw["bind"])
    return factory


@pytest.fixture
def test_settings():
    return Settings(
        fetch_timeout=2.0,
        fetch_retries=1,
        fetch_backoff=0.0,
        league_fixture=None,
    )


@pytest.fixture
def source():
    return InMemoryLeagueSource(leagues=[generate_league()], injuries=InjuryReport(fetched_at=NOW))


@pytest.fixture
def services(test_settings, source, session_factory):
    return build_services(
        test_settings,
        source=source,
        session_factory=session_factory,
        weights=WeightResolver(),
        clock=lambda: NOW,
    )
