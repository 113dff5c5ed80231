"""In-memory provider backed by plain records or a JSON/YAML fixture file.

Used by the CLI for offline runs and by the test suite. A single
InMemoryLeagueSource satisfies every provider protocol at once.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from ..exceptions import MissingUpstreamDataError
from .contracts import (
    DraftPick,
    InjuryEntry,
    InjuryReport,
    LeagueSettings,
    PlayerValue,
    PlayoffMatch,
    PositionDemand,
    RosterRecord,
    TradeRecord,
    ValuationSnapshot,
    WeeklyMatchup,
)

logger = logging.getLogger(__name__)


@dataclass
class LeagueFixture:
    league: LeagueSettings
    rosters: list[RosterRecord]
    matchups: list[WeeklyMatchup] = field(default_factory=list)
    valuations: ValuationSnapshot = field(default_factory=ValuationSnapshot)
    trades: list[TradeRecord] = field(default_factory=list)
    demand: dict[str, PositionDemand] = field(default_factory=dict)
    bracket: list[PlayoffMatch] = field(default_factory=list)
    draft_picks: list[DraftPick] = field(default_factory=list)
    synced_at: datetime | None = None


class InMemoryLeagueSource:
    """League, valuation, trade, injury and demand provider in one object.

    `failing` names sources that should raise MissingUpstreamDataError, which
    lets callers exercise the degraded paths of a ranking run.
    """

    def __init__(
        self,
        leagues: list[LeagueFixture] | None = None,
        injuries: InjuryReport | None = None,
        failing: set[str] | None = None,
    ):
        self.leagues: dict[str, LeagueFixture] = {}
        for fixture in leagues or []:
            self.add_league(fixture)
        self.injuries = injuries or InjuryReport()
        self.failing = set(failing or ())
        self.calls: dict[str, int] = {}

    def add_league(self, fixture: LeagueFixture) -> None:
        self.leagues[fixture.league.league_id] = fixture

    def _check(self, source: str) -> None:
        self.calls[source] = self.calls.get(source, 0) + 1
        if source in self.failing:
            raise MissingUpstreamDataError(source, "configured to fail")

    def _fixture(self, league_id: str) -> LeagueFixture | None:
        return self.leagues.get(league_id)

    async def get_league(self, league_id: str) -> LeagueSettings | None:
        self._check("league")
        fixture = self._fixture(league_id)
        return fixture.league if fixture else None

    async def get_rosters(self, league_id: str) -> list[RosterRecord]:
        self._check("rosters")
        fixture = self._fixture(league_id)
        return list(fixture.rosters) if fixture else []

    async def get_matchups(self, league_id: str, through_week: int) -> list[WeeklyMatchup]:
        self._check("matchups")
        fixture = self._fixture(league_id)
        if fixture is None:
            return []
        return [m for m in fixture.matchups if m.week <= through_week]

    async def get_playoff_bracket(self, league_id: str) -> list[PlayoffMatch]:
        self._check("bracket")
        fixture = self._fixture(league_id)
        return list(fixture.bracket) if fixture else []

    async def get_draft_picks(self, league_id: str) -> list[DraftPick]:
        self._check("draft")
        fixture = self._fixture(league_id)
        return list(fixture.draft_picks) if fixture else []

    async def get_last_synced(self, league_id: str) -> datetime | None:
        fixture = self._fixture(league_id)
        return fixture.synced_at if fixture else None

    async def get_values(self, league: LeagueSettings) -> ValuationSnapshot:
        self._check("valuations")
        fixture = self._fixture(league.league_id)
        return fixture.valuations if fixture else ValuationSnapshot()

    async def get_trades(self, league_id: str) -> list[TradeRecord]:
        self._check("trades")
        fixture = self._fixture(league_id)
        return list(fixture.trades) if fixture else []

    async def get_injuries(self, player_ids: list[str]) -> InjuryReport:
        self._check("injuries")
        wanted = set(player_ids)
        return InjuryReport(
            by_player_id={pid: e for pid, e in self.injuries.by_player_id.items() if pid in wanted},
            by_name=dict(self.injuries.by_name),
            fetched_at=self.injuries.fetched_at,
        )

    async def get_demand(self, league_id: str) -> dict[str, PositionDemand]:
        self._check("demand")
        fixture = self._fixture(league_id)
        return dict(fixture.demand) if fixture else {}


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _league_from_dict(data: dict[str, Any]) -> LeagueFixture:
    league = LeagueSettings(**data["league"])
    values = {
        str(v["player_id"]): PlayerValue(**{**v, "player_id": str(v["player_id"])})
        for v in data.get("values", [])
    }
    return LeagueFixture(
        league=league,
        rosters=[RosterRecord(**r) for r in data.get("rosters", [])],
        matchups=[WeeklyMatchup(**m) for m in data.get("matchups", [])],
        valuations=ValuationSnapshot(
            values=values,
            fetched_at=_parse_datetime(data.get("valuations_fetched_at")),
        ),
        trades=[
            TradeRecord(**{**t, "completed_at": _parse_datetime(t.get("completed_at"))})
            for t in data.get("trades", [])
        ],
        demand={d["position"]: PositionDemand(**d) for d in data.get("demand", [])},
        bracket=[PlayoffMatch(**b) for b in data.get("bracket", [])],
        draft_picks=[DraftPick(**p) for p in data.get("draft_picks", [])],
        synced_at=_parse_datetime(data.get("synced_at")),
    )


def load_fixture(path: str | Path) -> InMemoryLeagueSource:
    """Build an InMemoryLeagueSource from a JSON or YAML fixture file.

    Expected shape:
        {"leagues": [{"league": {...}, "rosters": [...], "values": [...], ...}],
         "injuries": {"<player_id>": {"status": "Out", "reported_at": "..."}}}
    """
    path = Path(path)
    with open(path) as f:
        if path.suffix == ".json":
            raw = json.load(f)
        else:
            raw = yaml.safe_load(f)

    leagues = [_league_from_dict(entry) for entry in raw.get("leagues", [])]
    injuries = InjuryReport(
        by_player_id={
            str(pid): InjuryEntry(
                status=entry["status"],
                reported_at=_parse_datetime(entry.get("reported_at")),
                injury_type=entry.get("injury_type"),
            )
            for pid, entry in (raw.get("injuries") or {}).items()
        },
        fetched_at=_parse_datetime(raw.get("injuries_fetched_at")),
    )
    logger.info(f"Loaded fixture {path} with {len(leagues)} league(s)")
    return InMemoryLeagueSource(leagues=leagues, injuries=injuries)
