"""Provider protocols for the upstream feeds the engine reads.

Each protocol is async so a ranking run can gather all feeds concurrently.
Implementations may talk to platform APIs, caches or fixtures; the engine
only depends on these method signatures.
"""

from datetime import datetime
from typing import Protocol

from .contracts import (
    DraftPick,
    InjuryReport,
    LeagueSettings,
    PlayoffMatch,
    PositionDemand,
    RosterRecord,
    TradeRecord,
    ValuationSnapshot,
    WeeklyMatchup,
)


class LeagueDataSource(Protocol):
    """League settings, rosters, weekly scores, bracket and draft."""

    async def get_league(self, league_id: str) -> LeagueSettings | None: ...

    async def get_rosters(self, league_id: str) -> list[RosterRecord]: ...

    async def get_matchups(self, league_id: str, through_week: int) -> list[WeeklyMatchup]: ...

    async def get_playoff_bracket(self, league_id: str) -> list[PlayoffMatch]: ...

    async def get_draft_picks(self, league_id: str) -> list[DraftPick]: ...

    async def get_last_synced(self, league_id: str) -> datetime | None: ...


class ValuationProvider(Protocol):
    async def get_values(self, league: LeagueSettings) -> ValuationSnapshot: ...


class TradeHistoryProvider(Protocol):
    async def get_trades(self, league_id: str) -> list[TradeRecord]: ...


class InjuryFeed(Protocol):
    async def get_injuries(self, player_ids: list[str]) -> InjuryReport: ...


class DemandIndexProvider(Protocol):
    async def get_demand(self, league_id: str) -> dict[str, PositionDemand]: ...
