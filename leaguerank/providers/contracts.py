"""Data contracts for everything the ranking engine consumes from upstream.

How the data is acquired (platform APIs, scrapers, caches) is the concern of
the provider implementations. The engine only ever sees these records.
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class LeagueSettings:
    """League-level configuration and current state."""

    league_id: str
    name: str
    season: str
    is_dynasty: bool
    is_superflex: bool
    num_teams: int
    status: str = "in_season"  # pre_draft | drafting | in_season | complete
    week: int = 1
    roster_positions: list[str] = field(default_factory=list)
    playoff_week_start: int | None = None
    specialty_format: str | None = None  # Non-standard scoring (e.g. "te_premium", "idp")


@dataclass
class RosterRecord:
    """One team in the league: record, owner identity and players."""

    roster_id: int
    owner_id: str | None = None
    username: str | None = None
    display_name: str | None = None
    owner_name: str | None = None
    wins: int = 0
    losses: int = 0
    ties: int = 0
    points_for: float = 0.0
    points_against: float = 0.0
    players: list[str] = field(default_factory=list)
    starters: list[str] = field(default_factory=list)

    @property
    def games_played(self) -> int:
        return self.wins + self.losses + self.ties

    @property
    def win_pct(self) -> float:
        games = self.games_played
        if games == 0:
            return 0.5
        return (self.wins + 0.5 * self.ties) / games

    @property
    def bench(self) -> list[str]:
        starters = set(self.starters)
        return [p for p in self.players if p not in starters]


@dataclass
class WeeklyMatchup:
    """Points scored by one roster in one week, paired by matchup_id."""

    week: int
    roster_id: int
    points: float
    matchup_id: int | None = None


@dataclass
class PlayerValue:
    """Market valuation of a single player (or prospect)."""

    player_id: str
    name: str = ""
    position: str = ""
    dynasty_value: float = 0.0
    redraft_value: float = 0.0
    age: float | None = None
    is_devy: bool = False  # College prospect held on a devy roster
    draft_projection_score: float | None = None
    projected_draft_round: int | None = None

    def value_for(self, is_dynasty: bool) -> float:
        return self.dynasty_value if is_dynasty else self.redraft_value


@dataclass
class ValuationSnapshot:
    """Player values keyed by player id, with the time they were produced."""

    values: dict[str, PlayerValue] = field(default_factory=dict)
    fetched_at: datetime | None = None

    def get(self, player_id: str) -> PlayerValue | None:
        return self.values.get(player_id)


@dataclass
class InjuryEntry:
    """Current injury designation for a player."""

    status: str
    reported_at: datetime | None = None
    injury_type: str | None = None


@dataclass
class InjuryReport:
    """Injury entries keyed by player id, with an optional name index."""

    by_player_id: dict[str, InjuryEntry] = field(default_factory=dict)
    by_name: dict[str, InjuryEntry] = field(default_factory=dict)
    fetched_at: datetime | None = None

    def lookup(self, player_id: str, name: str | None = None) -> InjuryEntry | None:
        """Id match first, then a case-insensitive name match."""
        entry = self.by_player_id.get(player_id)
        if entry is None and name:
            entry = self.by_name.get(name.strip().lower())
        return entry

    @property
    def latest_report(self) -> datetime | None:
        dates = [
            e.reported_at
            for e in [*self.by_player_id.values(), *self.by_name.values()]
            if e.reported_at is not None
        ]
        return max(dates) if dates else None


@dataclass
class TradeRecord:
    """One side of a completed trade, keyed by the manager identity."""

    manager: str
    value_given: float
    value_received: float
    counterparty: str | None = None
    completed_at: datetime | None = None


@dataclass
class PositionDemand:
    """League demand index for a position (0-100, 50 neutral)."""

    position: str
    ldi: float = 50.0
    sample: int = 0
    mean_premium_pct: float = 0.0


@dataclass
class PlayoffMatch:
    """A single bracket game. Winner/loser are None until played."""

    round: int
    team1: int | None
    team2: int | None
    winner: int | None = None
    loser: int | None = None


@dataclass
class DraftPick:
    """A pick from the league's most recent draft."""

    pick_no: int
    roster_id: int
    player_id: str


@dataclass
class LeagueInputs:
    """Everything gathered for one ranking run, plus caveats about gaps."""

    league: LeagueSettings
    rosters: list[RosterRecord]
    matchups: list[WeeklyMatchup] = field(default_factory=list)
    valuations: ValuationSnapshot = field(default_factory=ValuationSnapshot)
    injuries: InjuryReport = field(default_factory=InjuryReport)
    trades: list[TradeRecord] = field(default_factory=list)
    demand: dict[str, PositionDemand] = field(default_factory=dict)
    bracket: list[PlayoffMatch] = field(default_factory=list)
    draft_picks: list[DraftPick] = field(default_factory=list)
    synced_at: datetime | None = None
    missing_sources: list[str] = field(default_factory=list)
