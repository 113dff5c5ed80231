"""Records produced by a ranking run and stored between runs."""

from dataclasses import asdict, dataclass, field
from datetime import datetime

from .composite import SubScores
from .params import LearnedParams
from .phase import Phase


@dataclass(frozen=True)
class SnapshotMetrics:
    """Raw metrics used to justify rank climbs on the following week."""

    starter_value_percentile: float
    expected_wins: float
    injury_health_ratio: float
    trade_efficiency_premium: float

    def as_dict(self) -> dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict | None) -> "SnapshotMetrics | None":
        if not data:
            return None
        try:
            return cls(**{k: float(data[k]) for k in cls.__dataclass_fields__})
        except (KeyError, TypeError, ValueError):
            return None


@dataclass(frozen=True)
class StoredSnapshot:
    """One team's persisted ranking for a league week."""

    roster_id: int
    week: int
    rank: int
    composite: int
    expected_wins: float = 0.0
    luck_delta: float = 0.0
    metrics: SnapshotMetrics | None = None
    scores: SubScores | None = None


@dataclass(frozen=True)
class Justification:
    """Outcome of one improvement check for a climbing team."""

    metric: str
    label: str
    previous_value: float | None
    current_value: float
    delta: float | None
    threshold: float
    passed: bool


@dataclass(frozen=True)
class AntiGamingResult:
    roster_id: int
    original_rank: int
    adjusted_rank: int
    constrained: bool
    capped: bool = False
    justifications: tuple[Justification, ...] = ()
    failed_metrics: tuple[str, ...] = ()


@dataclass(frozen=True)
class TeamDataQuality:
    confidence: int
    rating: str  # HIGH | MEDIUM | LOW
    coverage: str  # FULL | PARTIAL | MINIMAL
    staleness_hours: dict[str, float | None] = field(default_factory=dict)
    caveats: tuple[str, ...] = ()


@dataclass(frozen=True)
class TeamScoreRecord:
    """Final ranked output for one team. Immutable once produced."""

    roster_id: int
    owner_id: str | None
    display_name: str
    scores: SubScores
    composite: int
    rank: int
    composite_rank: int
    prev_rank: int | None
    rank_delta: int | None
    wins: int
    losses: int
    ties: int
    points_for: float
    points_against: float
    expected_wins: float
    luck_delta: float
    metrics: SnapshotMetrics
    anti_gaming: AntiGamingResult
    data_quality: TeamDataQuality


@dataclass(frozen=True)
class RankingResult:
    league_id: str
    season: str
    week: int
    phase: Phase
    segment_key: str
    weight_version: str
    learned_params: LearnedParams
    cold_start: bool
    teams: tuple[TeamScoreRecord, ...]
    computed_at: datetime
    missing_sources: tuple[str, ...] = ()


@dataclass(frozen=True)
class TeamBacktestDetail:
    roster_id: int
    rank: int
    predicted: float
    actual: float


@dataclass(frozen=True)
class BacktestResult:
    """Calibration and ranking quality of one week's rankings for one target."""

    league_id: str
    season: str
    week_evaluated: int
    target_type: str
    horizon_weeks: int
    segment_key: str
    n_teams: int
    brier_score: float
    ece: float
    ndcg: float
    spearman: float
    details: tuple[TeamBacktestDetail, ...] = ()
