"""Pydantic schemas for API responses.

Every schema uses from_attributes=True so it can be built straight from the
engine's frozen dataclasses (TeamScoreRecord, BacktestResult, ...) with
`Schema.model_validate(record)`.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict

from ..engine.phase import Phase

# ========== RANKING SCHEMAS ==========


class SubScoresResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    win: int
    power: int
    luck: int
    market: int
    skill: int
    draft_gain: int
    future_capital: int


class SnapshotMetricsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    starter_value_percentile: float
    expected_wins: float
    injury_health_ratio: float
    trade_efficiency_premium: float


class JustificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    metric: str
    label: str
    previous_value: float | None = None
    current_value: float
    delta: float | None = None
    threshold: float
    passed: bool


class AntiGamingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    original_rank: int
    adjusted_rank: int
    constrained: bool
    capped: bool
    justifications: list[JustificationResponse] = []
    failed_metrics: list[str] = []


class DataQualityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    confidence: int
    rating: str
    coverage: str
    staleness_hours: dict[str, float | None] = {}
    caveats: list[str] = []


class TeamRankingResponse(BaseModel):
    """One team's ranked output, including why it sits where it does."""

    model_config = ConfigDict(from_attributes=True)

    roster_id: int
    owner_id: str | None = None
    display_name: str
    rank: int
    composite: int
    composite_rank: int
    prev_rank: int | None = None
    rank_delta: int | None = None
    wins: int
    losses: int
    ties: int
    points_for: float
    points_against: float
    expected_wins: float
    luck_delta: float
    scores: SubScoresResponse
    metrics: SnapshotMetricsResponse
    anti_gaming: AntiGamingResponse
    data_quality: DataQualityResponse


class LearnedParamsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    injury_influence: float
    starter_bench_split: float
    luck_dampening: float
    future_capital_influence: float


class RankingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    league_id: str
    season: str
    week: int
    phase: Phase
    segment_key: str
    weight_version: str
    learned_params: LearnedParamsResponse
    cold_start: bool
    computed_at: datetime
    missing_sources: list[str] = []
    teams: list[TeamRankingResponse]


# ========== BACKTEST SCHEMAS ==========


class BacktestDetailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    roster_id: int
    rank: int
    predicted: float
    actual: float


class BacktestResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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
    details: list[BacktestDetailResponse] = []


class BacktestAggregateResponse(BaseModel):
    target_type: str
    brier_score: float
    ece: float
    ndcg: float
    spearman: float
    count: int


# ========== LEARNING SCHEMAS ==========


class LearningOutcomeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    segment_key: str
    status: str
    current: LearnedParamsResponse
    learned: LearnedParamsResponse
    improved: bool
    baseline_score: float | None = None
    learned_score: float | None = None
    method: str | None = None
    sample_size: int
    candidates_evaluated: int
    notes: list[str] = []


class ParamsHistoryEntry(BaseModel):
    status: str
    cycle_start: date
    params: LearnedParamsResponse
    baseline_score: float | None = None
    learned_score: float | None = None
    method: str | None = None
    notes: str | None = None


class ActiveParamsResponse(BaseModel):
    segment_key: str
    active: LearnedParamsResponse
    history: list[ParamsHistoryEntry] = []
