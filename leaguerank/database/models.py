"""SQLAlchemy database models for the ranking engine.

Three tables back the engine:
1. ranking_snapshots: one row per team per league week, read by the next
   week's anti-gaming pass and by the backtest evaluator
2. backtest_results: one row per league week per prediction target
3. composite_params: learned parameter history per league segment, including
   rejected and insufficient-data cycles for auditing

Design Patterns:
- Natural keys enforced with unique constraints so writes can upsert
- JSON columns for metric bundles that evolve with the scoring model
- created_at/updated_at timestamps on every table
"""

from sqlalchemy import JSON, Column, Date, DateTime, Float, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

# Base class for all database models
Base = declarative_base()


class RankingSnapshot(Base):
    """Persisted ranking of one team for one league week.

    The metrics JSON holds the four justification metrics plus every sub-score,
    so a stored week can be re-scored under different weights without
    re-fetching upstream data.
    """

    __tablename__ = "ranking_snapshots"

    id = Column(Integer, primary_key=True, index=True)

    # Natural key: league + season + week + roster
    league_id = Column(String(64), nullable=False, index=True)
    season = Column(String(8), nullable=False)
    week = Column(Integer, nullable=False)
    roster_id = Column(Integer, nullable=False)

    # Ranking outcome
    rank = Column(Integer, nullable=False)
    composite = Column(Integer, nullable=False)
    composite_rank = Column(Integer)
    expected_wins = Column(Float, default=0.0)
    luck_delta = Column(Float, default=0.0)

    # Sub-scores and justification metrics (see SnapshotMetrics / SubScores)
    metrics = Column(JSON, nullable=False, default=dict)
    segment_key = Column(String(32))

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("league_id", "season", "week", "roster_id", name="uq_snapshot_key"),
        Index("idx_snapshot_league_week", "league_id", "season", "week"),
    )


class BacktestResultRecord(Base):
    """Calibration and ranking metrics for one league week and target."""

    __tablename__ = "backtest_results"

    id = Column(Integer, primary_key=True, index=True)

    league_id = Column(String(64), nullable=False, index=True)
    season = Column(String(8), nullable=False)
    week_evaluated = Column(Integer, nullable=False)
    target_type = Column(String(32), nullable=False)  # win_pct_3w, playoff_qual, championship_finish
    horizon_weeks = Column(Integer, nullable=False, default=3)
    segment_key = Column(String(32), nullable=False, index=True)

    n_teams = Column(Integer, nullable=False)
    brier_score = Column(Float, nullable=False)
    ece = Column(Float, nullable=False)
    ndcg = Column(Float, nullable=False)
    spearman = Column(Float, nullable=False)

    # Per-team predicted vs actual detail
    details = Column(JSON, default=list)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint(
            "league_id", "season", "week_evaluated", "target_type", name="uq_backtest_key"
        ),
        Index("idx_backtest_segment_created", "segment_key", "created_at"),
    )


class LearnedParamsRecord(Base):
    """One learning cycle outcome for a league segment.

    Only rows with status APPLIED are read back as active parameters.
    """

    __tablename__ = "composite_params"

    id = Column(Integer, primary_key=True, index=True)

    segment_key = Column(String(32), nullable=False, index=True)
    league_class = Column(String(16), nullable=False)
    status = Column(String(24), nullable=False)  # APPLIED, REJECTED, INSUFFICIENT_DATA, ROLLED_BACK
    cycle_start = Column(Date, nullable=False)

    injury_influence = Column(Float, nullable=False)
    starter_bench_split = Column(Float, nullable=False)
    luck_dampening = Column(Float, nullable=False)
    future_capital_influence = Column(Float, nullable=False)

    baseline_score = Column(Float)
    learned_score = Column(Float)
    sample_size = Column(Integer, default=0)
    method = Column(String(16))  # recompute or projection
    notes = Column(String(500))

    created_at = Column(DateTime, default=func.now())

    __table_args__ = (
        Index("idx_params_segment_status", "segment_key", "status", "created_at"),
    )
