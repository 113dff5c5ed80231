"""Repositories for backtest results and learned parameters."""

import logging
from datetime import date
from typing import Any

import pandas as pd

from ..engine.params import LearnedParams, defaults_for_class
from ..engine.records import BacktestResult, TeamBacktestDetail
from .connection import SessionFactory, session_scope
from .models import BacktestResultRecord, LearnedParamsRecord

logger = logging.getLogger(__name__)

STATUS_APPLIED = "APPLIED"
STATUS_REJECTED = "REJECTED"
STATUS_INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
STATUS_ROLLED_BACK = "ROLLED_BACK"


def _to_result(row: BacktestResultRecord) -> BacktestResult:
    return BacktestResult(
        league_id=row.league_id,
        season=row.season,
        week_evaluated=row.week_evaluated,
        target_type=row.target_type,
        horizon_weeks=row.horizon_weeks,
        segment_key=row.segment_key,
        n_teams=row.n_teams,
        brier_score=row.brier_score,
        ece=row.ece,
        ndcg=row.ndcg,
        spearman=row.spearman,
        details=tuple(TeamBacktestDetail(**d) for d in (row.details or [])),
    )


class BacktestRepository:
    """Stores one row per (league, season, week, target); re-runs overwrite."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def upsert(self, result: BacktestResult) -> None:
        with session_scope(self.session_factory) as session:
            row = (
                session.query(BacktestResultRecord)
                .filter_by(
                    league_id=result.league_id,
                    season=result.season,
                    week_evaluated=result.week_evaluated,
                    target_type=result.target_type,
                )
                .one_or_none()
            )
            if row is None:
                row = BacktestResultRecord(
                    league_id=result.league_id,
                    season=result.season,
                    week_evaluated=result.week_evaluated,
                    target_type=result.target_type,
                )
                session.add(row)
            row.horizon_weeks = result.horizon_weeks
            row.segment_key = result.segment_key
            row.n_teams = result.n_teams
            row.brier_score = result.brier_score
            row.ece = result.ece
            row.ndcg = result.ndcg
            row.spearman = result.spearman
            row.details = [
                {"roster_id": d.roster_id, "rank": d.rank, "predicted": d.predicted, "actual": d.actual}
                for d in result.details
            ]

    def recent_for_class(self, league_cls: str, limit: int = 50) -> list[BacktestResult]:
        """Most recent results across every phase of a league class."""
        with session_scope(self.session_factory) as session:
            rows = (
                session.query(BacktestResultRecord)
                .filter(BacktestResultRecord.segment_key.like(f"{league_cls}\\_%", escape="\\"))
                .order_by(BacktestResultRecord.created_at.desc(), BacktestResultRecord.id.desc())
                .limit(limit)
                .all()
            )
            return [_to_result(row) for row in rows]

    def history(
        self, league_id: str, season: str, target_type: str | None = None
    ) -> list[BacktestResult]:
        with session_scope(self.session_factory) as session:
            query = session.query(BacktestResultRecord).filter_by(league_id=league_id, season=season)
            if target_type:
                query = query.filter_by(target_type=target_type)
            rows = query.order_by(
                BacktestResultRecord.week_evaluated, BacktestResultRecord.target_type
            ).all()
            return [_to_result(row) for row in rows]

    def aggregate(self, segment_key: str | None = None, season: str | None = None) -> pd.DataFrame:
        """Mean metrics per target type.

        Returns:
            DataFrame indexed by target_type with brier_score, ece, ndcg,
            spearman and count columns (empty when nothing matches)
        """
        with session_scope(self.session_factory) as session:
            query = session.query(BacktestResultRecord)
            if segment_key:
                query = query.filter_by(segment_key=segment_key)
            if season:
                query = query.filter_by(season=season)
            records = [
                {
                    "target_type": row.target_type,
                    "brier_score": row.brier_score,
                    "ece": row.ece,
                    "ndcg": row.ndcg,
                    "spearman": row.spearman,
                }
                for row in query.all()
            ]

        columns = ["brier_score", "ece", "ndcg", "spearman", "count"]
        if not records:
            return pd.DataFrame(columns=columns)

        df = pd.DataFrame(records)
        summary = df.groupby("target_type").agg(
            brier_score=("brier_score", "mean"),
            ece=("ece", "mean"),
            ndcg=("ndcg", "mean"),
            spearman=("spearman", "mean"),
            count=("brier_score", "size"),
        )
        return summary.round(4)


class LearnedParamsRepository:
    """Learning cycle history; the latest APPLIED row is the active value."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def _latest_applied(self, session, segment_key: str) -> LearnedParamsRecord | None:
        return (
            session.query(LearnedParamsRecord)
            .filter_by(segment_key=segment_key, status=STATUS_APPLIED)
            .order_by(LearnedParamsRecord.created_at.desc(), LearnedParamsRecord.id.desc())
            .first()
        )

    def active(self, segment_key: str, league_cls: str) -> LearnedParams:
        """Active parameters for a segment, or the class defaults."""
        with session_scope(self.session_factory) as session:
            row = self._latest_applied(session, segment_key)
            if row is None:
                return defaults_for_class(league_cls)
            return LearnedParams(
                injury_influence=row.injury_influence,
                starter_bench_split=row.starter_bench_split,
                luck_dampening=row.luck_dampening,
                future_capital_influence=row.future_capital_influence,
            )

    def has_cycle(self, segment_key: str, cycle_start: date) -> bool:
        with session_scope(self.session_factory) as session:
            return (
                session.query(LearnedParamsRecord.id)
                .filter_by(segment_key=segment_key, cycle_start=cycle_start)
                .first()
                is not None
            )

    def record(
        self,
        segment_key: str,
        league_cls: str,
        status: str,
        params: LearnedParams,
        cycle_start: date,
        baseline_score: float | None = None,
        learned_score: float | None = None,
        sample_size: int = 0,
        method: str | None = None,
        notes: str | None = None,
    ) -> int:
        with session_scope(self.session_factory) as session:
            row = LearnedParamsRecord(
                segment_key=segment_key,
                league_class=league_cls,
                status=status,
                cycle_start=cycle_start,
                baseline_score=baseline_score,
                learned_score=learned_score,
                sample_size=sample_size,
                method=method,
                notes=notes,
                **params.as_dict(),
            )
            session.add(row)
            session.flush()
            row_id = row.id
        logger.info(f"Recorded {status} params for {segment_key} (cycle {cycle_start})")
        return row_id

    def rollback(self, segment_key: str) -> bool:
        """Retire the active APPLIED row so the previous one (or defaults) applies."""
        with session_scope(self.session_factory) as session:
            row = self._latest_applied(session, segment_key)
            if row is None:
                return False
            row.status = STATUS_ROLLED_BACK
        logger.warning(f"Rolled back learned params for {segment_key}")
        return True

    def history(self, segment_key: str, limit: int = 20) -> list[dict[str, Any]]:
        with session_scope(self.session_factory) as session:
            rows = (
                session.query(LearnedParamsRecord)
                .filter_by(segment_key=segment_key)
                .order_by(LearnedParamsRecord.created_at.desc(), LearnedParamsRecord.id.desc())
                .limit(limit)
                .all()
            )
            return [
                {
                    "status": row.status,
                    "cycle_start": row.cycle_start,
                    "params": {
                        "injury_influence": row.injury_influence,
                        "starter_bench_split": row.starter_bench_split,
                        "luck_dampening": row.luck_dampening,
                        "future_capital_influence": row.future_capital_influence,
                    },
                    "baseline_score": row.baseline_score,
                    "learned_score": row.learned_score,
                    "method": row.method,
                    "notes": row.notes,
                }
                for row in rows
            ]
