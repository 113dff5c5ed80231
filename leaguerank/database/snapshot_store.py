"""Snapshot store: persisted weekly rankings keyed by league, season, week and roster."""

import logging
from typing import Protocol

from sqlalchemy import func

from ..engine.composite import SubScores
from ..engine.records import SnapshotMetrics, StoredSnapshot, TeamScoreRecord
from .connection import SessionFactory, session_scope
from .models import RankingSnapshot

logger = logging.getLogger(__name__)


class SnapshotStore(Protocol):
    def get(self, league_id: str, season: str, week: int) -> dict[int, StoredSnapshot]: ...

    def previous(self, league_id: str, season: str, week: int) -> dict[int, StoredSnapshot]: ...

    def upsert(
        self,
        league_id: str,
        season: str,
        week: int,
        teams: list[TeamScoreRecord],
        segment_key: str | None = None,
    ) -> int: ...

    def season_end(self, league_id: str, season: str, min_week: int) -> dict[int, StoredSnapshot]: ...

    def weeks(self, league_id: str, season: str) -> list[int]: ...

    def invalidate(self, league_id: str, season: str, week: int) -> int: ...


def _metrics_payload(team: TeamScoreRecord) -> dict:
    return {
        "justification": team.metrics.as_dict(),
        "scores": team.scores.as_dict(),
        "capped": team.anti_gaming.capped,
        "confidence": team.data_quality.confidence,
    }


def _to_snapshot(row: RankingSnapshot) -> StoredSnapshot:
    payload = row.metrics or {}
    scores = payload.get("scores")
    return StoredSnapshot(
        roster_id=row.roster_id,
        week=row.week,
        rank=row.rank,
        composite=row.composite,
        expected_wins=row.expected_wins or 0.0,
        luck_delta=row.luck_delta or 0.0,
        metrics=SnapshotMetrics.from_dict(payload.get("justification")),
        scores=SubScores.from_dict(scores) if scores else None,
    )


class SqlSnapshotStore:
    """SnapshotStore backed by the ranking_snapshots table.

    Every write for a league week happens in a single transaction, so readers
    never observe a partially written week.
    """

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def get(self, league_id: str, season: str, week: int) -> dict[int, StoredSnapshot]:
        with session_scope(self.session_factory) as session:
            rows = (
                session.query(RankingSnapshot)
                .filter_by(league_id=league_id, season=season, week=week)
                .all()
            )
            return {row.roster_id: _to_snapshot(row) for row in rows}

    def previous(self, league_id: str, season: str, week: int) -> dict[int, StoredSnapshot]:
        """Snapshots of the latest stored week before `week` (empty on cold start)."""
        with session_scope(self.session_factory) as session:
            prior_week = (
                session.query(func.max(RankingSnapshot.week))
                .filter(
                    RankingSnapshot.league_id == league_id,
                    RankingSnapshot.season == season,
                    RankingSnapshot.week < week,
                )
                .scalar()
            )
        if prior_week is None:
            return {}
        return self.get(league_id, season, prior_week)

    def upsert(
        self,
        league_id: str,
        season: str,
        week: int,
        teams: list[TeamScoreRecord],
        segment_key: str | None = None,
    ) -> int:
        with session_scope(self.session_factory) as session:
            existing = {
                row.roster_id: row
                for row in session.query(RankingSnapshot)
                .filter_by(league_id=league_id, season=season, week=week)
                .all()
            }
            for team in teams:
                row = existing.get(team.roster_id)
                if row is None:
                    row = RankingSnapshot(
                        league_id=league_id, season=season, week=week, roster_id=team.roster_id
                    )
                    session.add(row)
                row.rank = team.rank
                row.composite = team.composite
                row.composite_rank = team.composite_rank
                row.expected_wins = team.expected_wins
                row.luck_delta = team.luck_delta
                row.metrics = _metrics_payload(team)
                row.segment_key = segment_key

        logger.info(f"Stored {len(teams)} snapshots for league {league_id} {season} week {week}")
        return len(teams)

    def season_end(self, league_id: str, season: str, min_week: int) -> dict[int, StoredSnapshot]:
        """Latest snapshot per roster among weeks >= min_week."""
        with session_scope(self.session_factory) as session:
            rows = (
                session.query(RankingSnapshot)
                .filter(
                    RankingSnapshot.league_id == league_id,
                    RankingSnapshot.season == season,
                    RankingSnapshot.week >= min_week,
                )
                .order_by(RankingSnapshot.week.desc())
                .all()
            )
            latest: dict[int, StoredSnapshot] = {}
            for row in rows:
                if row.roster_id not in latest:
                    latest[row.roster_id] = _to_snapshot(row)
            return latest

    def weeks(self, league_id: str, season: str) -> list[int]:
        with session_scope(self.session_factory) as session:
            rows = (
                session.query(RankingSnapshot.week)
                .filter_by(league_id=league_id, season=season)
                .distinct()
                .order_by(RankingSnapshot.week)
                .all()
            )
            return [week for (week,) in rows]

    def invalidate(self, league_id: str, season: str, week: int) -> int:
        with session_scope(self.session_factory) as session:
            deleted = (
                session.query(RankingSnapshot)
                .filter_by(league_id=league_id, season=season, week=week)
                .delete()
            )
        logger.info(f"Invalidated {deleted} snapshots for league {league_id} {season} week {week}")
        return deleted
