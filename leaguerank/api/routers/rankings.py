"""Ranking endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from ...exceptions import InsufficientSampleError, LeagueNotFoundError
from ...services import Services
from ..dependencies import get_services
from ..schemas import RankingResponse, TeamRankingResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leagues", tags=["rankings"])


@router.get("/{league_id}/rankings", response_model=RankingResponse)
async def rank_league(
    league_id: str,
    week: int | None = Query(None, ge=0, description="Override the league's current week"),
    persist: bool = Query(True, description="Store snapshots for next week's anti-gaming pass"),
    services: Services = Depends(get_services),
):
    """Compute composite rankings for a league week."""
    try:
        result = await services.engine.rank_league(league_id, week=week, persist=persist)
    except LeagueNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except InsufficientSampleError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return RankingResponse.model_validate(result)


@router.get("/{league_id}/rankings/{roster_id}/explain", response_model=TeamRankingResponse)
async def explain_team(
    league_id: str,
    roster_id: int,
    week: int | None = Query(None, ge=0),
    services: Services = Depends(get_services),
):
    """Score breakdown, anti-gaming checks and data quality for one team (not persisted)."""
    try:
        result = await services.engine.rank_league(league_id, week=week, persist=False)
    except LeagueNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except InsufficientSampleError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    for team in result.teams:
        if team.roster_id == roster_id:
            return TeamRankingResponse.model_validate(team)
    raise HTTPException(status_code=404, detail=f"Roster {roster_id} not in league {league_id}")


@router.get("/{league_id}/rankings/{season}/{week}")
async def stored_rankings(
    league_id: str,
    season: str,
    week: int,
    services: Services = Depends(get_services),
):
    """Snapshots persisted for a past league week, ordered by rank."""
    snapshots = services.snapshots.get(league_id, season, week)
    if not snapshots:
        raise HTTPException(status_code=404, detail="No snapshots stored for that week")
    return [
        {
            "roster_id": s.roster_id,
            "rank": s.rank,
            "composite": s.composite,
            "expected_wins": s.expected_wins,
            "luck_delta": s.luck_delta,
            "metrics": s.metrics.as_dict() if s.metrics else None,
            "scores": s.scores.as_dict() if s.scores else None,
        }
        for s in sorted(snapshots.values(), key=lambda s: s.rank)
    ]
