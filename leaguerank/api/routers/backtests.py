"""Backtest endpoints."""

from fastapi import APIRouter, Depends, Query

from ...services import Services
from ..dependencies import get_services
from ..schemas import BacktestAggregateResponse, BacktestResultResponse

router = APIRouter(tags=["backtests"])


@router.post("/leagues/{league_id}/backtests", response_model=list[BacktestResultResponse])
async def run_backtest_sweep(
    league_id: str,
    season: str = Query(..., description="Season of the stored snapshots"),
    segment_key: str = Query(..., description="League segment, e.g. DYN_SF_inseason"),
    max_week: int | None = Query(None, ge=1),
    services: Services = Depends(get_services),
):
    """Evaluate every stored week of a season against all targets and persist the results."""
    results = await services.evaluator.run_sweep(league_id, season, segment_key, max_week)
    return [BacktestResultResponse.model_validate(r) for r in results]


@router.get("/leagues/{league_id}/backtests", response_model=list[BacktestResultResponse])
async def backtest_history(
    league_id: str,
    season: str,
    target: str | None = None,
    services: Services = Depends(get_services),
):
    results = services.backtests.history(league_id, season, target)
    return [BacktestResultResponse.model_validate(r) for r in results]


@router.get("/backtests/aggregate", response_model=list[BacktestAggregateResponse])
async def backtest_aggregate(
    segment_key: str | None = None,
    season: str | None = None,
    services: Services = Depends(get_services),
):
    """Mean metrics per target type."""
    summary = services.backtests.aggregate(segment_key, season)
    return [
        BacktestAggregateResponse(target_type=target, **row)
        for target, row in summary.to_dict(orient="index").items()
    ]
