"""Parameter learning endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from ...engine.phase import split_segment_key
from ...services import Services
from ..dependencies import get_services
from ..schemas import ActiveParamsResponse, LearnedParamsResponse, LearningOutcomeResponse

router = APIRouter(prefix="/learning", tags=["learning"])


@router.get("/{segment_key}", response_model=ActiveParamsResponse)
async def active_params(segment_key: str, services: Services = Depends(get_services)):
    league_cls, _ = split_segment_key(segment_key)
    active = services.params.active(segment_key, league_cls)
    return ActiveParamsResponse(
        segment_key=segment_key,
        active=LearnedParamsResponse.model_validate(active),
        history=services.params.history(segment_key),
    )


@router.post("/{segment_key}/run", response_model=LearningOutcomeResponse)
async def run_learning_cycle(
    segment_key: str,
    league_id: str | None = None,
    force: bool = False,
    services: Services = Depends(get_services),
):
    """Run one learning cycle. 409 when the segment already ran this cycle."""
    outcome = await services.learner.run_cycle(segment_key, league_id=league_id, force=force)
    if outcome is None:
        raise HTTPException(status_code=409, detail="Learning already ran for this cycle")
    return LearningOutcomeResponse.model_validate(outcome)


@router.post("/{segment_key}/rollback")
async def rollback_params(segment_key: str, services: Services = Depends(get_services)):
    if not services.params.rollback(segment_key):
        raise HTTPException(status_code=404, detail="No applied parameters to roll back")
    return {"segment_key": segment_key, "status": "ROLLED_BACK"}
