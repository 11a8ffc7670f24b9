"""Promotion request and endorsement endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from trustgate.api.v1.dependencies import CurrentUserDep, GovernanceDep, SessionDep
from trustgate.schemas import (
    EndorsementCreate,
    EndorsementResponse,
    EndorsementResultResponse,
    PromotionCreate,
    PromotionReject,
    PromotionResponse,
)

router = APIRouter(prefix="/promotions", tags=["promotions"])


@router.post("", response_model=PromotionResponse, status_code=status.HTTP_201_CREATED)
async def request_promotion(
    payload: PromotionCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> PromotionResponse:
    request = governance.promotions.request_promotion(
        db, current_user, payload.requested_role, payload.justification
    )
    return PromotionResponse.model_validate(request)


@router.get("/mine", response_model=list[PromotionResponse])
async def list_my_promotions(
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> list[PromotionResponse]:
    requests = governance.promotions.list_mine(db, current_user)
    return [PromotionResponse.model_validate(request) for request in requests]


@router.get("/pending", response_model=list[PromotionResponse])
async def list_pending_promotions(
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> list[PromotionResponse]:
    """Oldest pending requests first, for moderators and admins."""
    requests = governance.promotions.list_pending(db, current_user)
    return [PromotionResponse.model_validate(request) for request in requests]


@router.post("/{request_id}/endorsements", response_model=EndorsementResultResponse)
async def endorse(
    request_id: int,
    payload: EndorsementCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> EndorsementResultResponse:
    result = governance.promotions.endorse(db, current_user, request_id, payload.justification)
    return EndorsementResultResponse.model_validate(result)


@router.post("/{request_id}/reject", response_model=PromotionResponse)
async def reject_promotion(
    request_id: int,
    payload: PromotionReject,
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> PromotionResponse:
    request = governance.promotions.reject(db, current_user, request_id, payload.notes)
    return PromotionResponse.model_validate(request)


@router.get("/{request_id}/endorsements", response_model=list[EndorsementResponse])
async def list_endorsements(
    request_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> list[EndorsementResponse]:
    endorsements = governance.promotions.endorsements_for(db, current_user, request_id)
    return [EndorsementResponse.model_validate(endorsement) for endorsement in endorsements]
