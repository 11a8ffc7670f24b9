"""Jury deliberation endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from trustgate.api.v1.dependencies import CurrentUserDep, GovernanceDep, SessionDep
from trustgate.schemas import (
    DeliberationCreate,
    DeliberationResponse,
    DeliberationStatusResponse,
    JurorVoteCreate,
)

router = APIRouter(prefix="/jury", tags=["jury"])


@router.post(
    "/deliberations",
    response_model=DeliberationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def open_deliberation(
    payload: DeliberationCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> DeliberationResponse:
    deliberation = governance.jury.open_deliberation(
        db, current_user, payload.appeal_id, payload.required_votes
    )
    return DeliberationResponse.model_validate(deliberation)


@router.get("/deliberations/{deliberation_id}", response_model=DeliberationStatusResponse)
async def get_deliberation(
    deliberation_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> DeliberationStatusResponse:
    result = governance.jury.get_deliberation(db, current_user, deliberation_id)
    return DeliberationStatusResponse.model_validate(result)


@router.post(
    "/deliberations/{deliberation_id}/votes",
    response_model=DeliberationStatusResponse,
)
async def cast_vote(
    deliberation_id: int,
    payload: JurorVoteCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> DeliberationStatusResponse:
    result = governance.jury.cast_vote(
        db, current_user, deliberation_id, payload.vote, payload.reasoning
    )
    return DeliberationStatusResponse.model_validate(result)


@router.get("/cases", response_model=list[DeliberationResponse])
async def list_cases(
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> list[DeliberationResponse]:
    """Deliberations the caller was assigned to."""
    cases = governance.jury.list_cases(db, current_user)
    return [DeliberationResponse.model_validate(case) for case in cases]
