"""Appeal endpoints."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Query, status

from trustgate.api.v1.dependencies import CurrentUserDep, GovernanceDep, SessionDep
from trustgate.schemas import AppealCreate, AppealResolve, AppealResponse

router = APIRouter(prefix="/appeals", tags=["appeals"])

AppealStatusFilter = Literal["pending", "approved", "rejected", "revision_requested"]


@router.post("", response_model=AppealResponse, status_code=status.HTTP_201_CREATED)
async def open_appeal(
    payload: AppealCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> AppealResponse:
    appeal = governance.appeals.open_appeal(db, current_user, payload.content_id, payload.reason)
    return AppealResponse.model_validate(appeal)


@router.get("", response_model=list[AppealResponse])
async def list_appeals(
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
    status_filter: AppealStatusFilter | None = Query(None, alias="status"),
) -> list[AppealResponse]:
    """Own appeals for members; all appeals for moderators and admins."""
    appeals = governance.appeals.list_appeals(db, current_user, status_filter)
    return [AppealResponse.model_validate(appeal) for appeal in appeals]


@router.get("/{appeal_id}", response_model=AppealResponse)
async def get_appeal(
    appeal_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> AppealResponse:
    appeal = governance.appeals.get_appeal(db, current_user, appeal_id)
    return AppealResponse.model_validate(appeal)


@router.patch("/{appeal_id}", response_model=AppealResponse)
async def resolve_appeal(
    appeal_id: int,
    payload: AppealResolve,
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> AppealResponse:
    """Admin resolution without a jury."""
    appeal = governance.appeals.resolve_appeal(
        db, current_user, appeal_id, payload.status, payload.admin_response
    )
    return AppealResponse.model_validate(appeal)


@router.post("/{appeal_id}/resubmit", response_model=AppealResponse)
async def resubmit_appeal(
    appeal_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> AppealResponse:
    appeal = governance.appeals.resubmit_appeal(db, current_user, appeal_id)
    return AppealResponse.model_validate(appeal)
