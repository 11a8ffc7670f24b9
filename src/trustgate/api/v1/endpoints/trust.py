"""Trust queue and score endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query

from trustgate.api.v1.dependencies import CurrentUserDep, GovernanceDep, SessionDep
from trustgate.schemas import QueueStatusResponse, SweepReportResponse, TrustScoreResponse

router = APIRouter(prefix="/trust", tags=["trust"])


@router.get("/queue", response_model=QueueStatusResponse)
async def queue_status(
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> QueueStatusResponse:
    return QueueStatusResponse.model_validate(governance.trust.queue_status(db, current_user))


@router.post("/queue/process", response_model=SweepReportResponse)
async def process_queue(
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
    limit: int | None = Query(None),
) -> SweepReportResponse:
    """Run one sweep now instead of waiting for the background worker."""
    report = governance.trust.process_queue(db, current_user, limit)
    return SweepReportResponse.model_validate(report)


@router.get("/users/{user_id}", response_model=TrustScoreResponse)
async def get_trust_score(
    user_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> TrustScoreResponse:
    return TrustScoreResponse.model_validate(governance.trust.get_score(db, user_id))
