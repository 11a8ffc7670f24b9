"""Moderation endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from trustgate.api.v1.dependencies import CurrentUserDep, GovernanceDep, SessionDep
from trustgate.schemas import DecisionResponse, ModerationResultResponse

router = APIRouter(prefix="/moderation", tags=["moderation"])


@router.post("/submit/{content_id}", response_model=ModerationResultResponse)
async def submit_for_moderation(
    content_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> ModerationResultResponse:
    """Run classification and originality checks on the current version."""
    result = await governance.moderation.submit(db, current_user, content_id)
    content = governance.content.get(db, content_id)
    return ModerationResultResponse(
        outcome=result.outcome,
        warnings=result.warnings,
        content_status=content.status,
        decision=DecisionResponse.model_validate(result.decision),
    )


@router.get("/decisions/{content_id}", response_model=list[DecisionResponse])
async def list_decisions(
    content_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> list[DecisionResponse]:
    """Decision history for a content item, newest first."""
    decisions = governance.moderation.list_decisions(db, current_user, content_id)
    return [DecisionResponse.model_validate(decision) for decision in decisions]
