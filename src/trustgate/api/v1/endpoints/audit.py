"""Audit log endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Query

from trustgate.api.v1.dependencies import CurrentUserDep, GovernanceDep, SessionDep
from trustgate.schemas import AuditEntryResponse, AuditPageResponse

router = APIRouter(prefix="/audit-log", tags=["audit"])


@router.get("", response_model=AuditPageResponse)
async def list_audit_log(
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
    page: int = Query(1),
    page_size: int = Query(20),
    subject_user_id: int | None = Query(None),
) -> AuditPageResponse:
    """Role changes, newest first."""
    result = governance.audit.list_entries(
        db,
        current_user,
        page=page,
        page_size=page_size,
        subject_user_id=subject_user_id,
    )
    return AuditPageResponse(
        entries=[AuditEntryResponse.model_validate(entry) for entry in result.entries],
        page=result.page,
        page_size=result.page_size,
        total=result.total,
    )
