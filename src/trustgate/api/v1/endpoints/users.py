"""User endpoints: identity and direct role changes."""

from __future__ import annotations

from fastapi import APIRouter

from trustgate.api.v1.dependencies import CurrentUserDep, GovernanceDep, SessionDep
from trustgate.schemas import AuditEntryResponse, RoleChange, UserResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def read_me(current_user: CurrentUserDep) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.post("/{user_id}/role", response_model=AuditEntryResponse)
async def set_role(
    user_id: int,
    payload: RoleChange,
    current_user: CurrentUserDep,
    db: SessionDep,
    governance: GovernanceDep,
) -> AuditEntryResponse:
    """Admin role change; returns the audit entry written with it."""
    entry = governance.promotions.set_role(db, current_user, user_id, payload.role, payload.reason)
    return AuditEntryResponse.model_validate(entry)
