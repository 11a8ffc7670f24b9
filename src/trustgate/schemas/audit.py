# src/trustgate/schemas/audit.py
"""Audit log Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class AuditEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    subject_user_id: int
    actor_id: int
    old_role: str
    new_role: str
    reason: str
    promotion_request_id: int | None
    created_at: datetime


class AuditPageResponse(BaseModel):
    """One page of the audit log, newest first."""

    entries: list[AuditEntryResponse]
    page: int
    page_size: int
    total: int
