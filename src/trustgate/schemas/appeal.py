# src/trustgate/schemas/appeal.py
"""Appeal-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class AppealCreate(BaseModel):
    content_id: int
    reason: str = Field(..., max_length=5000, description="Why the decision is wrong")


class AppealResolve(BaseModel):
    status: Literal["approved", "rejected", "revision_requested"]
    admin_response: str | None = Field(None, max_length=5000)


class AppealResponse(BaseModel):
    """Schema for appeal information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    content_id: int
    user_id: int
    decision_id: int | None
    reason: str
    status: str
    admin_response: str | None
    resolved_by: int | None
    resolved_at: datetime | None
    created_at: datetime
    # "split" here means the rejection came from a tied jury.
    jury_decision: str | None = None
