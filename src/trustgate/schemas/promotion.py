# src/trustgate/schemas/promotion.py
"""Promotion-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

RoleName = Literal["member", "researcher", "moderator", "admin"]


class PromotionCreate(BaseModel):
    requested_role: RoleName
    justification: str = Field(..., max_length=5000)


class EndorsementCreate(BaseModel):
    justification: str = Field(..., max_length=5000)


class PromotionReject(BaseModel):
    notes: str = Field(..., max_length=5000)


class RoleChange(BaseModel):
    role: RoleName
    reason: str = Field(..., max_length=2000)


class PromotionResponse(BaseModel):
    """Schema for promotion request information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    current_role: str
    requested_role: str
    justification: str
    status: str
    required_moderator_endorsements: int
    required_admin_endorsements: int
    resolved_by: int | None
    resolution_notes: str | None
    resolved_at: datetime | None
    created_at: datetime


class EndorsementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    request_id: int
    endorser_id: int
    endorser_tier: str
    justification: str
    created_at: datetime


class EndorsementResultResponse(BaseModel):
    """Endorsement plus the request's quorum progress."""

    model_config = ConfigDict(from_attributes=True)

    endorsement: EndorsementResponse
    request_status: str
    moderator_endorsements: int
    admin_endorsements: int
    required_moderator_endorsements: int
    required_admin_endorsements: int
    approved: bool
    audit_entry_id: int | None = None
