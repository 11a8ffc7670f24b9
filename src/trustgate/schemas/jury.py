# src/trustgate/schemas/jury.py
"""Jury-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class DeliberationCreate(BaseModel):
    appeal_id: int
    required_votes: int | None = Field(None, description="Defaults to the configured jury size")


class JurorVoteCreate(BaseModel):
    vote: Literal["uphold", "overturn"]
    reasoning: str = Field(..., max_length=5000)


class DeliberationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    appeal_id: int
    required_votes: int
    final_decision: str | None
    created_by: int
    created_at: datetime
    concluded_at: datetime | None


class DeliberationStatusResponse(BaseModel):
    """Vote counts and outcome of a deliberation."""

    model_config = ConfigDict(from_attributes=True)

    deliberation_id: int
    appeal_id: int
    required_votes: int
    votes_uphold: int
    votes_overturn: int
    total_votes: int
    final_decision: str | None
    concluded: bool
    appeal_status: str
