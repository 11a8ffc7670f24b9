# src/trustgate/schemas/trust.py
"""Trust queue and score Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class TrustScoreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    score: int
    endorsements_received: int
    appeals_approved: int
    appeals_rejected: int
    blocked_decisions: int
    computed_at: datetime


class QueueStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pending: int
    claimed: int
    processed: int


class SweepReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    claimed: int
    users_recomputed: int
