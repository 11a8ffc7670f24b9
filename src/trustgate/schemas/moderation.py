# src/trustgate/schemas/moderation.py
"""Moderation-related Pydantic schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class DecisionResponse(BaseModel):
    """One moderation pass over a content version."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    content_id: int
    content_version_id: int
    outcome: str
    classification_available: bool
    classification_backend: str | None
    flagged: bool
    flagged_categories: list[str]
    category_scores: dict[str, Any]
    originality_available: bool
    similarity_score: float
    matched_source_ids: list[int]
    is_plagiarized: bool
    originality_details: str | None
    warnings: list[str]
    diagnostic_note: str | None
    created_at: datetime


class ModerationResultResponse(BaseModel):
    """Outcome of submitting content for moderation."""

    outcome: str
    warnings: list[str]
    content_status: str
    decision: DecisionResponse
