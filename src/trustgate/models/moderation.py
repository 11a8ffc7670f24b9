# src/trustgate/models/moderation.py
"""Append-only record of every moderation pass over a content item."""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from trustgate.db.session import Base
from trustgate.db.time import utcnow

OUTCOME_ALLOW = "allow"
OUTCOME_BLOCK = "block"


class ModerationDecision(Base):
    """Classification and originality verdicts plus the composite outcome.

    Rows are never updated; re-running moderation writes a new row.
    """

    __tablename__ = "moderation_decision"
    __table_args__ = (
        CheckConstraint("outcome IN ('allow', 'block')", name="ck_moderation_decision_outcome"),
        Index("ix_moderation_decision_content_created", "content_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("content_item.id"), nullable=False
    )
    content_version_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("content_version.id"), nullable=False
    )
    outcome: Mapped[str] = mapped_column(String(10), nullable=False)

    # Classification verdict.
    classification_available: Mapped[bool] = mapped_column(Boolean, nullable=False)
    classification_backend: Mapped[str | None] = mapped_column(String(50), nullable=True)
    flagged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    flagged_categories: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    category_scores: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # Originality verdict.
    originality_available: Mapped[bool] = mapped_column(Boolean, nullable=False)
    similarity_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    matched_source_ids: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    is_plagiarized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    originality_details: Mapped[str | None] = mapped_column(Text, nullable=True)

    warnings: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    # Set when an upstream was unavailable and the pass failed open.
    diagnostic_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
