# src/trustgate/models/appeal.py
"""Disputes raised by authors against a moderation decision."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trustgate.db.session import Base
from trustgate.db.time import utcnow

if TYPE_CHECKING:
    from trustgate.models.jury import JuryDeliberation

APPEAL_STATUS_PENDING = "pending"
APPEAL_STATUS_APPROVED = "approved"
APPEAL_STATUS_REJECTED = "rejected"
APPEAL_STATUS_REVISION_REQUESTED = "revision_requested"

APPEAL_MIN_REASON_LENGTH = 20


class Appeal(Base):
    """State machine for one author's dispute of one content item."""

    __tablename__ = "appeal"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'revision_requested')",
            name="ck_appeal_status",
        ),
        # At most one pending appeal per (content, user), enforced by the store.
        Index(
            "uq_appeal_pending_per_content_user",
            "content_id",
            "user_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("content_item.id"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id"), nullable=False, index=True
    )
    decision_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("moderation_decision.id"), nullable=True
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=APPEAL_STATUS_PENDING
    )
    admin_response: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolved_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("user_account.id"), nullable=True
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # Content version a revision was requested against; resubmission needs a newer one.
    revision_base_version: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    deliberation: Mapped[JuryDeliberation | None] = relationship(
        "JuryDeliberation",
        back_populates="appeal",
        uselist=False,
    )

    @property
    def jury_decision(self) -> str | None:
        """Final jury decision, if a deliberation concluded for this appeal."""
        if self.deliberation is None:
            return None
        return self.deliberation.final_decision
