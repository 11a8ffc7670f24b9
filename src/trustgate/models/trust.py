# src/trustgate/models/trust.py
"""Trust recalculation queue and the derived per-user trust score."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from trustgate.db.session import Base
from trustgate.db.time import utcnow


class TrustRecalcEntry(Base):
    """Request to recompute a user's trust score.

    A sweep claims entries by stamping ``claim_token``; processing only
    recomputes from source data, so reprocessing after a crash is harmless.
    """

    __tablename__ = "trust_recalc_queue"
    __table_args__ = (Index("ix_trust_recalc_queue_pending", "processed", "id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id"), nullable=False
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    enqueued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    claim_token: Mapped[str | None] = mapped_column(String(32), nullable=True)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class UserTrustScore(Base):
    """Latest derived trust metrics for a user."""

    __tablename__ = "user_trust_score"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id", ondelete="CASCADE"), primary_key=True
    )
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    endorsements_received: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    appeals_approved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    appeals_rejected: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    blocked_decisions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    computed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
