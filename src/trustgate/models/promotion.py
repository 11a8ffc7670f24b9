# src/trustgate/models/promotion.py
"""Role promotion requests and the endorsements that approve them."""

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from trustgate.db.session import Base
from trustgate.db.time import utcnow

PROMOTION_STATUS_PENDING = "pending"
PROMOTION_STATUS_APPROVED = "approved"
PROMOTION_STATUS_REJECTED = "rejected"

PROMOTION_MIN_JUSTIFICATION_LENGTH = 50
ENDORSEMENT_MIN_JUSTIFICATION_LENGTH = 20


class PromotionRequest(Base):
    """A user's request to move up the role ladder."""

    __tablename__ = "promotion_request"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_promotion_request_status",
        ),
        CheckConstraint(
            "required_moderator_endorsements >= 1 AND required_admin_endorsements >= 1",
            name="ck_promotion_request_quorum",
        ),
        # Only one pending request per user.
        Index(
            "uq_promotion_request_pending_per_user",
            "user_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id"), nullable=False, index=True
    )
    current_role: Mapped[str] = mapped_column(String(20), nullable=False)
    requested_role: Mapped[str] = mapped_column(String(20), nullable=False)
    justification: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PROMOTION_STATUS_PENDING
    )
    # Snapshot of the quorum at request time.
    required_moderator_endorsements: Mapped[int] = mapped_column(Integer, nullable=False)
    required_admin_endorsements: Mapped[int] = mapped_column(Integer, nullable=False)
    resolved_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("user_account.id"), nullable=True
    )
    resolution_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class Endorsement(Base):
    """Support for a promotion request from a moderator- or admin-tier account."""

    __tablename__ = "endorsement"
    __table_args__ = (
        UniqueConstraint("request_id", "endorser_id", name="uq_endorsement_request_endorser"),
        CheckConstraint(
            "endorser_tier IN ('moderator', 'admin')",
            name="ck_endorsement_tier",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    request_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("promotion_request.id", ondelete="CASCADE"), nullable=False
    )
    endorser_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id"), nullable=False
    )
    # Role held by the endorser when endorsing; decides the quorum bucket.
    endorser_tier: Mapped[str] = mapped_column(String(20), nullable=False)
    justification: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
