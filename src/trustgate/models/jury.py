# src/trustgate/models/jury.py
"""Jury deliberations resolving an appeal by independent votes."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trustgate.db.session import Base
from trustgate.db.time import utcnow

if TYPE_CHECKING:
    from trustgate.models.appeal import Appeal

VOTE_UPHOLD = "uphold"
VOTE_OVERTURN = "overturn"

DECISION_UPHOLD = "uphold"
DECISION_OVERTURN = "overturn"
DECISION_SPLIT = "split"

JUROR_MIN_REASONING_LENGTH = 20


class JuryDeliberation(Base):
    """One deliberation per appeal; terminal once ``final_decision`` is set."""

    __tablename__ = "jury_deliberation"
    __table_args__ = (
        CheckConstraint("required_votes >= 1", name="ck_jury_deliberation_required_votes"),
        CheckConstraint(
            "final_decision IS NULL OR final_decision IN ('uphold', 'overturn', 'split')",
            name="ck_jury_deliberation_final_decision",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    appeal_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("appeal.id"), nullable=False, unique=True
    )
    required_votes: Mapped[int] = mapped_column(Integer, nullable=False)
    final_decision: Mapped[str | None] = mapped_column(String(10), nullable=True)
    created_by: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    concluded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    appeal: Mapped[Appeal] = relationship("Appeal", back_populates="deliberation")

    @property
    def concluded(self) -> bool:
        return self.final_decision is not None


class JuryAssignment(Base):
    """A juror selected to vote on a deliberation."""

    __tablename__ = "jury_assignment"

    deliberation_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("jury_deliberation.id", ondelete="CASCADE"), primary_key=True
    )
    juror_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id"), primary_key=True
    )
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class JurorVote(Base):
    """Vote cast by a juror.

    The composite primary key prevents a juror from voting twice even under
    concurrent requests.
    """

    __tablename__ = "juror_vote"
    __table_args__ = (
        CheckConstraint("vote IN ('uphold', 'overturn')", name="ck_juror_vote_vote"),
    )

    deliberation_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("jury_deliberation.id", ondelete="CASCADE"), primary_key=True
    )
    juror_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id"), primary_key=True
    )
    vote: Mapped[str] = mapped_column(String(10), nullable=False)
    reasoning: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
