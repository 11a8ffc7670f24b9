# src/trustgate/models/audit.py
"""Write-once accountability trail of role changes."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from trustgate.db.session import Base
from trustgate.db.time import utcnow


class AuditEntry(Base):
    """One completed role transition.

    Inserted in the same transaction as the role mutation and never updated
    or deleted afterwards.
    """

    __tablename__ = "audit_entry"
    __table_args__ = (Index("ix_audit_entry_created", "created_at", "id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subject_user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id"), nullable=False, index=True
    )
    actor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id"), nullable=False
    )
    old_role: Mapped[str] = mapped_column(String(20), nullable=False)
    new_role: Mapped[str] = mapped_column(String(20), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    # Set when the change came from an approved promotion; one entry per request.
    promotion_request_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("promotion_request.id"), nullable=True, unique=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
