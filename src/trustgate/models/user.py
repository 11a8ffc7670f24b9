# src/trustgate/models/user.py
"""SQLAlchemy model for platform accounts and their role."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from trustgate.db.session import Base
from trustgate.db.time import utcnow

ROLE_MEMBER = "member"
ROLE_RESEARCHER = "researcher"
ROLE_MODERATOR = "moderator"
ROLE_ADMIN = "admin"

# Ordered from least to most privileged.
ROLE_LADDER = (ROLE_MEMBER, ROLE_RESEARCHER, ROLE_MODERATOR, ROLE_ADMIN)
JUROR_ROLES = frozenset({ROLE_RESEARCHER, ROLE_MODERATOR, ROLE_ADMIN})
ENDORSER_TIERS = frozenset({ROLE_MODERATOR, ROLE_ADMIN})
STAFF_ROLES = frozenset({ROLE_MODERATOR, ROLE_ADMIN})


def role_rank(role: str) -> int:
    """Return the position of ``role`` on the ladder, -1 when unknown."""
    try:
        return ROLE_LADDER.index(role)
    except ValueError:
        return -1


class User(Base):
    """Account whose privilege level is governed by this engine."""

    __tablename__ = "user_account"
    __table_args__ = (
        CheckConstraint(
            "role IN ('member', 'researcher', 'moderator', 'admin')",
            name="ck_user_account_role",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=ROLE_MEMBER)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_staff(self) -> bool:
        """Return True for moderators and admins."""
        return self.role in STAFF_ROLES
