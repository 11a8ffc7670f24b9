"""Role mutation and the append-only audit trail that records it."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.orm import Session

from trustgate.core.errors import ForbiddenError, ValidationError
from trustgate.models import AuditEntry, User
from trustgate.services.events import EVENT_ROLE_CHANGED, GovernanceEvents

logger = logging.getLogger(__name__)

AUDIT_MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class AuditPage:
    entries: list[AuditEntry]
    page: int
    page_size: int
    total: int


def apply_role_change(
    db: Session,
    events: GovernanceEvents,
    subject: User,
    new_role: str,
    *,
    actor_id: int,
    reason: str,
    promotion_request_id: int | None = None,
) -> AuditEntry:
    """Change ``subject``'s role and write its audit entry.

    This is the only place a role is mutated. The caller owns the
    transaction, so the role, the entry and any listener writes commit
    together or not at all.
    """
    entry = AuditEntry(
        subject_user_id=subject.id,
        actor_id=actor_id,
        old_role=subject.role,
        new_role=new_role,
        reason=reason,
        promotion_request_id=promotion_request_id,
    )
    subject.role = new_role
    db.add(entry)
    db.flush()
    events.emit(db, EVENT_ROLE_CHANGED, subject.id, f"role changed to {new_role}")
    logger.info(
        "Role of user %s changed %s -> %s by %s",
        subject.id,
        entry.old_role,
        new_role,
        actor_id,
    )
    return entry


class AuditLog:
    """Read side of the audit trail."""

    @staticmethod
    def list_entries(
        db: Session,
        actor: User,
        *,
        page: int = 1,
        page_size: int = 20,
        subject_user_id: int | None = None,
    ) -> AuditPage:
        if not actor.is_staff:
            raise ForbiddenError("Only moderators and admins can read the audit log")
        if page < 1:
            raise ValidationError("page must be at least 1")
        if not 1 <= page_size <= AUDIT_MAX_PAGE_SIZE:
            raise ValidationError(f"page_size must be between 1 and {AUDIT_MAX_PAGE_SIZE}")

        query = db.query(AuditEntry)
        count_query = db.query(func.count(AuditEntry.id))
        if subject_user_id is not None:
            query = query.filter(AuditEntry.subject_user_id == subject_user_id)
            count_query = count_query.filter(AuditEntry.subject_user_id == subject_user_id)

        entries = (
            query.order_by(AuditEntry.created_at.desc(), AuditEntry.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return AuditPage(
            entries=entries,
            page=page,
            page_size=page_size,
            total=count_query.scalar() or 0,
        )
