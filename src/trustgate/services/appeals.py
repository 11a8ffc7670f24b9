"""Appeal workflow: an author disputes a moderation decision."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from trustgate.core.errors import (
    ForbiddenError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from trustgate.db.time import utcnow
from trustgate.db.transaction import atomic
from trustgate.models import Appeal, ContentItem, ModerationDecision, User
from trustgate.models.appeal import (
    APPEAL_MIN_REASON_LENGTH,
    APPEAL_STATUS_APPROVED,
    APPEAL_STATUS_PENDING,
    APPEAL_STATUS_REJECTED,
    APPEAL_STATUS_REVISION_REQUESTED,
)
from trustgate.models.content import CONTENT_STATUS_FLAGGED, CONTENT_STATUS_PUBLISHED
from trustgate.services.content import ContentService
from trustgate.services.events import EVENT_APPEAL_RESOLVED, GovernanceEvents

logger = logging.getLogger(__name__)

RESOLUTION_STATUSES = frozenset(
    {APPEAL_STATUS_APPROVED, APPEAL_STATUS_REJECTED, APPEAL_STATUS_REVISION_REQUESTED}
)
DUPLICATE_PENDING_MESSAGE = "You already have a pending appeal for this content"


def still_disputed(db: Session, appeal: Appeal, content: ContentItem) -> bool:
    """True while the content's current version is the one the appeal disputes."""
    if appeal.decision_id is None:
        return True
    decision = db.get(ModerationDecision, appeal.decision_id)
    return decision is None or decision.content_version_id == content.current_version_id


def apply_appeal_resolution(
    db: Session,
    events: GovernanceEvents,
    appeal: Appeal,
    status: str,
    *,
    resolved_by: int | None,
    response: str | None,
) -> None:
    """Move a pending appeal to ``status`` and apply its exit effects.

    Shared by direct admin resolution and jury conclusion; the caller owns
    the transaction and has already checked that the appeal is pending.
    """
    content = (
        db.query(ContentItem)
        .filter(ContentItem.id == appeal.content_id)
        .with_for_update()
        .first()
    )
    appeal.status = status
    appeal.admin_response = response
    appeal.resolved_by = resolved_by
    appeal.resolved_at = utcnow()

    if status == APPEAL_STATUS_APPROVED and content is not None:
        content.status = CONTENT_STATUS_PUBLISHED
    elif status == APPEAL_STATUS_REJECTED and content is not None:
        # A newer version that passed moderation on its own stays published.
        if still_disputed(db, appeal, content):
            content.status = CONTENT_STATUS_FLAGGED
    elif status == APPEAL_STATUS_REVISION_REQUESTED and content is not None:
        appeal.revision_base_version = ContentService.current_version_number(db, content)

    events.emit(db, EVENT_APPEAL_RESOLVED, appeal.user_id, f"appeal {appeal.id} {status}")
    logger.info("Appeal %s resolved as %s", appeal.id, status)


class AppealWorkflow:
    """Open, resolve and resubmit appeals."""

    def __init__(self, events: GovernanceEvents) -> None:
        self.events = events

    def open_appeal(self, db: Session, actor: User, content_id: int, reason: str) -> Appeal:
        reason = (reason or "").strip()
        if len(reason) < APPEAL_MIN_REASON_LENGTH:
            raise ValidationError(
                f"Appeal reason must be at least {APPEAL_MIN_REASON_LENGTH} characters"
            )

        with atomic(db, conflict_message=DUPLICATE_PENDING_MESSAGE):
            content = (
                db.query(ContentItem)
                .filter(ContentItem.id == content_id)
                .with_for_update()
                .first()
            )
            if content is None:
                raise NotFoundError("Content not found")
            if content.author_id != actor.id:
                raise ForbiddenError("Only the author can appeal this content")
            if content.status != CONTENT_STATUS_FLAGGED:
                raise PreconditionError("Only flagged content can be appealed")

            previous = self._find_existing(db, content.id, actor.id)
            statuses = {appeal.status for appeal in previous}
            if APPEAL_STATUS_PENDING in statuses:
                raise PreconditionError(DUPLICATE_PENDING_MESSAGE)
            if APPEAL_STATUS_REJECTED in statuses:
                raise PreconditionError("Your previous appeal for this content was rejected")
            if APPEAL_STATUS_REVISION_REQUESTED in statuses:
                raise PreconditionError(
                    "A revision was requested on your appeal; revise the content and resubmit it"
                )

            decision_id = (
                db.query(ModerationDecision.id)
                .filter(ModerationDecision.content_id == content.id)
                .order_by(ModerationDecision.created_at.desc(), ModerationDecision.id.desc())
                .limit(1)
                .scalar()
            )
            appeal = Appeal(
                content_id=content.id,
                user_id=actor.id,
                decision_id=decision_id,
                reason=reason,
                status=APPEAL_STATUS_PENDING,
            )
            db.add(appeal)
            db.flush()

        db.refresh(appeal)
        logger.info("Appeal %s opened on content %s", appeal.id, content_id)
        return appeal

    @staticmethod
    def _find_existing(db: Session, content_id: int, user_id: int) -> list[Appeal]:
        return (
            db.query(Appeal)
            .filter(Appeal.content_id == content_id, Appeal.user_id == user_id)
            .all()
        )

    def resolve_appeal(
        self,
        db: Session,
        actor: User,
        appeal_id: int,
        status: str,
        admin_response: str | None = None,
    ) -> Appeal:
        if not actor.is_admin:
            raise ForbiddenError("Only admins can resolve appeals")
        if status not in RESOLUTION_STATUSES:
            raise ValidationError(f"Invalid resolution status: {status}")
        response = (admin_response or "").strip() or None
        if status == APPEAL_STATUS_REVISION_REQUESTED and response is None:
            raise ValidationError("A response is required when requesting a revision")

        with atomic(db):
            appeal = self._lock_appeal(db, appeal_id)
            if appeal.status != APPEAL_STATUS_PENDING:
                raise PreconditionError("Appeal is not pending")
            if appeal.deliberation is not None and not appeal.deliberation.concluded:
                raise PreconditionError("Appeal is under jury review")
            apply_appeal_resolution(
                db, self.events, appeal, status, resolved_by=actor.id, response=response
            )

        db.refresh(appeal)
        return appeal

    def resubmit_appeal(self, db: Session, actor: User, appeal_id: int) -> Appeal:
        with atomic(db, conflict_message=DUPLICATE_PENDING_MESSAGE):
            appeal = self._lock_appeal(db, appeal_id)
            if appeal.user_id != actor.id:
                raise ForbiddenError("Only the appellant can resubmit this appeal")
            if appeal.status != APPEAL_STATUS_REVISION_REQUESTED:
                raise PreconditionError("Only appeals awaiting revision can be resubmitted")

            content = db.get(ContentItem, appeal.content_id)
            current = (
                ContentService.current_version_number(db, content) if content is not None else 0
            )
            if current <= (appeal.revision_base_version or 0):
                raise PreconditionError("Revise the content before resubmitting the appeal")

            appeal.status = APPEAL_STATUS_PENDING
            appeal.reason = f"Resubmitted after revision (content version {current})"
            appeal.resolved_by = None
            appeal.resolved_at = None
            appeal.revision_base_version = None
            db.flush()

        db.refresh(appeal)
        logger.info("Appeal %s resubmitted", appeal.id)
        return appeal

    @staticmethod
    def _lock_appeal(db: Session, appeal_id: int) -> Appeal:
        appeal = db.query(Appeal).filter(Appeal.id == appeal_id).with_for_update().first()
        if appeal is None:
            raise NotFoundError("Appeal not found")
        return appeal

    @staticmethod
    def list_appeals(db: Session, actor: User, status: str | None = None) -> list[Appeal]:
        query = db.query(Appeal)
        if not actor.is_staff:
            query = query.filter(Appeal.user_id == actor.id)
        if status is not None:
            query = query.filter(Appeal.status == status)
        return query.order_by(Appeal.created_at.desc(), Appeal.id.desc()).all()

    @staticmethod
    def get_appeal(db: Session, actor: User, appeal_id: int) -> Appeal:
        appeal = db.get(Appeal, appeal_id)
        if appeal is None:
            raise NotFoundError("Appeal not found")
        if appeal.user_id != actor.id and not actor.is_staff:
            raise ForbiddenError("You cannot view this appeal")
        return appeal
