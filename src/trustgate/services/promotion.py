"""Promotion governance: requests, endorsement quorum, direct role changes."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.orm import Session

from trustgate.core.errors import (
    ForbiddenError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from trustgate.core.settings import settings
from trustgate.db.time import utcnow
from trustgate.db.transaction import atomic
from trustgate.models import AuditEntry, Endorsement, PromotionRequest, User
from trustgate.models.promotion import (
    ENDORSEMENT_MIN_JUSTIFICATION_LENGTH,
    PROMOTION_MIN_JUSTIFICATION_LENGTH,
    PROMOTION_STATUS_APPROVED,
    PROMOTION_STATUS_PENDING,
    PROMOTION_STATUS_REJECTED,
)
from trustgate.models.user import ENDORSER_TIERS, ROLE_ADMIN, ROLE_LADDER, ROLE_MODERATOR, role_rank
from trustgate.services.audit import apply_role_change
from trustgate.services.events import EVENT_ENDORSEMENT_CAST, GovernanceEvents

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EndorsementResult:
    """Endorsement plus the quorum state right after it was recorded."""

    endorsement: Endorsement
    request_status: str
    moderator_endorsements: int
    admin_endorsements: int
    required_moderator_endorsements: int
    required_admin_endorsements: int
    audit_entry_id: int | None = None

    @property
    def approved(self) -> bool:
        return self.request_status == PROMOTION_STATUS_APPROVED


class PromotionGovernance:
    """Endorsement-quorum promotions and admin role changes."""

    def __init__(self, events: GovernanceEvents) -> None:
        self.events = events

    def request_promotion(
        self, db: Session, actor: User, target_role: str, justification: str
    ) -> PromotionRequest:
        justification = (justification or "").strip()
        if len(justification) < PROMOTION_MIN_JUSTIFICATION_LENGTH:
            raise ValidationError(
                f"Justification must be at least {PROMOTION_MIN_JUSTIFICATION_LENGTH} characters"
            )
        if target_role not in ROLE_LADDER:
            raise ValidationError(f"Unknown role: {target_role}")
        quorum = settings.quorum_for(target_role)
        if quorum is None:
            raise ValidationError(f"Promotion to {target_role} is not available")
        required_moderators, required_admins = quorum

        message = "You already have a pending promotion request"
        with atomic(db, conflict_message=message):
            user = db.query(User).filter(User.id == actor.id).with_for_update().one()
            if role_rank(target_role) <= role_rank(user.role):
                raise PreconditionError(f"You already hold the {user.role} role")
            pending = (
                db.query(PromotionRequest.id)
                .filter(
                    PromotionRequest.user_id == user.id,
                    PromotionRequest.status == PROMOTION_STATUS_PENDING,
                )
                .first()
            )
            if pending is not None:
                raise PreconditionError(message)

            request = PromotionRequest(
                user_id=user.id,
                current_role=user.role,
                requested_role=target_role,
                justification=justification,
                status=PROMOTION_STATUS_PENDING,
                required_moderator_endorsements=required_moderators,
                required_admin_endorsements=required_admins,
            )
            db.add(request)
            db.flush()

        db.refresh(request)
        logger.info("Promotion request %s opened: user %s -> %s", request.id, actor.id, target_role)
        return request

    def endorse(
        self, db: Session, actor: User, request_id: int, justification: str
    ) -> EndorsementResult:
        justification = (justification or "").strip()
        if len(justification) < ENDORSEMENT_MIN_JUSTIFICATION_LENGTH:
            raise ValidationError(
                f"Justification must be at least {ENDORSEMENT_MIN_JUSTIFICATION_LENGTH} characters"
            )
        if actor.role not in ENDORSER_TIERS:
            raise ForbiddenError("Only moderators and admins can endorse promotion requests")

        audit_entry: AuditEntry | None = None
        with atomic(db, conflict_message="You have already endorsed this request"):
            request = self._lock_request(db, request_id)
            if request.user_id == actor.id:
                raise PreconditionError("You cannot endorse your own promotion request")
            if request.status != PROMOTION_STATUS_PENDING:
                raise PreconditionError("This promotion request is no longer pending")
            already = (
                db.query(Endorsement.id)
                .filter(Endorsement.request_id == request.id, Endorsement.endorser_id == actor.id)
                .first()
            )
            if already is not None:
                raise PreconditionError("You have already endorsed this request")

            endorsement = Endorsement(
                request_id=request.id,
                endorser_id=actor.id,
                endorser_tier=actor.role,
                justification=justification,
            )
            db.add(endorsement)
            db.flush()
            self.events.emit(
                db, EVENT_ENDORSEMENT_CAST, request.user_id, f"endorsed on request {request.id}"
            )

            moderators, admins = self._counts(db, request.id)
            if (
                moderators >= request.required_moderator_endorsements
                and admins >= request.required_admin_endorsements
            ):
                subject = db.query(User).filter(User.id == request.user_id).with_for_update().one()
                if role_rank(request.requested_role) <= role_rank(subject.role):
                    request.status = PROMOTION_STATUS_REJECTED
                    request.resolution_notes = (
                        f"Closed at quorum: user already holds the {subject.role} role"
                    )
                    request.resolved_at = utcnow()
                    logger.info(
                        "Promotion request %s closed: user %s already holds %s",
                        request.id,
                        subject.id,
                        subject.role,
                    )
                else:
                    audit_entry = apply_role_change(
                        db,
                        self.events,
                        subject,
                        request.requested_role,
                        actor_id=actor.id,
                        reason=f"Promotion request {request.id} approved by endorsement quorum",
                        promotion_request_id=request.id,
                    )
                    request.status = PROMOTION_STATUS_APPROVED
                    request.resolved_by = actor.id
                    request.resolved_at = utcnow()
                    logger.info("Promotion request %s approved", request.id)
            status = request.status
            required = (
                request.required_moderator_endorsements,
                request.required_admin_endorsements,
            )

        db.refresh(endorsement)
        return EndorsementResult(
            endorsement=endorsement,
            request_status=status,
            moderator_endorsements=moderators,
            admin_endorsements=admins,
            required_moderator_endorsements=required[0],
            required_admin_endorsements=required[1],
            audit_entry_id=audit_entry.id if audit_entry is not None else None,
        )

    def reject(self, db: Session, actor: User, request_id: int, notes: str) -> PromotionRequest:
        if not actor.is_admin:
            raise ForbiddenError("Only admins can reject promotion requests")
        notes = (notes or "").strip()
        if not notes:
            raise ValidationError("Rejection notes are required")

        with atomic(db):
            request = self._lock_request(db, request_id)
            if request.status != PROMOTION_STATUS_PENDING:
                raise PreconditionError("This promotion request is no longer pending")
            request.status = PROMOTION_STATUS_REJECTED
            request.resolution_notes = notes
            request.resolved_by = actor.id
            request.resolved_at = utcnow()

        db.refresh(request)
        logger.info("Promotion request %s rejected by %s", request_id, actor.id)
        return request

    def set_role(
        self, db: Session, actor: User, user_id: int, new_role: str, reason: str
    ) -> AuditEntry:
        if not actor.is_admin:
            raise ForbiddenError("Only admins can change roles")
        if new_role not in ROLE_LADDER:
            raise ValidationError(f"Unknown role: {new_role}")
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A reason is required for a role change")

        with atomic(db):
            subject = db.query(User).filter(User.id == user_id).with_for_update().first()
            if subject is None:
                raise NotFoundError("User not found")
            if subject.id == actor.id:
                raise PreconditionError("Admins cannot change their own role")
            if subject.role == new_role:
                raise PreconditionError(f"User already has the {new_role} role")
            entry = apply_role_change(
                db, self.events, subject, new_role, actor_id=actor.id, reason=reason
            )
            self._close_pending(db, subject.id, actor.id, new_role)

        db.refresh(entry)
        return entry

    @staticmethod
    def _close_pending(db: Session, user_id: int, actor_id: int, new_role: str) -> None:
        """Reject the user's pending request; a direct role change supersedes it."""
        pending = (
            db.query(PromotionRequest)
            .filter(
                PromotionRequest.user_id == user_id,
                PromotionRequest.status == PROMOTION_STATUS_PENDING,
            )
            .with_for_update()
            .all()
        )
        for request in pending:
            request.status = PROMOTION_STATUS_REJECTED
            request.resolution_notes = f"Superseded by a direct role change to {new_role}"
            request.resolved_by = actor_id
            request.resolved_at = utcnow()
            logger.info("Promotion request %s closed by direct role change", request.id)

    @staticmethod
    def _lock_request(db: Session, request_id: int) -> PromotionRequest:
        request = (
            db.query(PromotionRequest)
            .filter(PromotionRequest.id == request_id)
            .with_for_update()
            .first()
        )
        if request is None:
            raise NotFoundError("Promotion request not found")
        return request

    @staticmethod
    def _counts(db: Session, request_id: int) -> tuple[int, int]:
        rows = (
            db.query(Endorsement.endorser_tier, func.count())
            .filter(Endorsement.request_id == request_id)
            .group_by(Endorsement.endorser_tier)
            .all()
        )
        counts = dict(rows)
        return counts.get(ROLE_MODERATOR, 0), counts.get(ROLE_ADMIN, 0)

    @staticmethod
    def list_mine(db: Session, actor: User) -> list[PromotionRequest]:
        return (
            db.query(PromotionRequest)
            .filter(PromotionRequest.user_id == actor.id)
            .order_by(PromotionRequest.created_at.desc(), PromotionRequest.id.desc())
            .all()
        )

    @staticmethod
    def list_pending(db: Session, actor: User) -> list[PromotionRequest]:
        if not actor.is_staff:
            raise ForbiddenError("Only moderators and admins can review promotion requests")
        return (
            db.query(PromotionRequest)
            .filter(PromotionRequest.status == PROMOTION_STATUS_PENDING)
            .order_by(PromotionRequest.created_at.asc(), PromotionRequest.id.asc())
            .all()
        )

    @staticmethod
    def endorsements_for(db: Session, actor: User, request_id: int) -> list[Endorsement]:
        """Endorsements on a request, visible to its requester and to staff."""
        request = db.get(PromotionRequest, request_id)
        if request is None:
            raise NotFoundError("Promotion request not found")
        if request.user_id != actor.id and not actor.is_staff:
            raise ForbiddenError("You cannot view endorsements on this request")
        return (
            db.query(Endorsement)
            .filter(Endorsement.request_id == request_id)
            .order_by(Endorsement.id)
            .all()
        )
