"""Jury deliberation over pending appeals."""

from __future__ import annotations

import logging
import random
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
from trustgate.models import (
    Appeal,
    ContentItem,
    JuryAssignment,
    JuryDeliberation,
    JurorVote,
    User,
)
from trustgate.models.appeal import (
    APPEAL_STATUS_APPROVED,
    APPEAL_STATUS_PENDING,
    APPEAL_STATUS_REJECTED,
)
from trustgate.models.jury import (
    DECISION_OVERTURN,
    DECISION_SPLIT,
    DECISION_UPHOLD,
    JUROR_MIN_REASONING_LENGTH,
    VOTE_OVERTURN,
    VOTE_UPHOLD,
)
from trustgate.models.user import JUROR_ROLES
from trustgate.services.appeals import apply_appeal_resolution
from trustgate.services.events import GovernanceEvents

logger = logging.getLogger(__name__)

JURY_RESPONSES = {
    DECISION_OVERTURN: "Jury decision: the moderation decision was overturned.",
    DECISION_UPHOLD: "Jury decision: the moderation decision was upheld.",
    DECISION_SPLIT: "Jury reached no majority (split decision); the original decision stands.",
}


@dataclass(frozen=True)
class DeliberationStatus:
    deliberation_id: int
    appeal_id: int
    required_votes: int
    votes_uphold: int
    votes_overturn: int
    final_decision: str | None
    appeal_status: str

    @property
    def total_votes(self) -> int:
        return self.votes_uphold + self.votes_overturn

    @property
    def concluded(self) -> bool:
        return self.final_decision is not None


def tally_decision(uphold: int, overturn: int) -> str:
    """Majority wins; a tie is a split."""
    if overturn > uphold:
        return DECISION_OVERTURN
    if uphold > overturn:
        return DECISION_UPHOLD
    return DECISION_SPLIT


class JuryService:
    """Open deliberations, collect votes, conclude by majority."""

    def __init__(self, events: GovernanceEvents, rng: random.Random | None = None) -> None:
        self.events = events
        self.rng = rng or random.SystemRandom()

    def open_deliberation(
        self,
        db: Session,
        actor: User,
        appeal_id: int,
        required_votes: int | None = None,
    ) -> JuryDeliberation:
        if not actor.is_admin:
            raise ForbiddenError("Only admins can open jury deliberations")
        required = required_votes
        if required is None:
            required = settings.jury_default_required_votes
        if required < 1:
            raise ValidationError("required_votes must be at least 1")

        with atomic(db, conflict_message="A deliberation already exists for this appeal"):
            appeal = db.query(Appeal).filter(Appeal.id == appeal_id).with_for_update().first()
            if appeal is None:
                raise NotFoundError("Appeal not found")
            if appeal.status != APPEAL_STATUS_PENDING:
                raise PreconditionError("Only pending appeals can go to a jury")
            if appeal.deliberation is not None:
                raise PreconditionError("A deliberation already exists for this appeal")

            content = db.get(ContentItem, appeal.content_id)
            excluded = {appeal.user_id}
            if content is not None:
                excluded.add(content.author_id)
            eligible = (
                db.query(User.id)
                .filter(User.role.in_(sorted(JUROR_ROLES)), User.id.not_in(excluded))
                .order_by(User.id)
                .all()
            )
            eligible_ids = [row_id for (row_id,) in eligible]
            if len(eligible_ids) < required:
                raise PreconditionError(
                    "Not enough eligible jurors "
                    f"({len(eligible_ids)} available, {required} required)"
                )

            deliberation = JuryDeliberation(
                appeal_id=appeal.id, required_votes=required, created_by=actor.id
            )
            db.add(deliberation)
            db.flush()
            for juror_id in self.rng.sample(eligible_ids, required):
                db.add(JuryAssignment(deliberation_id=deliberation.id, juror_id=juror_id))
            db.flush()

        db.refresh(deliberation)
        logger.info(
            "Deliberation %s opened for appeal %s with %s jurors",
            deliberation.id,
            appeal_id,
            required,
        )
        return deliberation

    def cast_vote(
        self,
        db: Session,
        actor: User,
        deliberation_id: int,
        vote: str,
        reasoning: str,
    ) -> DeliberationStatus:
        if vote not in (VOTE_UPHOLD, VOTE_OVERTURN):
            raise ValidationError("Vote must be 'uphold' or 'overturn'")
        reasoning = (reasoning or "").strip()
        if len(reasoning) < JUROR_MIN_REASONING_LENGTH:
            raise ValidationError(
                f"Reasoning must be at least {JUROR_MIN_REASONING_LENGTH} characters"
            )

        with atomic(db, conflict_message="You have already voted on this deliberation"):
            deliberation = (
                db.query(JuryDeliberation)
                .filter(JuryDeliberation.id == deliberation_id)
                .with_for_update()
                .first()
            )
            if deliberation is None:
                raise NotFoundError("Deliberation not found")
            if db.get(JuryAssignment, (deliberation.id, actor.id)) is None:
                raise ForbiddenError("You are not assigned to this deliberation")
            if actor.role not in JUROR_ROLES:
                raise ForbiddenError("Your role is not eligible for jury duty")
            if deliberation.concluded:
                raise PreconditionError("This deliberation has concluded")
            if db.get(JurorVote, (deliberation.id, actor.id)) is not None:
                raise PreconditionError("You have already voted on this deliberation")

            db.add(
                JurorVote(
                    deliberation_id=deliberation.id,
                    juror_id=actor.id,
                    vote=vote,
                    reasoning=reasoning,
                )
            )
            db.flush()

            uphold, overturn = self._counts(db, deliberation.id)
            if uphold + overturn >= deliberation.required_votes:
                self._conclude(db, deliberation, uphold, overturn)

        return self.status(db, deliberation_id)

    def _conclude(
        self, db: Session, deliberation: JuryDeliberation, uphold: int, overturn: int
    ) -> None:
        decision = tally_decision(uphold, overturn)
        deliberation.final_decision = decision
        deliberation.concluded_at = utcnow()

        appeal = (
            db.query(Appeal).filter(Appeal.id == deliberation.appeal_id).with_for_update().one()
        )
        # A split is stored as a rejection; the deliberation keeps the distinction.
        status = APPEAL_STATUS_APPROVED if decision == DECISION_OVERTURN else APPEAL_STATUS_REJECTED
        apply_appeal_resolution(
            db, self.events, appeal, status, resolved_by=None, response=JURY_RESPONSES[decision]
        )
        logger.info(
            "Deliberation %s concluded: %s (%s uphold, %s overturn)",
            deliberation.id,
            decision,
            uphold,
            overturn,
        )

    @staticmethod
    def _counts(db: Session, deliberation_id: int) -> tuple[int, int]:
        rows = (
            db.query(JurorVote.vote, func.count())
            .filter(JurorVote.deliberation_id == deliberation_id)
            .group_by(JurorVote.vote)
            .all()
        )
        counts = dict(rows)
        return counts.get(VOTE_UPHOLD, 0), counts.get(VOTE_OVERTURN, 0)

    def status(self, db: Session, deliberation_id: int) -> DeliberationStatus:
        deliberation = db.get(JuryDeliberation, deliberation_id)
        if deliberation is None:
            raise NotFoundError("Deliberation not found")
        uphold, overturn = self._counts(db, deliberation.id)
        return DeliberationStatus(
            deliberation_id=deliberation.id,
            appeal_id=deliberation.appeal_id,
            required_votes=deliberation.required_votes,
            votes_uphold=uphold,
            votes_overturn=overturn,
            final_decision=deliberation.final_decision,
            appeal_status=deliberation.appeal.status,
        )

    def get_deliberation(
        self, db: Session, actor: User, deliberation_id: int
    ) -> DeliberationStatus:
        deliberation = db.get(JuryDeliberation, deliberation_id)
        if deliberation is None:
            raise NotFoundError("Deliberation not found")
        assigned = db.get(JuryAssignment, (deliberation.id, actor.id)) is not None
        if not (actor.is_staff or assigned or deliberation.appeal.user_id == actor.id):
            raise ForbiddenError("You cannot view this deliberation")
        return self.status(db, deliberation_id)

    @staticmethod
    def list_cases(db: Session, actor: User) -> list[JuryDeliberation]:
        return (
            db.query(JuryDeliberation)
            .join(JuryAssignment, JuryAssignment.deliberation_id == JuryDeliberation.id)
            .filter(JuryAssignment.juror_id == actor.id)
            .order_by(JuryDeliberation.created_at.desc(), JuryDeliberation.id.desc())
            .all()
        )
