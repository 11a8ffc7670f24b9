"""Trust recalculation queue, sweep, and background worker.

Entries are enqueued inside the transaction of the event that caused them.
A sweep claims a batch by stamping a claim token with a conditional UPDATE,
so two concurrent sweeps never own the same entry, then recomputes each
affected user's score from source data and marks the batch processed.
Recomputing is idempotent: a sweep that dies mid-batch leaves its claims to
expire and the next sweep simply recomputes again.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import and_, func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from trustgate.core.errors import ForbiddenError, NotFoundError, ValidationError
from trustgate.core.settings import settings
from trustgate.db.session import SessionLocal
from trustgate.db.time import utcnow
from trustgate.models import (
    Appeal,
    ContentItem,
    Endorsement,
    ModerationDecision,
    PromotionRequest,
    TrustRecalcEntry,
    User,
    UserTrustScore,
)
from trustgate.models.appeal import APPEAL_STATUS_APPROVED, APPEAL_STATUS_REJECTED
from trustgate.models.moderation import OUTCOME_BLOCK
from trustgate.services.events import GOVERNANCE_EVENTS, GovernanceEvent, GovernanceEvents

logger = logging.getLogger(__name__)

ROLE_BASE_SCORES = {
    "member": 10,
    "researcher": 30,
    "moderator": 50,
    "admin": 70,
}
ENDORSEMENT_POINTS = 5
ENDORSEMENT_POINTS_CAP = 20
APPROVED_APPEAL_POINTS = 2
REJECTED_APPEAL_PENALTY = 5
BLOCKED_DECISION_PENALTY = 2
MIN_SCORE = 0
MAX_SCORE = 100


@dataclass(frozen=True)
class SweepReport:
    claimed: int
    users_recomputed: int


@dataclass(frozen=True)
class QueueStatus:
    pending: int
    claimed: int
    processed: int


def compute_trust_score(db: Session, user: User) -> UserTrustScore:
    """Recompute and store ``user``'s trust score from source rows."""
    endorsements = (
        db.query(func.count(Endorsement.id))
        .join(PromotionRequest, PromotionRequest.id == Endorsement.request_id)
        .filter(PromotionRequest.user_id == user.id)
        .scalar()
        or 0
    )
    approved = (
        db.query(func.count(Appeal.id))
        .filter(Appeal.user_id == user.id, Appeal.status == APPEAL_STATUS_APPROVED)
        .scalar()
        or 0
    )
    rejected = (
        db.query(func.count(Appeal.id))
        .filter(Appeal.user_id == user.id, Appeal.status == APPEAL_STATUS_REJECTED)
        .scalar()
        or 0
    )
    blocked = (
        db.query(func.count(ModerationDecision.id))
        .join(ContentItem, ContentItem.id == ModerationDecision.content_id)
        .filter(ContentItem.author_id == user.id, ModerationDecision.outcome == OUTCOME_BLOCK)
        .scalar()
        or 0
    )

    raw = (
        ROLE_BASE_SCORES.get(user.role, 0)
        + min(ENDORSEMENT_POINTS_CAP, ENDORSEMENT_POINTS * endorsements)
        + APPROVED_APPEAL_POINTS * approved
        - REJECTED_APPEAL_PENALTY * rejected
        - BLOCKED_DECISION_PENALTY * blocked
    )

    row = db.get(UserTrustScore, user.id)
    if row is None:
        row = UserTrustScore(user_id=user.id)
        db.add(row)
    row.score = max(MIN_SCORE, min(MAX_SCORE, raw))
    row.endorsements_received = endorsements
    row.appeals_approved = approved
    row.appeals_rejected = rejected
    row.blocked_decisions = blocked
    row.computed_at = utcnow()
    return row


class TrustRecalcQueue:
    """Enqueue, claim and process trust recalculation requests."""

    def register(self, events: GovernanceEvents) -> None:
        for name in GOVERNANCE_EVENTS:
            events.subscribe(name, self._on_event)

    def _on_event(self, db: Session, event: GovernanceEvent) -> None:
        self.enqueue(db, event.user_id, f"{event.name}: {event.detail}")

    @staticmethod
    def enqueue(db: Session, user_id: int, reason: str) -> TrustRecalcEntry:
        """Add an entry; committed by the caller's transaction."""
        entry = TrustRecalcEntry(user_id=user_id, reason=reason)
        db.add(entry)
        return entry

    @staticmethod
    def _claimable(cutoff):
        return and_(
            TrustRecalcEntry.processed.is_(False),
            or_(
                TrustRecalcEntry.claim_token.is_(None),
                TrustRecalcEntry.claimed_at < cutoff,
            ),
        )

    def claim(self, db: Session, limit: int) -> tuple[str, list[TrustRecalcEntry]]:
        """Claim up to ``limit`` entries and return them with the claim token."""
        token = secrets.token_hex(16)
        now = utcnow()
        cutoff = now - timedelta(seconds=settings.trust_sweep_claim_timeout_seconds)

        candidate_ids = [
            row_id
            for (row_id,) in db.query(TrustRecalcEntry.id)
            .filter(self._claimable(cutoff))
            .order_by(TrustRecalcEntry.id)
            .limit(limit)
            .all()
        ]
        if not candidate_ids:
            return token, []

        # The predicate is re-checked by the UPDATE so a concurrent sweep that
        # claimed the same rows first wins and we get none of them.
        db.execute(
            update(TrustRecalcEntry)
            .where(TrustRecalcEntry.id.in_(candidate_ids), self._claimable(cutoff))
            .values(claim_token=token, claimed_at=now)
            .execution_options(synchronize_session=False)
        )
        db.commit()

        claimed = (
            db.query(TrustRecalcEntry)
            .filter(TrustRecalcEntry.claim_token == token)
            .order_by(TrustRecalcEntry.id)
            .all()
        )
        return token, claimed

    def sweep(self, db: Session, limit: int | None = None) -> SweepReport:
        """Claim a batch, recompute each distinct user once, mark it processed."""
        batch_size = settings.trust_sweep_batch_size if limit is None else limit
        if batch_size < 1:
            raise ValidationError("limit must be at least 1")

        token, claimed = self.claim(db, batch_size)
        if not claimed:
            return SweepReport(claimed=0, users_recomputed=0)

        user_ids = sorted({entry.user_id for entry in claimed})
        recomputed = 0
        try:
            for user in db.query(User).filter(User.id.in_(user_ids)).all():
                compute_trust_score(db, user)
                recomputed += 1
            db.execute(
                update(TrustRecalcEntry)
                .where(TrustRecalcEntry.claim_token == token)
                .values(processed=True, processed_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        logger.info(
            "Trust sweep processed %d entries for %d users", len(claimed), recomputed
        )
        return SweepReport(claimed=len(claimed), users_recomputed=recomputed)

    @staticmethod
    def status(db: Session) -> QueueStatus:
        pending = (
            db.query(func.count(TrustRecalcEntry.id))
            .filter(TrustRecalcEntry.processed.is_(False), TrustRecalcEntry.claim_token.is_(None))
            .scalar()
            or 0
        )
        claimed = (
            db.query(func.count(TrustRecalcEntry.id))
            .filter(
                TrustRecalcEntry.processed.is_(False),
                TrustRecalcEntry.claim_token.is_not(None),
            )
            .scalar()
            or 0
        )
        processed = (
            db.query(func.count(TrustRecalcEntry.id))
            .filter(TrustRecalcEntry.processed.is_(True))
            .scalar()
            or 0
        )
        return QueueStatus(pending=pending, claimed=claimed, processed=processed)


class TrustService:
    """Role-gated access to the queue and scores."""

    def __init__(self, queue: TrustRecalcQueue) -> None:
        self.queue = queue

    def process_queue(self, db: Session, actor: User, limit: int | None = None) -> SweepReport:
        if not actor.is_admin:
            raise ForbiddenError("Only admins can run the trust sweep")
        return self.queue.sweep(db, limit)

    def queue_status(self, db: Session, actor: User) -> QueueStatus:
        if not actor.is_staff:
            raise ForbiddenError("Only moderators and admins can inspect the trust queue")
        return self.queue.status(db)

    @staticmethod
    def get_score(db: Session, user_id: int) -> UserTrustScore:
        """Stored score, computed on first read when no sweep has run yet."""
        row = db.get(UserTrustScore, user_id)
        if row is not None:
            return row
        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        row = compute_trust_score(db, user)
        db.commit()
        return row


class TrustRecalcWorker:
    """Periodically runs the trust sweep in the background."""

    def __init__(self, queue: TrustRecalcQueue, session_factory=None) -> None:
        self.queue = queue
        self._session_factory = session_factory or SessionLocal
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if not settings.trust_sweep_enabled:
            return

        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background sweep loop."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    def _sweep_once(self) -> SweepReport:
        with self._session_factory() as db:
            return self.queue.sweep(db)

    async def _run(self) -> None:
        interval = max(0.1, float(settings.trust_sweep_interval_seconds))

        while not self._stopping.is_set():
            try:
                report = await asyncio.to_thread(self._sweep_once)
            except SQLAlchemyError as e:
                logger.error("TrustRecalcWorker sweep failed: %s", e, exc_info=True)
                await self._wait(min(interval * 4, 60.0))
                continue
            except Exception as e:
                logger.error("TrustRecalcWorker sweep crashed: %s", e, exc_info=True)
                await self._wait(min(interval * 4, 60.0))
                continue

            # Drain quickly while there is a backlog.
            if report.claimed >= settings.trust_sweep_batch_size:
                continue
            await self._wait(interval)

    async def _wait(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=seconds)
        except TimeoutError:
            return
