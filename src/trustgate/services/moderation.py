"""Moderation pipeline combining classification and originality checks."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from trustgate.core.errors import ForbiddenError, NotFoundError, PreconditionError
from trustgate.core.settings import settings
from trustgate.db.transaction import atomic
from trustgate.models import Appeal, ContentItem, ContentVersion, ModerationDecision, User
from trustgate.models.appeal import APPEAL_STATUS_PENDING
from trustgate.models.content import CONTENT_STATUS_FLAGGED, CONTENT_STATUS_PUBLISHED
from trustgate.models.moderation import OUTCOME_ALLOW, OUTCOME_BLOCK
from trustgate.services.appeals import still_disputed
from trustgate.services.availability import Available, ServiceAvailability, Unavailable
from trustgate.services.classification import (
    ClassificationGateway,
    ClassificationResult,
    moderation_warning,
)
from trustgate.services.events import EVENT_CONTENT_BLOCKED, GovernanceEvents
from trustgate.services.originality import (
    OriginalityChecker,
    OriginalityResult,
    SqlSimilarityIndex,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModerationOutcome:
    """What a caller gets back from a moderation pass."""

    decision: ModerationDecision
    outcome: str
    warnings: list[str]


def plagiarism_warning(similarity: float) -> str:
    return (
        f"Potential plagiarism detected ({round(similarity * 100)}% similarity). "
        "Please ensure you properly cite all sources."
    )


class ModerationPipeline:
    """Runs both checks concurrently and records one decision per pass."""

    def __init__(
        self,
        gateway: ClassificationGateway,
        checker: OriginalityChecker,
        events: GovernanceEvents,
        timeout_seconds: float | None = None,
    ) -> None:
        self.gateway = gateway
        self.checker = checker
        self.events = events
        self.timeout_seconds = (
            settings.upstream_timeout_seconds if timeout_seconds is None else timeout_seconds
        )

    async def _classify(self, text: str) -> ServiceAvailability[ClassificationResult]:
        try:
            return await asyncio.wait_for(self.gateway.classify(text), self.timeout_seconds)
        except TimeoutError:
            logger.warning("Classification timed out after %ss", self.timeout_seconds)
            return Unavailable("classification timed out")

    async def _check_originality(
        self, text: str, title: str | None, index: SqlSimilarityIndex, content_id: int
    ) -> OriginalityResult:
        try:
            return await asyncio.wait_for(
                self.checker.check(text, index, title=title, exclude_content_id=content_id),
                self.timeout_seconds,
            )
        except TimeoutError:
            logger.warning("Originality check timed out after %ss", self.timeout_seconds)
            return OriginalityResult.unavailable("originality check timed out")

    async def evaluate(
        self, db: Session, item: ContentItem, version: ContentVersion
    ) -> ModerationOutcome:
        """Check ``version`` of ``item`` and persist the decision."""
        text = version.body
        classify_text = f"{version.title}\n\n{text}" if version.title else text
        index = SqlSimilarityIndex(db)

        classification, originality = await asyncio.gather(
            self._classify(classify_text),
            self._check_originality(text, version.title, index, item.id),
        )

        warnings: list[str] = []
        notes: list[str] = []
        flagged = False
        result: ClassificationResult | None = None

        if isinstance(classification, Available):
            result = classification.value
            flagged = result.flagged
            if flagged:
                warnings.append(moderation_warning(result))
        else:
            logger.warning(
                "Classification unavailable for content %s, allowing: %s",
                item.id,
                classification.reason,
            )
            notes.append(f"Classification unavailable ({classification.reason}); failed open")

        if not originality.available:
            notes.append(f"Originality check unavailable ({originality.unavailable_reason})")
        elif originality.is_plagiarized:
            warnings.append(plagiarism_warning(originality.similarity_score))

        blocked = flagged or originality.similarity_score > settings.moderation_block_similarity
        outcome = OUTCOME_BLOCK if blocked else OUTCOME_ALLOW

        with atomic(db):
            decision = ModerationDecision(
                content_id=item.id,
                content_version_id=version.id,
                outcome=outcome,
                classification_available=result is not None,
                classification_backend=result.backend if result else None,
                flagged=flagged,
                flagged_categories=result.flagged_categories if result else [],
                category_scores=dict(result.scores) if result else {},
                originality_available=originality.available,
                similarity_score=originality.similarity_score,
                matched_source_ids=list(originality.sources),
                is_plagiarized=originality.is_plagiarized,
                originality_details=originality.details,
                warnings=warnings,
                diagnostic_note="; ".join(notes) or None,
            )
            db.add(decision)
            item.status = CONTENT_STATUS_FLAGGED if blocked else CONTENT_STATUS_PUBLISHED
            if originality.embedding is not None and originality.embedded_text is not None:
                index.store(
                    item.id,
                    version.id,
                    originality.embedding,
                    originality.embedded_text,
                    self.checker.embeddings.model,
                )
            if blocked:
                self.events.emit(
                    db, EVENT_CONTENT_BLOCKED, item.author_id, f"content {item.id} blocked"
                )
            db.flush()

        db.refresh(decision)
        logger.info("Content %s moderated: %s", item.id, outcome)
        return ModerationOutcome(decision=decision, outcome=outcome, warnings=warnings)

    async def submit(self, db: Session, actor: User, content_id: int) -> ModerationOutcome:
        """Moderate the current version of an author's content."""
        item = db.get(ContentItem, content_id)
        if item is None:
            raise NotFoundError("Content not found")
        if item.author_id != actor.id:
            raise ForbiddenError("Only the author can submit this content for moderation")
        version = item.current_version
        if version is None:
            raise PreconditionError("Content has no version to moderate")
        if item.status == CONTENT_STATUS_FLAGGED and self._under_appeal(db, item):
            raise PreconditionError(
                "This content is under appeal; revise it before submitting it again"
            )
        return await self.evaluate(db, item, version)

    @staticmethod
    def _under_appeal(db: Session, item: ContentItem) -> bool:
        pending = (
            db.query(Appeal)
            .filter(Appeal.content_id == item.id, Appeal.status == APPEAL_STATUS_PENDING)
            .all()
        )
        return any(still_disputed(db, appeal, item) for appeal in pending)

    @staticmethod
    def list_decisions(db: Session, actor: User, content_id: int) -> list[ModerationDecision]:
        item = db.get(ContentItem, content_id)
        if item is None:
            raise NotFoundError("Content not found")
        if item.author_id != actor.id and not actor.is_staff:
            raise ForbiddenError("You cannot view decisions for this content")
        return (
            db.query(ModerationDecision)
            .filter(ModerationDecision.content_id == content_id)
            .order_by(ModerationDecision.created_at.desc(), ModerationDecision.id.desc())
            .all()
        )
