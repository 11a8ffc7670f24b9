"""Content authoring boundary: create, revise and read content items.

Edits append a new immutable :class:`ContentVersion` and move the item's
pointer; a version row is never updated once written.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from trustgate.core.errors import ForbiddenError, NotFoundError, ValidationError
from trustgate.db.transaction import atomic
from trustgate.models import ContentItem, ContentVersion, User
from trustgate.models.content import CONTENT_STATUS_DRAFT, CONTENT_STATUS_PUBLISHED

logger = logging.getLogger(__name__)


def _clean(title: str | None, body: str) -> tuple[str | None, str]:
    body = (body or "").strip()
    if not body:
        raise ValidationError("Content body cannot be empty")
    title = (title or "").strip() or None
    return title, body


class ContentService:
    """Version-chained content items."""

    @staticmethod
    def create(db: Session, author: User, title: str | None, body: str) -> ContentItem:
        title, body = _clean(title, body)
        with atomic(db):
            item = ContentItem(author_id=author.id, status=CONTENT_STATUS_DRAFT)
            db.add(item)
            db.flush()
            version = ContentVersion(content_id=item.id, number=1, title=title, body=body)
            db.add(version)
            db.flush()
            item.current_version_id = version.id
        db.refresh(item)
        return item

    @staticmethod
    def revise(
        db: Session, author: User, content_id: int, title: str | None, body: str
    ) -> ContentItem:
        title, body = _clean(title, body)
        with atomic(db, conflict_message="Content was revised concurrently; retry"):
            item = (
                db.query(ContentItem)
                .filter(ContentItem.id == content_id)
                .with_for_update()
                .first()
            )
            if item is None:
                raise NotFoundError("Content not found")
            if item.author_id != author.id:
                raise ForbiddenError("Only the author can revise this content")

            latest = (
                db.query(ContentVersion.number)
                .filter(ContentVersion.content_id == item.id)
                .order_by(ContentVersion.number.desc())
                .limit(1)
                .scalar()
                or 0
            )
            version = ContentVersion(
                content_id=item.id, number=latest + 1, title=title, body=body
            )
            db.add(version)
            db.flush()
            item.current_version_id = version.id
            # Published text changed, so it must pass moderation again.
            if item.status == CONTENT_STATUS_PUBLISHED:
                item.status = CONTENT_STATUS_DRAFT
        db.refresh(item)
        logger.info("Content %s revised to version %s", item.id, version.number)
        return item

    @staticmethod
    def get(db: Session, content_id: int) -> ContentItem:
        item = db.get(ContentItem, content_id)
        if item is None:
            raise NotFoundError("Content not found")
        return item

    @staticmethod
    def current_version_number(db: Session, item: ContentItem) -> int:
        if item.current_version_id is None:
            return 0
        version = db.get(ContentVersion, item.current_version_id)
        return version.number if version is not None else 0
