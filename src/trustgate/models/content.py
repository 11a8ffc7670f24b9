# src/trustgate/models/content.py
"""Content items, their immutable versions and similarity fingerprints."""

from __future__ import annotations

from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trustgate.core.settings import settings
from trustgate.db.session import Base
from trustgate.db.time import utcnow

CONTENT_STATUS_DRAFT = "draft"
CONTENT_STATUS_PUBLISHED = "published"
CONTENT_STATUS_FLAGGED = "flagged"
CONTENT_STATUS_BLOCKED = "blocked"


class ContentItem(Base):
    """Stable identity of a piece of content.

    Title and body live on :class:`ContentVersion` rows; the item only points
    at the current one, so edits never rewrite history.
    """

    __tablename__ = "content_item"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'published', 'flagged', 'blocked')",
            name="ck_content_item_status",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=CONTENT_STATUS_DRAFT)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    current_version_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("content_version.id", use_alter=True, name="fk_content_item_current_version"),
        nullable=True,
    )

    current_version: Mapped[ContentVersion | None] = relationship(
        "ContentVersion",
        foreign_keys=[current_version_id],
        post_update=True,
    )


class ContentVersion(Base):
    """Immutable snapshot of a content item's title and body."""

    __tablename__ = "content_version"
    __table_args__ = (
        UniqueConstraint("content_id", "number", name="uq_content_version_number"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("content_item.id", ondelete="CASCADE"), nullable=False
    )
    # 1-based, increases by one per edit.
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class ContentEmbedding(Base):
    """Semantic fingerprint of the latest moderated version of an item."""

    __tablename__ = "content_embedding"

    content_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("content_item.id", ondelete="CASCADE"), primary_key=True
    )
    version_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("content_version.id"), nullable=False
    )
    # SQLite has no vector type; tests store the same lists as JSON.
    vector: Mapped[list[float]] = mapped_column(
        Vector(settings.embedding_dimensions).with_variant(JSON(), "sqlite"), nullable=False
    )
    embedded_text: Mapped[str] = mapped_column(Text, nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
