"""Similarity-based originality checking.

New text is embedded, compared against the fingerprints of published
content, and high-similarity matches are escalated to a confirmation model.
Any failure along the way fails open to "not plagiarized" and is reported
with ``details == "unavailable"``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from trustgate.core.errors import UpstreamUnavailable
from trustgate.core.settings import settings
from trustgate.models import ContentEmbedding, ContentItem
from trustgate.models.content import CONTENT_STATUS_PUBLISHED
from trustgate.services.availability import Available, ServiceAvailability, Unavailable
from trustgate.services.upstream import OpenAIClient, get_openai_client

logger = logging.getLogger(__name__)

DETAILS_UNAVAILABLE = "unavailable"
DETAILS_TOO_SHORT = "Content too short for plagiarism check"
DETAILS_NO_MATCH = "No similar content found"


@dataclass(frozen=True)
class SimilarityMatch:
    content_id: int
    similarity: float
    embedded_text: str


@dataclass(frozen=True)
class ConfirmationVerdict:
    is_plagiarized: bool
    reason: str | None = None


@dataclass(frozen=True)
class OriginalityResult:
    """Outcome of an originality check."""

    is_plagiarized: bool
    similarity_score: float
    sources: list[int] = field(default_factory=list)
    details: str = ""
    unavailable_reason: str | None = None
    embedding: list[float] | None = None
    embedded_text: str | None = None

    @property
    def available(self) -> bool:
        return self.unavailable_reason is None

    @classmethod
    def unavailable(
        cls,
        reason: str,
        *,
        embedding: list[float] | None = None,
        embedded_text: str | None = None,
    ) -> OriginalityResult:
        return cls(
            is_plagiarized=False,
            similarity_score=0.0,
            details=DETAILS_UNAVAILABLE,
            unavailable_reason=reason,
            embedding=embedding,
            embedded_text=embedded_text,
        )


class EmbeddingProvider(Protocol):
    model: str

    async def embed(self, text: str) -> ServiceAvailability[list[float]]:
        ...


class ConfirmationProvider(Protocol):
    async def confirm(
        self, existing_text: str, new_text: str
    ) -> ServiceAvailability[ConfirmationVerdict]:
        ...


class SimilarityIndex(Protocol):
    def search(
        self,
        vector: Sequence[float],
        *,
        threshold: float,
        limit: int,
        exclude_content_id: int | None = None,
    ) -> list[SimilarityMatch]:
        ...

    def store(
        self,
        content_id: int,
        version_id: int,
        vector: Sequence[float],
        embedded_text: str,
        model: str,
    ) -> None:
        ...


def cosine_similarity(left: Sequence[float], right: Sequence[float]) -> float:
    """Cosine similarity of two equal-length vectors; 0.0 when undefined."""
    if len(left) != len(right) or not left:
        return 0.0
    dot = sum(a * b for a, b in zip(left, right, strict=True))
    norm = math.sqrt(sum(a * a for a in left)) * math.sqrt(sum(b * b for b in right))
    if norm == 0.0:
        return 0.0
    return dot / norm


class SqlSimilarityIndex:
    """Similarity index over ``content_embedding`` rows of published content.

    On PostgreSQL the nearest neighbours are ranked by pgvector's cosine
    distance inside the query. SQLite stores vectors as JSON, so there the
    candidates are scored in Python.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _candidates(self, exclude_content_id: int | None):
        query = (
            self.db.query(ContentEmbedding)
            .join(ContentItem, ContentItem.id == ContentEmbedding.content_id)
            .filter(ContentItem.status == CONTENT_STATUS_PUBLISHED)
        )
        if exclude_content_id is not None:
            query = query.filter(ContentEmbedding.content_id != exclude_content_id)
        return query

    def nearest_query(
        self,
        vector: Sequence[float],
        *,
        threshold: float,
        limit: int,
        exclude_content_id: int | None = None,
    ):
        """Rows of (content_id, embedded_text, similarity), best match first."""
        distance = ContentEmbedding.vector.cosine_distance(list(vector))
        similarity = (1 - distance).label("similarity")
        return (
            self._candidates(exclude_content_id)
            .with_entities(
                ContentEmbedding.content_id, ContentEmbedding.embedded_text, similarity
            )
            .filter(1 - distance >= threshold)
            .order_by(distance)
            .limit(limit)
        )

    def search(
        self,
        vector: Sequence[float],
        *,
        threshold: float,
        limit: int,
        exclude_content_id: int | None = None,
    ) -> list[SimilarityMatch]:
        try:
            if self.db.get_bind().dialect.name == "postgresql":
                rows = self.nearest_query(
                    vector,
                    threshold=threshold,
                    limit=limit,
                    exclude_content_id=exclude_content_id,
                ).all()
                return [
                    SimilarityMatch(
                        content_id=content_id,
                        similarity=float(score),
                        embedded_text=embedded_text,
                    )
                    for content_id, embedded_text, score in rows
                ]
            rows = self._candidates(exclude_content_id).all()
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable(f"similarity index query failed: {exc}") from exc

        matches = [
            SimilarityMatch(
                content_id=row.content_id,
                similarity=cosine_similarity(vector, row.vector),
                embedded_text=row.embedded_text,
            )
            for row in rows
        ]
        matches = [match for match in matches if match.similarity >= threshold]
        matches.sort(key=lambda match: match.similarity, reverse=True)
        return matches[:limit]

    def store(
        self,
        content_id: int,
        version_id: int,
        vector: Sequence[float],
        embedded_text: str,
        model: str,
    ) -> None:
        """Upsert the fingerprint for ``content_id``; the caller commits."""
        row = self.db.get(ContentEmbedding, content_id)
        if row is None:
            row = ContentEmbedding(content_id=content_id)
            self.db.add(row)
        row.version_id = version_id
        row.vector = list(vector)
        row.embedded_text = embedded_text
        row.model = model


class OpenAIEmbeddingProvider:
    """Embeddings from the OpenAI embeddings endpoint."""

    def __init__(self, client: OpenAIClient | None = None) -> None:
        self.client = client or get_openai_client()
        self.model = settings.openai_embedding_model

    async def embed(self, text: str) -> ServiceAvailability[list[float]]:
        if not self.client.enabled:
            return Unavailable("embedding API key not configured")
        try:
            return Available(await self.client.embed(text))
        except UpstreamUnavailable as exc:
            logger.warning("Embedding generation failed: %s", exc)
            return Unavailable(f"embedding generation failed: {exc}")


class OpenAIConfirmationProvider:
    """Plagiarism confirmation through a chat completion."""

    def __init__(self, client: OpenAIClient | None = None) -> None:
        self.client = client or get_openai_client()

    async def confirm(
        self, existing_text: str, new_text: str
    ) -> ServiceAvailability[ConfirmationVerdict]:
        if not self.client.enabled:
            return Unavailable("confirmation API key not configured")
        try:
            verdict = await self.client.compare_texts(existing_text, new_text)
        except UpstreamUnavailable as exc:
            logger.warning("Plagiarism confirmation failed: %s", exc)
            return Unavailable(f"confirmation failed: {exc}")
        reason = verdict.get("reason")
        return Available(
            ConfirmationVerdict(
                is_plagiarized=bool(verdict.get("isPlagiarized", False)),
                reason=str(reason) if reason else None,
            )
        )


class OriginalityChecker:
    """Embed, search, and escalate high-similarity matches for confirmation."""

    def __init__(
        self,
        embeddings: EmbeddingProvider,
        confirmation: ConfirmationProvider | None = None,
    ) -> None:
        self.embeddings = embeddings
        self.confirmation = confirmation

    async def check(
        self,
        text: str,
        index: SimilarityIndex,
        *,
        title: str | None = None,
        exclude_content_id: int | None = None,
    ) -> OriginalityResult:
        if len(text) < settings.originality_min_length:
            return OriginalityResult(
                is_plagiarized=False, similarity_score=0.0, details=DETAILS_TOO_SHORT
            )

        embedded_text = f"{title or ''}\n\n{text}"[: settings.originality_max_embed_chars]
        embedded = await self.embeddings.embed(embedded_text)
        if isinstance(embedded, Unavailable):
            return OriginalityResult.unavailable(embedded.reason)
        vector = embedded.value

        try:
            matches = index.search(
                vector,
                threshold=settings.originality_similarity_floor,
                limit=settings.originality_top_k,
                exclude_content_id=exclude_content_id,
            )
        except UpstreamUnavailable as exc:
            logger.warning("Similarity search unavailable: %s", exc)
            return OriginalityResult.unavailable(
                str(exc), embedding=vector, embedded_text=embedded_text
            )

        if not matches:
            return OriginalityResult(
                is_plagiarized=False,
                similarity_score=0.0,
                details=DETAILS_NO_MATCH,
                embedding=vector,
                embedded_text=embedded_text,
            )

        top = matches[0]
        score = top.similarity
        percent = round(score * 100)

        if score > settings.originality_confirm_threshold and self.confirmation is not None:
            limit = settings.originality_max_confirm_chars
            verdict = await self.confirmation.confirm(top.embedded_text[:limit], text[:limit])
            if isinstance(verdict, Available):
                return OriginalityResult(
                    is_plagiarized=verdict.value.is_plagiarized,
                    similarity_score=score,
                    sources=[top.content_id],
                    details=verdict.value.reason or f"{percent}% similar to existing content",
                    embedding=vector,
                    embedded_text=embedded_text,
                )

        # Without a confirmation, only near-identical matches count as plagiarism.
        return OriginalityResult(
            is_plagiarized=score >= settings.originality_definite_threshold,
            similarity_score=score,
            sources=[match.content_id for match in matches],
            details=f"{percent}% similar to existing published content",
            embedding=vector,
            embedded_text=embedded_text,
        )


def default_checker() -> OriginalityChecker:
    return OriginalityChecker(OpenAIEmbeddingProvider(), OpenAIConfirmationProvider())
