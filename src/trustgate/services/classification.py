"""Policy-violation classification backed by external services.

The gateway asks each configured backend in order and returns the first
answer. A backend that has no credentials, cannot be reached, or answers
with an error yields ``Unavailable``; it never reports content as flagged.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from trustgate.core.errors import UpstreamUnavailable
from trustgate.core.settings import settings
from trustgate.services.availability import Available, ServiceAvailability, Unavailable
from trustgate.services.upstream import (
    OpenAIClient,
    PerspectiveClient,
    get_openai_client,
    get_perspective_client,
)

logger = logging.getLogger(__name__)

# Perspective attribute -> category name used by the rest of the engine.
PERSPECTIVE_CATEGORY_MAP = {
    "TOXICITY": "harassment",
    "SEVERE_TOXICITY": "harassment/threatening",
    "THREAT": "violence",
    "IDENTITY_ATTACK": "hate",
}

PERSPECTIVE_DETAIL_MESSAGES = {
    "TOXICITY": "Toxic language detected",
    "SEVERE_TOXICITY": "Severe toxicity detected",
    "THREAT": "Threatening content detected",
    "IDENTITY_ATTACK": "Identity attack detected",
}


@dataclass(frozen=True)
class ClassificationResult:
    """Verdict returned by a classification backend."""

    flagged: bool
    categories: dict[str, bool]
    scores: dict[str, float]
    backend: str
    details: list[str] = field(default_factory=list)

    @property
    def flagged_categories(self) -> list[str]:
        return [name for name, hit in self.categories.items() if hit]


class ClassificationBackend(Protocol):
    """A single external classifier."""

    name: str

    async def classify(self, text: str) -> ServiceAvailability[ClassificationResult]:
        ...


class OpenAIModerationBackend:
    """OpenAI moderation endpoint."""

    name = "openai"

    def __init__(self, client: OpenAIClient | None = None) -> None:
        self.client = client or get_openai_client()

    async def classify(self, text: str) -> ServiceAvailability[ClassificationResult]:
        if not self.client.enabled:
            return Unavailable("openai: API key not configured")
        try:
            result = await self.client.moderate(text)
        except UpstreamUnavailable as exc:
            logger.warning("OpenAI moderation unavailable: %s", exc)
            return Unavailable(f"openai: {exc}")

        categories = {
            str(name): bool(hit) for name, hit in (result.get("categories") or {}).items()
        }
        scores = {
            str(name): float(score or 0.0)
            for name, score in (result.get("category_scores") or {}).items()
        }
        flagged = bool(result.get("flagged"))
        return Available(
            ClassificationResult(
                flagged=flagged,
                categories=categories,
                scores=scores,
                backend=self.name,
                details=[name for name, hit in categories.items() if hit] if flagged else [],
            )
        )


class PerspectiveBackend:
    """Google Perspective, mapped onto the OpenAI category names."""

    name = "perspective"

    def __init__(
        self,
        client: PerspectiveClient | None = None,
        threshold: float | None = None,
    ) -> None:
        self.client = client or get_perspective_client()
        self.threshold = settings.perspective_flag_threshold if threshold is None else threshold

    async def classify(self, text: str) -> ServiceAvailability[ClassificationResult]:
        if not self.client.enabled:
            return Unavailable("perspective: API key not configured")
        try:
            attribute_scores = await self.client.analyze(text)
        except UpstreamUnavailable as exc:
            logger.warning("Perspective API unavailable: %s", exc)
            return Unavailable(f"perspective: {exc}")

        categories: dict[str, bool] = {}
        scores: dict[str, float] = {}
        details: list[str] = []
        for attribute, category in PERSPECTIVE_CATEGORY_MAP.items():
            score = attribute_scores.get(attribute, 0.0)
            hit = score > self.threshold
            categories[category] = hit
            scores[category] = score
            if hit:
                details.append(PERSPECTIVE_DETAIL_MESSAGES[attribute])

        return Available(
            ClassificationResult(
                flagged=any(categories.values()),
                categories=categories,
                scores=scores,
                backend=self.name,
                details=details,
            )
        )


class ClassificationGateway:
    """Primary-then-secondary access to the classification backends."""

    def __init__(self, backends: Sequence[ClassificationBackend]) -> None:
        self.backends = list(backends)

    async def classify(self, text: str) -> ServiceAvailability[ClassificationResult]:
        if not self.backends:
            return Unavailable("no classification backend configured")

        reasons: list[str] = []
        for backend in self.backends:
            result = await backend.classify(text)
            if isinstance(result, Available):
                return result
            reasons.append(result.reason)
        return Unavailable("; ".join(reasons))


def default_gateway() -> ClassificationGateway:
    """Gateway with OpenAI as primary and Perspective as secondary."""
    return ClassificationGateway([OpenAIModerationBackend(), PerspectiveBackend()])


def format_category(category: str) -> str:
    """Render ``harassment/threatening`` as ``Harassment / Threatening``."""
    return " / ".join(part[:1].upper() + part[1:] for part in category.split("/"))


def moderation_warning(result: ClassificationResult) -> str:
    """Human-readable warning for a flagged classification."""
    if not result.flagged:
        return ""
    categories = result.flagged_categories
    if not categories:
        return "Your content may violate community guidelines."
    names = ", ".join(format_category(category) for category in categories)
    return (
        f"Your content was flagged for: {names}. Please review our community guidelines "
        "and ensure your content is respectful and appropriate."
    )
