# tests/fakes.py
"""In-memory stand-ins for the external classification and embedding services."""
from __future__ import annotations

import math
from collections.abc import Sequence

from trustgate.services.availability import Available, ServiceAvailability, Unavailable
from trustgate.services.classification import ClassificationResult
from trustgate.services.originality import ConfirmationVerdict, SimilarityMatch

BASE_VECTOR = [1.0, 0.0]
UNRELATED_VECTOR = [0.0, 1.0]


def vector_with_similarity(similarity: float) -> list[float]:
    """A unit vector whose cosine similarity with BASE_VECTOR is ``similarity``."""
    return [similarity, math.sqrt(max(0.0, 1.0 - similarity * similarity))]


def long_text(prefix: str, length: int = 160) -> str:
    """Pad ``prefix`` past the originality minimum length."""
    filler = " lorem ipsum dolor sit amet"
    text = prefix
    while len(text) < length:
        text += filler
    return text


class FakeBackend:
    """Classification backend returning a fixed answer."""

    def __init__(
        self,
        name: str = "fake",
        flagged_categories: Sequence[str] = (),
        unavailable: str | None = None,
    ) -> None:
        self.name = name
        self.flagged_categories = list(flagged_categories)
        self.unavailable = unavailable
        self.calls: list[str] = []

    async def classify(self, text: str) -> ServiceAvailability[ClassificationResult]:
        self.calls.append(text)
        if self.unavailable is not None:
            return Unavailable(self.unavailable)
        categories = {name: True for name in self.flagged_categories}
        categories.setdefault("harassment", False)
        return Available(
            ClassificationResult(
                flagged=bool(self.flagged_categories),
                categories=categories,
                scores={name: (0.95 if hit else 0.01) for name, hit in categories.items()},
                backend=self.name,
                details=list(self.flagged_categories),
            )
        )


class FakeEmbeddings:
    """Returns a vector chosen by a marker substring found in the text."""

    model = "fake-embedding"

    def __init__(
        self,
        by_marker: dict[str, list[float]] | None = None,
        default: list[float] | None = None,
        unavailable: str | None = None,
    ) -> None:
        self.by_marker = by_marker or {}
        self.default = default or UNRELATED_VECTOR
        self.unavailable = unavailable
        self.calls: list[str] = []

    async def embed(self, text: str) -> ServiceAvailability[list[float]]:
        self.calls.append(text)
        if self.unavailable is not None:
            return Unavailable(self.unavailable)
        for marker, vector in self.by_marker.items():
            if marker in text:
                return Available(list(vector))
        return Available(list(self.default))


class FakeConfirmation:
    def __init__(
        self, verdict: ConfirmationVerdict | None = None, unavailable: str | None = None
    ) -> None:
        self.verdict = verdict
        self.unavailable = unavailable
        self.calls: list[tuple[str, str]] = []

    async def confirm(
        self, existing_text: str, new_text: str
    ) -> ServiceAvailability[ConfirmationVerdict]:
        self.calls.append((existing_text, new_text))
        if self.unavailable is not None or self.verdict is None:
            return Unavailable(self.unavailable or "confirmation disabled")
        return Available(self.verdict)


class StaticIndex:
    """Similarity index with canned matches."""

    def __init__(self, matches: Sequence[SimilarityMatch] = ()) -> None:
        self.matches = list(matches)
        self.stored: list[int] = []

    def search(self, vector, *, threshold, limit, exclude_content_id=None):
        found = [
            match
            for match in self.matches
            if match.similarity >= threshold and match.content_id != exclude_content_id
        ]
        return sorted(found, key=lambda match: match.similarity, reverse=True)[:limit]

    def store(self, content_id, version_id, vector, embedded_text, model) -> None:
        self.stored.append(content_id)
