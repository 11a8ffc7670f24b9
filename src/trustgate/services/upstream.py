"""HTTP clients for the external classification and embedding services.

This module provides the transport used by the moderation pipeline:

- HTTP client with bearer or query-key authentication
- Circuit breaker pattern for fault tolerance
- Metrics collection for monitoring
- Typed helpers for the OpenAI and Perspective endpoints

Every failure (missing key, open circuit, network error, non-2xx response,
malformed body) is raised as :class:`UpstreamUnavailable`. Adapters in
``classification`` and ``originality`` turn that into an ``Unavailable``
result; nothing here decides whether content is allowed.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from trustgate.core.errors import UpstreamUnavailable
from trustgate.core.settings import settings

# Configure logger for this module
logger = logging.getLogger(__name__)

HTTP_MULTIPLE_CHOICES = 300
HTTP_INTERNAL_SERVER_ERROR = 500

PERSPECTIVE_ATTRIBUTES = (
    "TOXICITY",
    "SEVERE_TOXICITY",
    "IDENTITY_ATTACK",
    "INSULT",
    "PROFANITY",
    "THREAT",
)

PLAGIARISM_SYSTEM_PROMPT = (
    "You are a plagiarism detector. Compare the two texts and determine if the NEW text is "
    "plagiarized from the EXISTING text. Consider: direct copying, paraphrasing without "
    'attribution, and structural similarity. Respond with JSON: {"isPlagiarized": boolean, '
    '"reason": "string"}'
)


class CircuitState(Enum):
    """Circuit breaker states for fault tolerance."""

    CLOSED = "closed"      # Normal operation - requests allowed
    OPEN = "open"          # Circuit is open - requests blocked
    HALF_OPEN = "half_open"  # Testing if service is back - limited requests allowed


@dataclass
class UpstreamMetrics:
    """Metrics collection for upstream requests."""

    request_count: int = 0
    success_count: int = 0
    error_count: int = 0
    total_response_time: float = 0.0
    error_counts_by_type: dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def record_request(
        self, response_time: float, success: bool, error_type: str | None = None
    ) -> None:
        """Record a request metric."""
        self.request_count += 1
        self.total_response_time += response_time
        if success:
            self.success_count += 1
        else:
            self.error_count += 1
            if error_type:
                self.error_counts_by_type[error_type] += 1

    def get_average_response_time(self) -> float:
        """Get average response time."""
        return self.total_response_time / self.request_count if self.request_count > 0 else 0.0


@dataclass
class CircuitBreaker:
    """Circuit breaker guarding one upstream service."""

    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    success_threshold: int = 2

    _state: CircuitState = CircuitState.CLOSED
    _failure_count: int = 0
    _success_count: int = 0
    _last_failure_time: float = 0.0

    def is_open(self) -> bool:
        """Check if circuit is open."""
        if self._state == CircuitState.OPEN:
            if time.time() - self._last_failure_time > self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
                self._success_count = 0
            return self._state == CircuitState.OPEN
        return False

    def record_success(self) -> None:
        """Record a successful operation."""
        if self._state == CircuitState.HALF_OPEN:
            self._success_count += 1
            if self._success_count >= self.success_threshold:
                self._state = CircuitState.CLOSED
                self._failure_count = 0
        elif self._state == CircuitState.CLOSED:
            self._failure_count = 0

    def record_failure(self) -> None:
        """Record a failed operation."""
        self._failure_count += 1
        self._last_failure_time = time.time()
        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN

    def get_state(self) -> CircuitState:
        return self._state


@dataclass(frozen=True)
class UpstreamConfig:
    """Immutable configuration for one upstream service."""

    name: str
    base_url: str
    api_key: str | None
    timeout_seconds: float


class UpstreamClient:
    """httpx wrapper shared by the concrete service clients."""

    def __init__(self, config: UpstreamConfig) -> None:
        self.config = config
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self._circuit_breaker = CircuitBreaker()
        self._metrics = UpstreamMetrics()

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def enabled(self) -> bool:
        """True when credentials are configured."""
        return bool(self.config.api_key)

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.enabled:
            raise UpstreamUnavailable(f"{self.name} API key not configured", code="not_configured")

        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                )
        return self._client

    def _auth_headers(self) -> dict[str, str]:
        return {}

    def _auth_params(self) -> dict[str, str]:
        return {}

    async def _post_json(
        self,
        path: str,
        payload: Mapping[str, Any],
    ) -> Any:
        """POST ``payload`` and return the decoded JSON body."""
        if self._circuit_breaker.is_open():
            raise UpstreamUnavailable(f"{self.name} circuit breaker is open")

        client = await self._ensure_client()
        start_time = time.time()
        success = False
        error_type: str | None = None

        try:
            response = await client.post(
                path,
                json=dict(payload),
                headers={"Content-Type": "application/json", **self._auth_headers()},
                params=self._auth_params() or None,
            )
            if response.status_code >= HTTP_MULTIPLE_CHOICES:
                error_type = f"http_{response.status_code}"
                if response.status_code >= HTTP_INTERNAL_SERVER_ERROR:
                    self._circuit_breaker.record_failure()
                raise UpstreamUnavailable(
                    f"{self.name} responded with {response.status_code}"
                )
            body = response.json()
            self._circuit_breaker.record_success()
            success = True
            return body
        except httpx.HTTPError as exc:
            self._circuit_breaker.record_failure()
            error_type = "network_error"
            raise UpstreamUnavailable(f"{self.name} request failed: {exc}") from exc
        except ValueError as exc:
            error_type = "invalid_body"
            raise UpstreamUnavailable(f"{self.name} returned an unreadable body") from exc
        finally:
            self._metrics.record_request(time.time() - start_time, success, error_type)

    def get_metrics(self) -> dict[str, Any]:
        """Return request metrics and circuit state for monitoring."""
        return {
            "service": self.name,
            "circuit_state": self._circuit_breaker.get_state().value,
            "request_count": self._metrics.request_count,
            "success_count": self._metrics.success_count,
            "error_count": self._metrics.error_count,
            "average_response_time": self._metrics.get_average_response_time(),
            "error_counts_by_type": dict(self._metrics.error_counts_by_type),
        }

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class OpenAIClient(UpstreamClient):
    """Moderation, embedding and chat-completion endpoints."""

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_key}"}

    async def moderate(self, text: str) -> Mapping[str, Any]:
        body = await self._post_json(
            "/moderations",
            {"model": settings.openai_moderation_model, "input": text},
        )
        try:
            return body["results"][0]
        except (KeyError, IndexError, TypeError) as exc:
            raise UpstreamUnavailable("openai moderation response missing results") from exc

    async def embed(self, text: str) -> list[float]:
        body = await self._post_json(
            "/embeddings",
            {"model": settings.openai_embedding_model, "input": text},
        )
        try:
            return [float(value) for value in body["data"][0]["embedding"]]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise UpstreamUnavailable("openai embedding response missing vector") from exc

    async def compare_texts(self, existing_text: str, new_text: str) -> Mapping[str, Any]:
        """Ask the chat model whether ``new_text`` plagiarizes ``existing_text``."""
        body = await self._post_json(
            "/chat/completions",
            {
                "model": settings.openai_confirmation_model,
                "messages": [
                    {"role": "system", "content": PLAGIARISM_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": f"EXISTING TEXT:\n{existing_text}\n\nNEW TEXT:\n{new_text}",
                    },
                ],
                "response_format": {"type": "json_object"},
                "max_tokens": 200,
            },
        )
        try:
            content = body["choices"][0]["message"]["content"] or "{}"
            verdict = json.loads(content)
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise UpstreamUnavailable("openai confirmation response unreadable") from exc
        if not isinstance(verdict, dict):
            raise UpstreamUnavailable("openai confirmation response is not an object")
        return verdict


class PerspectiveClient(UpstreamClient):
    """Google Perspective comment analyzer."""

    def _auth_params(self) -> dict[str, str]:
        return {"key": self.config.api_key or ""}

    async def analyze(self, text: str) -> dict[str, float]:
        """Return summary scores keyed by Perspective attribute name."""
        body = await self._post_json(
            "/comments:analyze",
            {
                "comment": {"text": text},
                "requestedAttributes": {name: {} for name in PERSPECTIVE_ATTRIBUTES},
            },
        )
        attributes = body.get("attributeScores") if isinstance(body, dict) else None
        if not isinstance(attributes, dict):
            raise UpstreamUnavailable("perspective response missing attributeScores")
        scores: dict[str, float] = {}
        for name in PERSPECTIVE_ATTRIBUTES:
            value = attributes.get(name, {}).get("summaryScore", {}).get("value")
            scores[name] = float(value or 0.0)
        return scores


class _UpstreamSingletons:
    """Process-wide client instances."""

    openai: OpenAIClient | None = None
    perspective: PerspectiveClient | None = None


def get_openai_client() -> OpenAIClient:
    """Return a singleton OpenAI client built from settings."""
    if _UpstreamSingletons.openai is None:
        _UpstreamSingletons.openai = OpenAIClient(
            UpstreamConfig(
                name="openai",
                base_url=settings.openai_base_url,
                api_key=settings.openai_api_key,
                timeout_seconds=settings.upstream_timeout_seconds,
            )
        )
    return _UpstreamSingletons.openai


def get_perspective_client() -> PerspectiveClient:
    """Return a singleton Perspective client built from settings."""
    if _UpstreamSingletons.perspective is None:
        _UpstreamSingletons.perspective = PerspectiveClient(
            UpstreamConfig(
                name="perspective",
                base_url=settings.perspective_base_url,
                api_key=settings.perspective_api_key,
                timeout_seconds=settings.upstream_timeout_seconds,
            )
        )
    return _UpstreamSingletons.perspective


async def close_upstream_clients() -> None:
    """Close any clients created during the application's lifetime."""
    for client in (_UpstreamSingletons.openai, _UpstreamSingletons.perspective):
        if client is not None:
            await client.close()
