"""Tagged result type for calls to services that may be unavailable.

Upstream adapters return ``Available(value)`` or ``Unavailable(reason)``
instead of ``None`` or sentinel strings, so callers branch on exactly one
case when deciding to fail open.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Available(Generic[T]):
    """The service answered."""

    value: T


@dataclass(frozen=True)
class Unavailable:
    """The service could not answer (not configured, unreachable, timed out)."""

    reason: str


ServiceAvailability = Union[Available[T], Unavailable]
