"""Explicit observer registry for governance state changes.

Services that mutate governance state emit events here; listeners run
synchronously with the emitting session, so whatever they write commits or
rolls back together with the change that triggered them.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

EVENT_ROLE_CHANGED = "role_changed"
EVENT_ENDORSEMENT_CAST = "endorsement_cast"
EVENT_APPEAL_RESOLVED = "appeal_resolved"
EVENT_CONTENT_BLOCKED = "content_blocked"

GOVERNANCE_EVENTS = (
    EVENT_ROLE_CHANGED,
    EVENT_ENDORSEMENT_CAST,
    EVENT_APPEAL_RESOLVED,
    EVENT_CONTENT_BLOCKED,
)


@dataclass(frozen=True)
class GovernanceEvent:
    """Something happened to ``user_id`` that may change derived metrics."""

    name: str
    user_id: int
    detail: str


Listener = Callable[[Session, GovernanceEvent], None]


class GovernanceEvents:
    """Per-event listener lists."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, name: str, listener: Listener) -> None:
        if name not in GOVERNANCE_EVENTS:
            raise ValueError(f"Unknown governance event: {name}")
        self._listeners[name].append(listener)

    def emit(self, db: Session, name: str, user_id: int, detail: str) -> None:
        event = GovernanceEvent(name=name, user_id=user_id, detail=detail)
        logger.debug("Emitting %s for user %s", name, user_id)
        for listener in self._listeners.get(name, ()):
            listener(db, event)
