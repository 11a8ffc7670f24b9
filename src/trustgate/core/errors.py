"""Error taxonomy shared by the governance services.

Services raise these; the API layer maps each class to an HTTP status.
Every error carries a stable ``code`` so clients can branch on it without
parsing the human-readable message.
"""

from __future__ import annotations


class GovernanceError(Exception):
    """Base class for all errors raised by the governance engine."""

    code: str = "governance_error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(GovernanceError):
    """Malformed or too-short input, rejected before any state mutation."""

    code = "validation_error"


class PreconditionError(GovernanceError):
    """The requested transition conflicts with the current state."""

    code = "precondition_failed"


class ForbiddenError(GovernanceError):
    """The actor lacks the role or ownership the operation requires."""

    code = "forbidden"


class NotFoundError(GovernanceError):
    """A referenced record does not exist."""

    code = "not_found"


class UpstreamUnavailable(GovernanceError):
    """An external classification or originality service could not answer.

    Raised only inside upstream clients; callers convert it into an
    ``Unavailable`` availability result and never surface it to users.
    """

    code = "upstream_unavailable"
