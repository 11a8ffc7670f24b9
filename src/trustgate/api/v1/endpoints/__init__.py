# src/trustgate/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .appeals import router as appeals_router
from .audit import router as audit_router
from .content import router as content_router
from .jury import router as jury_router
from .moderation import router as moderation_router
from .promotions import router as promotions_router
from .trust import router as trust_router
from .users import router as users_router

__all__ = [
    "appeals_router",
    "audit_router",
    "content_router",
    "jury_router",
    "moderation_router",
    "promotions_router",
    "trust_router",
    "users_router",
]
