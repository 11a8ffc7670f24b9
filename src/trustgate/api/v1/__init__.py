# src/trustgate/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    appeals_router,
    audit_router,
    content_router,
    jury_router,
    moderation_router,
    promotions_router,
    trust_router,
    users_router,
)

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
