# src/trustgate/models/__init__.py
"""SQLAlchemy models for the Trustgate service."""

from .appeal import Appeal
from .audit import AuditEntry
from .content import ContentEmbedding, ContentItem, ContentVersion
from .jury import JuryAssignment, JuryDeliberation, JurorVote
from .moderation import ModerationDecision
from .promotion import Endorsement, PromotionRequest
from .trust import TrustRecalcEntry, UserTrustScore
from .user import User

__all__ = [
    "Appeal",
    "AuditEntry",
    "ContentEmbedding", "ContentItem", "ContentVersion",
    "JuryAssignment", "JuryDeliberation", "JurorVote",
    "ModerationDecision",
    "Endorsement", "PromotionRequest",
    "TrustRecalcEntry", "UserTrustScore",
    "User",
]
