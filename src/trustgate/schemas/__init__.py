# src/trustgate/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .appeal import AppealCreate, AppealResolve, AppealResponse
from .audit import AuditEntryResponse, AuditPageResponse
from .common import ErrorResponse
from .content import ContentCreate, ContentResponse, ContentVersionResponse
from .jury import (
    DeliberationCreate,
    DeliberationResponse,
    DeliberationStatusResponse,
    JurorVoteCreate,
)
from .moderation import DecisionResponse, ModerationResultResponse
from .promotion import (
    EndorsementCreate,
    EndorsementResponse,
    EndorsementResultResponse,
    PromotionCreate,
    PromotionReject,
    PromotionResponse,
    RoleChange,
)
from .trust import QueueStatusResponse, SweepReportResponse, TrustScoreResponse
from .user import UserResponse

__all__ = [
    "AppealCreate", "AppealResolve", "AppealResponse",
    "AuditEntryResponse", "AuditPageResponse",
    "ErrorResponse",
    "ContentCreate", "ContentResponse", "ContentVersionResponse",
    "DeliberationCreate", "DeliberationResponse", "DeliberationStatusResponse", "JurorVoteCreate",
    "DecisionResponse", "ModerationResultResponse",
    "EndorsementCreate", "EndorsementResponse", "EndorsementResultResponse",
    "PromotionCreate", "PromotionReject", "PromotionResponse", "RoleChange",
    "QueueStatusResponse", "SweepReportResponse", "TrustScoreResponse",
    "UserResponse",
]
