# src/trustgate/services/__init__.py
"""Business logic services for the Trustgate application."""

from .appeals import AppealWorkflow
from .audit import AuditLog
from .classification import ClassificationGateway
from .content import ContentService
from .events import GovernanceEvents
from .governance import Governance, build_governance, get_governance
from .jury import JuryService
from .moderation import ModerationPipeline
from .originality import OriginalityChecker
from .promotion import PromotionGovernance
from .trust import TrustRecalcQueue, TrustService

__all__ = [
    "AppealWorkflow",
    "AuditLog",
    "ClassificationGateway",
    "ContentService",
    "Governance",
    "GovernanceEvents",
    "JuryService",
    "ModerationPipeline",
    "OriginalityChecker",
    "PromotionGovernance",
    "TrustRecalcQueue",
    "TrustService",
    "build_governance",
    "get_governance",
]
