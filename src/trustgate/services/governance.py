"""Wiring of the governance services around one event registry."""

from __future__ import annotations

import random
from dataclasses import dataclass

from trustgate.services.appeals import AppealWorkflow
from trustgate.services.audit import AuditLog
from trustgate.services.classification import ClassificationGateway, default_gateway
from trustgate.services.content import ContentService
from trustgate.services.events import GovernanceEvents
from trustgate.services.jury import JuryService
from trustgate.services.moderation import ModerationPipeline
from trustgate.services.originality import OriginalityChecker, default_checker
from trustgate.services.promotion import PromotionGovernance
from trustgate.services.trust import TrustRecalcQueue, TrustService


@dataclass
class Governance:
    """All governance components sharing one event registry."""

    events: GovernanceEvents
    trust_queue: TrustRecalcQueue
    content: ContentService
    moderation: ModerationPipeline
    appeals: AppealWorkflow
    jury: JuryService
    promotions: PromotionGovernance
    audit: AuditLog
    trust: TrustService


def build_governance(
    gateway: ClassificationGateway | None = None,
    checker: OriginalityChecker | None = None,
    rng: random.Random | None = None,
) -> Governance:
    """Create the components; the trust queue subscribes before anything emits."""
    events = GovernanceEvents()
    trust_queue = TrustRecalcQueue()
    trust_queue.register(events)
    return Governance(
        events=events,
        trust_queue=trust_queue,
        content=ContentService(),
        moderation=ModerationPipeline(
            gateway or default_gateway(), checker or default_checker(), events
        ),
        appeals=AppealWorkflow(events),
        jury=JuryService(events, rng=rng),
        promotions=PromotionGovernance(events),
        audit=AuditLog(),
        trust=TrustService(trust_queue),
    )


class _GovernanceSingleton:
    instance: Governance | None = None


def get_governance() -> Governance:
    """Return the process-wide governance components."""
    if _GovernanceSingleton.instance is None:
        _GovernanceSingleton.instance = build_governance()
    return _GovernanceSingleton.instance
