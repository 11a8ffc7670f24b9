import pytest

from trustgate.core.errors import (
    ForbiddenError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from trustgate.models import Appeal, ModerationDecision, TrustRecalcEntry
from trustgate.models.content import CONTENT_STATUS_FLAGGED, CONTENT_STATUS_PUBLISHED
from trustgate.services.appeals import AppealWorkflow

REASON = "The classifier misread a quotation as harassment."


def test_open_appeal_records_latest_decision(governance, db_session, author, flag_content):
    content = flag_content(author)
    decision = db_session.query(ModerationDecision).filter_by(content_id=content.id).one()

    appeal = governance.appeals.open_appeal(db_session, author, content.id, REASON)

    assert appeal.status == "pending"
    assert appeal.decision_id == decision.id
    assert appeal.reason == REASON
    assert appeal.resolved_at is None


def test_reason_must_be_long_enough(governance, db_session, author, flag_content):
    content = flag_content(author)

    with pytest.raises(ValidationError):
        governance.appeals.open_appeal(db_session, author, content.id, "too short")


def test_only_author_can_appeal(governance, db_session, author, member, flag_content):
    content = flag_content(author)

    with pytest.raises(ForbiddenError):
        governance.appeals.open_appeal(db_session, member, content.id, REASON)
    with pytest.raises(NotFoundError):
        governance.appeals.open_appeal(db_session, author, 999_999, REASON)


def test_only_flagged_content_can_be_appealed(governance, db_session, author):
    draft = governance.content.create(db_session, author, None, "A draft body")

    with pytest.raises(PreconditionError):
        governance.appeals.open_appeal(db_session, author, draft.id, REASON)


def test_second_pending_appeal_is_rejected(governance, db_session, author, flag_content):
    content = flag_content(author)
    governance.appeals.open_appeal(db_session, author, content.id, REASON)

    with pytest.raises(PreconditionError, match="pending appeal"):
        governance.appeals.open_appeal(db_session, author, content.id, REASON)


def test_store_constraint_catches_racing_duplicate(
    governance, db_session, author, flag_content, mocker
):
    content = flag_content(author)
    governance.appeals.open_appeal(db_session, author, content.id, REASON)
    # Simulate a concurrent request that read before the first appeal committed.
    mocker.patch.object(AppealWorkflow, "_find_existing", return_value=[])

    with pytest.raises(PreconditionError, match="pending appeal"):
        governance.appeals.open_appeal(db_session, author, content.id, REASON)

    assert db_session.query(Appeal).filter_by(content_id=content.id).count() == 1


def test_rejected_appeal_cannot_be_reopened(
    governance, db_session, author, admin, flag_content
):
    content = flag_content(author)
    appeal = governance.appeals.open_appeal(db_session, author, content.id, REASON)
    governance.appeals.resolve_appeal(db_session, admin, appeal.id, "rejected", "Decision stands")

    with pytest.raises(PreconditionError, match="rejected"):
        governance.appeals.open_appeal(db_session, author, content.id, REASON)
    assert content.status == CONTENT_STATUS_FLAGGED


def test_approval_publishes_content_and_queues_trust(
    governance, db_session, author, admin, flag_content
):
    content = flag_content(author)
    appeal = governance.appeals.open_appeal(db_session, author, content.id, REASON)

    resolved = governance.appeals.resolve_appeal(db_session, admin, appeal.id, "approved")

    assert resolved.status == "approved"
    assert resolved.resolved_by == admin.id
    assert resolved.resolved_at is not None
    assert content.status == CONTENT_STATUS_PUBLISHED
    reasons = [
        entry.reason
        for entry in db_session.query(TrustRecalcEntry).filter_by(user_id=author.id)
    ]
    assert reasons == [f"appeal_resolved: appeal {appeal.id} approved"]


def test_resolution_rules(governance, db_session, author, moderator, admin, flag_content):
    content = flag_content(author)
    appeal = governance.appeals.open_appeal(db_session, author, content.id, REASON)

    with pytest.raises(ForbiddenError):
        governance.appeals.resolve_appeal(db_session, moderator, appeal.id, "approved")
    with pytest.raises(ValidationError):
        governance.appeals.resolve_appeal(db_session, admin, appeal.id, "pending")
    with pytest.raises(ValidationError):
        governance.appeals.resolve_appeal(db_session, admin, appeal.id, "revision_requested")

    governance.appeals.resolve_appeal(db_session, admin, appeal.id, "rejected", "No")
    with pytest.raises(PreconditionError):
        governance.appeals.resolve_appeal(db_session, admin, appeal.id, "approved")


def test_revision_then_resubmit(governance, db_session, author, admin, flag_content):
    content = flag_content(author)
    appeal = governance.appeals.open_appeal(db_session, author, content.id, REASON)
    governance.appeals.resolve_appeal(
        db_session, admin, appeal.id, "revision_requested", "Remove the second paragraph"
    )

    with pytest.raises(PreconditionError, match="revision was requested"):
        governance.appeals.open_appeal(db_session, author, content.id, REASON)
    with pytest.raises(PreconditionError, match="Revise the content"):
        governance.appeals.resubmit_appeal(db_session, author, appeal.id)

    governance.content.revise(db_session, author, content.id, None, "A gentler body")
    resubmitted = governance.appeals.resubmit_appeal(db_session, author, appeal.id)

    assert resubmitted.status == "pending"
    assert resubmitted.reason == "Resubmitted after revision (content version 2)"
    assert resubmitted.resolved_at is None
    assert resubmitted.admin_response == "Remove the second paragraph"


def test_only_appellant_can_resubmit(
    governance, db_session, author, member, admin, flag_content
):
    content = flag_content(author)
    appeal = governance.appeals.open_appeal(db_session, author, content.id, REASON)

    with pytest.raises(PreconditionError):
        governance.appeals.resubmit_appeal(db_session, author, appeal.id)

    governance.appeals.resolve_appeal(db_session, admin, appeal.id, "revision_requested", "Fix")
    with pytest.raises(ForbiddenError):
        governance.appeals.resubmit_appeal(db_session, member, appeal.id)


def test_listing_and_visibility(
    governance, db_session, make_user, moderator, member, flag_content
):
    first_author = make_user("member", "first")
    second_author = make_user("member", "second")
    first = governance.appeals.open_appeal(
        db_session, first_author, flag_content(first_author).id, REASON
    )
    second = governance.appeals.open_appeal(
        db_session, second_author, flag_content(second_author).id, REASON
    )

    mine = governance.appeals.list_appeals(db_session, first_author)
    everything = governance.appeals.list_appeals(db_session, moderator, "pending")

    assert [appeal.id for appeal in mine] == [first.id]
    assert {appeal.id for appeal in everything} == {first.id, second.id}
    assert governance.appeals.get_appeal(db_session, moderator, first.id).id == first.id
    with pytest.raises(ForbiddenError):
        governance.appeals.get_appeal(db_session, member, first.id)
