"""governance schema

Revision ID: 3a1f0c2d9b7e
Revises:
Create Date: 2026-10-19 09:12:44.318205

"""
from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from pgvector.sqlalchemy import Vector

# revision identifiers, used by Alembic.
revision: str = "3a1f0c2d9b7e"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

PENDING_ONLY = sa.text("status = 'pending'")
EMBEDDING_DIMENSIONS = 1536


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    """Create the moderation, appeal, jury, promotion, audit and trust tables."""
    if op.get_context().dialect.name == "postgresql":
        op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    op.create_table(
        "user_account",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False),
        _timestamp("created_at"),
        sa.CheckConstraint(
            "role IN ('member', 'researcher', 'moderator', 'admin')",
            name="ck_user_account_role",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "content_item",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        _timestamp("created_at"),
        sa.Column("current_version_id", sa.Integer(), nullable=True),
        sa.CheckConstraint(
            "status IN ('draft', 'published', 'flagged', 'blocked')",
            name="ck_content_item_status",
        ),
        sa.ForeignKeyConstraint(["author_id"], ["user_account.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_content_item_author_id", "content_item", ["author_id"])

    op.create_table(
        "content_version",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("content_id", sa.Integer(), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("body", sa.Text(), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["content_id"], ["content_item.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("content_id", "number", name="uq_content_version_number"),
    )

    # content_item and content_version reference each other.
    with op.batch_alter_table("content_item") as batch_op:
        batch_op.create_foreign_key(
            "fk_content_item_current_version",
            "content_version",
            ["current_version_id"],
            ["id"],
        )

    op.create_table(
        "content_embedding",
        sa.Column("content_id", sa.Integer(), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.Column(
            "vector",
            Vector(EMBEDDING_DIMENSIONS).with_variant(sa.JSON(), "sqlite"),
            nullable=False,
        ),
        sa.Column("embedded_text", sa.Text(), nullable=False),
        sa.Column("model", sa.String(length=100), nullable=False),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["content_id"], ["content_item.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["version_id"], ["content_version.id"]),
        sa.PrimaryKeyConstraint("content_id"),
    )

    op.create_table(
        "moderation_decision",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("content_id", sa.Integer(), nullable=False),
        sa.Column("content_version_id", sa.Integer(), nullable=False),
        sa.Column("outcome", sa.String(length=10), nullable=False),
        sa.Column("classification_available", sa.Boolean(), nullable=False),
        sa.Column("classification_backend", sa.String(length=50), nullable=True),
        sa.Column("flagged", sa.Boolean(), nullable=False),
        sa.Column("flagged_categories", sa.JSON(), nullable=False),
        sa.Column("category_scores", sa.JSON(), nullable=False),
        sa.Column("originality_available", sa.Boolean(), nullable=False),
        sa.Column("similarity_score", sa.Float(), nullable=False),
        sa.Column("matched_source_ids", sa.JSON(), nullable=False),
        sa.Column("is_plagiarized", sa.Boolean(), nullable=False),
        sa.Column("originality_details", sa.Text(), nullable=True),
        sa.Column("warnings", sa.JSON(), nullable=False),
        sa.Column("diagnostic_note", sa.Text(), nullable=True),
        _timestamp("created_at"),
        sa.CheckConstraint("outcome IN ('allow', 'block')", name="ck_moderation_decision_outcome"),
        sa.ForeignKeyConstraint(["content_id"], ["content_item.id"]),
        sa.ForeignKeyConstraint(["content_version_id"], ["content_version.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_moderation_decision_content_created",
        "moderation_decision",
        ["content_id", "created_at"],
    )

    op.create_table(
        "appeal",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("content_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("decision_id", sa.Integer(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("admin_response", sa.Text(), nullable=True),
        sa.Column("resolved_by", sa.Integer(), nullable=True),
        _timestamp("resolved_at", nullable=True),
        sa.Column("revision_base_version", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'revision_requested')",
            name="ck_appeal_status",
        ),
        sa.ForeignKeyConstraint(["content_id"], ["content_item.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["user_account.id"]),
        sa.ForeignKeyConstraint(["decision_id"], ["moderation_decision.id"]),
        sa.ForeignKeyConstraint(["resolved_by"], ["user_account.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_appeal_content_id", "appeal", ["content_id"])
    op.create_index("ix_appeal_user_id", "appeal", ["user_id"])
    op.create_index(
        "uq_appeal_pending_per_content_user",
        "appeal",
        ["content_id", "user_id"],
        unique=True,
        sqlite_where=PENDING_ONLY,
        postgresql_where=PENDING_ONLY,
    )

    op.create_table(
        "jury_deliberation",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("appeal_id", sa.Integer(), nullable=False),
        sa.Column("required_votes", sa.Integer(), nullable=False),
        sa.Column("final_decision", sa.String(length=10), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        _timestamp("concluded_at", nullable=True),
        sa.CheckConstraint("required_votes >= 1", name="ck_jury_deliberation_required_votes"),
        sa.CheckConstraint(
            "final_decision IS NULL OR final_decision IN ('uphold', 'overturn', 'split')",
            name="ck_jury_deliberation_final_decision",
        ),
        sa.ForeignKeyConstraint(["appeal_id"], ["appeal.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["user_account.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("appeal_id"),
    )

    op.create_table(
        "jury_assignment",
        sa.Column("deliberation_id", sa.Integer(), nullable=False),
        sa.Column("juror_id", sa.Integer(), nullable=False),
        _timestamp("assigned_at"),
        sa.ForeignKeyConstraint(
            ["deliberation_id"], ["jury_deliberation.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["juror_id"], ["user_account.id"]),
        sa.PrimaryKeyConstraint("deliberation_id", "juror_id"),
    )

    op.create_table(
        "juror_vote",
        sa.Column("deliberation_id", sa.Integer(), nullable=False),
        sa.Column("juror_id", sa.Integer(), nullable=False),
        sa.Column("vote", sa.String(length=10), nullable=False),
        sa.Column("reasoning", sa.Text(), nullable=False),
        _timestamp("created_at"),
        sa.CheckConstraint("vote IN ('uphold', 'overturn')", name="ck_juror_vote_vote"),
        sa.ForeignKeyConstraint(
            ["deliberation_id"], ["jury_deliberation.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["juror_id"], ["user_account.id"]),
        sa.PrimaryKeyConstraint("deliberation_id", "juror_id"),
    )

    op.create_table(
        "promotion_request",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("current_role", sa.String(length=20), nullable=False),
        sa.Column("requested_role", sa.String(length=20), nullable=False),
        sa.Column("justification", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("required_moderator_endorsements", sa.Integer(), nullable=False),
        sa.Column("required_admin_endorsements", sa.Integer(), nullable=False),
        sa.Column("resolved_by", sa.Integer(), nullable=True),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        _timestamp("resolved_at", nullable=True),
        _timestamp("created_at"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_promotion_request_status",
        ),
        sa.CheckConstraint(
            "required_moderator_endorsements >= 1 AND required_admin_endorsements >= 1",
            name="ck_promotion_request_quorum",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["user_account.id"]),
        sa.ForeignKeyConstraint(["resolved_by"], ["user_account.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_promotion_request_user_id", "promotion_request", ["user_id"])
    op.create_index(
        "uq_promotion_request_pending_per_user",
        "promotion_request",
        ["user_id"],
        unique=True,
        sqlite_where=PENDING_ONLY,
        postgresql_where=PENDING_ONLY,
    )

    op.create_table(
        "endorsement",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("request_id", sa.Integer(), nullable=False),
        sa.Column("endorser_id", sa.Integer(), nullable=False),
        sa.Column("endorser_tier", sa.String(length=20), nullable=False),
        sa.Column("justification", sa.Text(), nullable=False),
        _timestamp("created_at"),
        sa.CheckConstraint("endorser_tier IN ('moderator', 'admin')", name="ck_endorsement_tier"),
        sa.ForeignKeyConstraint(["request_id"], ["promotion_request.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["endorser_id"], ["user_account.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("request_id", "endorser_id", name="uq_endorsement_request_endorser"),
    )

    op.create_table(
        "audit_entry",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("subject_user_id", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=False),
        sa.Column("old_role", sa.String(length=20), nullable=False),
        sa.Column("new_role", sa.String(length=20), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("promotion_request_id", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["subject_user_id"], ["user_account.id"]),
        sa.ForeignKeyConstraint(["actor_id"], ["user_account.id"]),
        sa.ForeignKeyConstraint(["promotion_request_id"], ["promotion_request.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("promotion_request_id"),
    )
    op.create_index("ix_audit_entry_subject_user_id", "audit_entry", ["subject_user_id"])
    op.create_index("ix_audit_entry_created", "audit_entry", ["created_at", "id"])

    op.create_table(
        "trust_recalc_queue",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        _timestamp("enqueued_at"),
        sa.Column("processed", sa.Boolean(), nullable=False),
        sa.Column("claim_token", sa.String(length=32), nullable=True),
        _timestamp("claimed_at", nullable=True),
        _timestamp("processed_at", nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["user_account.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_trust_recalc_queue_pending", "trust_recalc_queue", ["processed", "id"]
    )

    op.create_table(
        "user_trust_score",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("endorsements_received", sa.Integer(), nullable=False),
        sa.Column("appeals_approved", sa.Integer(), nullable=False),
        sa.Column("appeals_rejected", sa.Integer(), nullable=False),
        sa.Column("blocked_decisions", sa.Integer(), nullable=False),
        _timestamp("computed_at"),
        sa.ForeignKeyConstraint(["user_id"], ["user_account.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id"),
    )


def downgrade() -> None:
    """Drop every governance table."""
    op.drop_table("user_trust_score")
    op.drop_index("ix_trust_recalc_queue_pending", table_name="trust_recalc_queue")
    op.drop_table("trust_recalc_queue")
    op.drop_index("ix_audit_entry_created", table_name="audit_entry")
    op.drop_index("ix_audit_entry_subject_user_id", table_name="audit_entry")
    op.drop_table("audit_entry")
    op.drop_table("endorsement")
    op.drop_index("uq_promotion_request_pending_per_user", table_name="promotion_request")
    op.drop_index("ix_promotion_request_user_id", table_name="promotion_request")
    op.drop_table("promotion_request")
    op.drop_table("juror_vote")
    op.drop_table("jury_assignment")
    op.drop_table("jury_deliberation")
    op.drop_index("uq_appeal_pending_per_content_user", table_name="appeal")
    op.drop_index("ix_appeal_user_id", table_name="appeal")
    op.drop_index("ix_appeal_content_id", table_name="appeal")
    op.drop_table("appeal")
    op.drop_index("ix_moderation_decision_content_created", table_name="moderation_decision")
    op.drop_table("moderation_decision")
    op.drop_table("content_embedding")
    with op.batch_alter_table("content_item") as batch_op:
        batch_op.drop_constraint("fk_content_item_current_version", type_="foreignkey")
    op.drop_table("content_version")
    op.drop_index("ix_content_item_author_id", table_name="content_item")
    op.drop_table("content_item")
    op.drop_table("user_account")
