"""referrals_points_and_applications

Revision ID: 3c1e9a7b5d20
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "3c1e9a7b5d20"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "referral_codes",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("owner_user_id", sa.String(64), nullable=False),
        sa.Column("code", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("owner_user_id", name="uq_referral_codes_owner_user_id"),
        sa.UniqueConstraint("code", name="uq_referral_codes_code"),
    )

    op.create_table(
        "referrals",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("sponsor_user_id", sa.String(64), nullable=False),
        sa.Column("referee_user_id", sa.String(64), nullable=False),
        sa.Column("referral_code", sa.String(16), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("progress_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("reward_granted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("reward_points", sa.Integer(), nullable=True),
        sa.Column("rewarded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reward_settled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("status IN ('PENDING','COMPLETED')", name="ck_referrals_status"),
        sa.CheckConstraint("sponsor_user_id <> referee_user_id", name="ck_referrals_no_self_referral"),
        sa.CheckConstraint("progress_count >= 0", name="ck_referrals_progress_non_negative"),
        sa.CheckConstraint(
            "NOT reward_granted OR status = 'COMPLETED'",
            name="ck_referrals_granted_implies_completed",
        ),
        sa.CheckConstraint(
            "reward_points IS NULL OR (reward_granted AND reward_points > 0)",
            name="ck_referrals_reward_points_on_grant",
        ),
        sa.CheckConstraint(
            "reward_settled_at IS NULL OR reward_granted",
            name="ck_referrals_settled_implies_granted",
        ),
        sa.UniqueConstraint("referee_user_id", name="uq_referrals_referee_user_id"),
    )
    op.create_index("idx_referrals_sponsor", "referrals", ["sponsor_user_id"])
    op.create_index(
        "idx_referrals_unsettled_rewards",
        "referrals",
        ["rewarded_at"],
        postgresql_where=sa.text("reward_granted AND reward_settled_at IS NULL"),
    )

    op.create_table(
        "points_ledger_entries",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("source", sa.String(32), nullable=False),
        sa.Column("idempotency_key", sa.String(96), nullable=False),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_points_ledger_entries_amount_positive"),
        sa.UniqueConstraint("idempotency_key", name="uq_points_ledger_entries_idempotency_key"),
    )
    op.create_index("idx_points_ledger_user_created", "points_ledger_entries", ["user_id", "created_at"])
    op.create_index("idx_points_ledger_source", "points_ledger_entries", ["source"])

    op.create_table(
        "point_balances",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("total_points >= 0", name="ck_point_balances_total_non_negative"),
    )

    op.create_table(
        "work_units",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("assigned_applicant_user_id", sa.String(64), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("status IN ('OPEN','ASSIGNED','CLOSED')", name="ck_work_units_status"),
        sa.CheckConstraint(
            "status <> 'ASSIGNED' OR assigned_applicant_user_id IS NOT NULL",
            name="ck_work_units_assigned_has_applicant",
        ),
    )
    op.create_index("idx_work_units_status_created", "work_units", ["status", "created_at"])

    op.create_table(
        "applications",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("work_unit_id", sa.String(64), nullable=False),
        sa.Column("applicant_user_id", sa.String(64), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column("reviewer_user_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('PENDING','APPROVED','REJECTED')", name="ck_applications_status"),
        sa.CheckConstraint(
            "(status = 'PENDING') = (resolved_at IS NULL)",
            name="ck_applications_resolved_at_matches_status",
        ),
        sa.CheckConstraint(
            "status <> 'REJECTED' OR resolution_notes IS NOT NULL",
            name="ck_applications_rejection_has_notes",
        ),
        sa.ForeignKeyConstraint(["work_unit_id"], ["work_units.id"]),
        sa.UniqueConstraint(
            "work_unit_id",
            "applicant_user_id",
            name="uq_applications_work_unit_applicant",
        ),
    )
    op.create_index("idx_applications_status_created", "applications", ["status", "created_at"])
    op.create_index("idx_applications_applicant", "applications", ["applicant_user_id"])
    op.create_index(
        "uq_applications_single_approved_per_work_unit",
        "applications",
        ["work_unit_id"],
        unique=True,
        postgresql_where=sa.text("status = 'APPROVED'"),
    )


def downgrade() -> None:
    op.drop_index("uq_applications_single_approved_per_work_unit", table_name="applications")
    op.drop_index("idx_applications_applicant", table_name="applications")
    op.drop_index("idx_applications_status_created", table_name="applications")
    op.drop_table("applications")

    op.drop_index("idx_work_units_status_created", table_name="work_units")
    op.drop_table("work_units")

    op.drop_table("point_balances")

    op.drop_index("idx_points_ledger_source", table_name="points_ledger_entries")
    op.drop_index("idx_points_ledger_user_created", table_name="points_ledger_entries")
    op.drop_table("points_ledger_entries")

    op.drop_index("idx_referrals_unsettled_rewards", table_name="referrals")
    op.drop_index("idx_referrals_sponsor", table_name="referrals")
    op.drop_table("referrals")

    op.drop_table("referral_codes")
