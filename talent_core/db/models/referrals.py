from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from talent_core.db.models.base import Base


class Referral(Base):
    """Sponsor -> referee relationship with its qualifying-action counter."""

    __tablename__ = "referrals"
    __table_args__ = (
        CheckConstraint("status IN ('PENDING','COMPLETED')", name="ck_referrals_status"),
        CheckConstraint(
            "sponsor_user_id <> referee_user_id", name="ck_referrals_no_self_referral"
        ),
        CheckConstraint("progress_count >= 0", name="ck_referrals_progress_non_negative"),
        CheckConstraint(
            "NOT reward_granted OR status = 'COMPLETED'",
            name="ck_referrals_granted_implies_completed",
        ),
        CheckConstraint(
            "reward_points IS NULL OR (reward_granted AND reward_points > 0)",
            name="ck_referrals_reward_points_on_grant",
        ),
        CheckConstraint(
            "reward_settled_at IS NULL OR reward_granted",
            name="ck_referrals_settled_implies_granted",
        ),
        UniqueConstraint("referee_user_id", name="uq_referrals_referee_user_id"),
        Index("idx_referrals_sponsor", "sponsor_user_id"),
        Index(
            "idx_referrals_unsettled_rewards",
            "rewarded_at",
            postgresql_where=text("reward_granted AND reward_settled_at IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    sponsor_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    referee_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    referral_code: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    progress_count: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    reward_granted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    reward_points: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rewarded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reward_settled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
