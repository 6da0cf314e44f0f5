from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from talent_core.db.models.base import Base


class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING','APPROVED','REJECTED')",
            name="ck_applications_status",
        ),
        CheckConstraint(
            "(status = 'PENDING') = (resolved_at IS NULL)",
            name="ck_applications_resolved_at_matches_status",
        ),
        CheckConstraint(
            "status <> 'REJECTED' OR resolution_notes IS NOT NULL",
            name="ck_applications_rejection_has_notes",
        ),
        UniqueConstraint(
            "work_unit_id",
            "applicant_user_id",
            name="uq_applications_work_unit_applicant",
        ),
        Index("idx_applications_status_created", "status", "created_at"),
        Index("idx_applications_applicant", "applicant_user_id"),
        Index(
            "uq_applications_single_approved_per_work_unit",
            "work_unit_id",
            unique=True,
            postgresql_where=text("status = 'APPROVED'"),
        ),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    work_unit_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("work_units.id"), nullable=False
    )
    applicant_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    resolution_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewer_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
