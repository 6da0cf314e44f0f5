from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from talent_core.db.models.base import Base


class WorkUnit(Base):
    __tablename__ = "work_units"
    __table_args__ = (
        CheckConstraint("status IN ('OPEN','ASSIGNED','CLOSED')", name="ck_work_units_status"),
        CheckConstraint(
            "status <> 'ASSIGNED' OR assigned_applicant_user_id IS NOT NULL",
            name="ck_work_units_assigned_has_applicant",
        ),
        Index("idx_work_units_status_created", "status", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    assigned_applicant_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
