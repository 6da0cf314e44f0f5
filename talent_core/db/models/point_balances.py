from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from talent_core.db.models.base import Base


class PointBalance(Base):
    __tablename__ = "point_balances"
    __table_args__ = (
        CheckConstraint("total_points >= 0", name="ck_point_balances_total_non_negative"),
    )

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
