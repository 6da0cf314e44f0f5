from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from talent_core.db.models.base import Base


class PointsLedgerEntry(Base):
    __tablename__ = "points_ledger_entries"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_points_ledger_entries_amount_positive"),
        UniqueConstraint("idempotency_key", name="uq_points_ledger_entries_idempotency_key"),
        Index("idx_points_ledger_user_created", "user_id", "created_at"),
        Index("idx_points_ledger_source", "source"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    idempotency_key: Mapped[str] = mapped_column(String(96), nullable=False)
    metadata_: Mapped[dict[str, object]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
