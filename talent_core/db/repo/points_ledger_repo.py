from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.ext.asyncio import AsyncSession

from talent_core.db.models.point_balances import PointBalance
from talent_core.db.models.points_ledger_entries import PointsLedgerEntry


class PointsLedgerRepo:
    @staticmethod
    async def get_by_idempotency_key(
        session: AsyncSession, idempotency_key: str
    ) -> PointsLedgerEntry | None:
        stmt = select(PointsLedgerEntry).where(
            PointsLedgerEntry.idempotency_key == idempotency_key
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def try_create_entry(
        session: AsyncSession,
        *,
        user_id: str,
        amount: int,
        source: str,
        idempotency_key: str,
        metadata: dict[str, object],
        created_at: datetime,
    ) -> int | None:
        stmt = (
            postgresql_insert(PointsLedgerEntry)
            .values(
                user_id=user_id,
                amount=amount,
                source=source,
                idempotency_key=idempotency_key,
                metadata_=metadata,
                created_at=created_at,
            )
            .on_conflict_do_nothing(index_elements=[PointsLedgerEntry.idempotency_key])
            .returning(PointsLedgerEntry.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def add_to_balance(
        session: AsyncSession,
        *,
        user_id: str,
        amount: int,
        updated_at: datetime,
    ) -> int:
        insert_stmt = postgresql_insert(PointBalance).values(
            user_id=user_id,
            total_points=amount,
            updated_at=updated_at,
        )
        stmt = insert_stmt.on_conflict_do_update(
            index_elements=[PointBalance.user_id],
            set_={
                "total_points": PointBalance.total_points + insert_stmt.excluded.total_points,
                "updated_at": insert_stmt.excluded.updated_at,
            },
        ).returning(PointBalance.total_points)
        result = await session.execute(stmt)
        return int(result.scalar_one())

    @staticmethod
    async def get_balance(session: AsyncSession, user_id: str) -> int:
        stmt = select(PointBalance.total_points).where(PointBalance.user_id == user_id)
        result = await session.execute(stmt)
        return int(result.scalar_one_or_none() or 0)
