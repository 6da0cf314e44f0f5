from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.ext.asyncio import AsyncSession

from talent_core.db.models.referral_codes import ReferralCode


class ReferralCodesRepo:
    @staticmethod
    async def get_by_owner_user_id(
        session: AsyncSession,
        owner_user_id: str,
    ) -> ReferralCode | None:
        stmt = select(ReferralCode).where(ReferralCode.owner_user_id == owner_user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_code(session: AsyncSession, code: str) -> ReferralCode | None:
        stmt = select(ReferralCode).where(ReferralCode.code == code)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def try_create(
        session: AsyncSession,
        *,
        owner_user_id: str,
        code: str,
        created_at: datetime,
    ) -> str | None:
        """Returns the inserted code, or None when either unique key already exists."""
        stmt = (
            postgresql_insert(ReferralCode)
            .values(owner_user_id=owner_user_id, code=code, created_at=created_at)
            .on_conflict_do_nothing()
            .returning(ReferralCode.code)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()
