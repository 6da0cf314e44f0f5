from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.ext.asyncio import AsyncSession

from talent_core.db.models.referrals import Referral
from talent_core.referrals.constants import (
    RELATIONSHIP_STATUS_COMPLETED,
    RELATIONSHIP_STATUS_PENDING,
)


class ReferralsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, referral_id: int) -> Referral | None:
        return await session.get(Referral, referral_id)

    @staticmethod
    async def get_by_referee_user_id(
        session: AsyncSession,
        *,
        referee_user_id: str,
    ) -> Referral | None:
        stmt = select(Referral).where(Referral.referee_user_id == referee_user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def try_create_pending(
        session: AsyncSession,
        *,
        sponsor_user_id: str,
        referee_user_id: str,
        referral_code: str,
        created_at: datetime,
    ) -> Referral | None:
        stmt = (
            postgresql_insert(Referral)
            .values(
                sponsor_user_id=sponsor_user_id,
                referee_user_id=referee_user_id,
                referral_code=referral_code,
                status=RELATIONSHIP_STATUS_PENDING,
                progress_count=0,
                reward_granted=False,
                created_at=created_at,
            )
            .on_conflict_do_nothing(index_elements=[Referral.referee_user_id])
            .returning(Referral)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def increment_progress(
        session: AsyncSession,
        *,
        referee_user_id: str,
    ) -> Referral | None:
        """Bumps the counter in place; the row stays locked until the transaction ends."""
        stmt = (
            update(Referral)
            .where(Referral.referee_user_id == referee_user_id)
            .values(progress_count=Referral.progress_count + 1)
            .returning(Referral)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def claim_reward(
        session: AsyncSession,
        *,
        referral_id: int,
        tasks_required: int,
        reward_points: int,
        claimed_at: datetime,
    ) -> Referral | None:
        stmt = (
            update(Referral)
            .where(
                Referral.id == referral_id,
                Referral.reward_granted.is_(False),
                Referral.progress_count >= tasks_required,
            )
            .values(
                reward_granted=True,
                status=RELATIONSHIP_STATUS_COMPLETED,
                reward_points=reward_points,
                rewarded_at=claimed_at,
            )
            .returning(Referral)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def mark_reward_settled(
        session: AsyncSession,
        *,
        referral_id: int,
        settled_at: datetime,
    ) -> bool:
        stmt = (
            update(Referral)
            .where(
                Referral.id == referral_id,
                Referral.reward_granted.is_(True),
                Referral.reward_settled_at.is_(None),
            )
            .values(reward_settled_at=settled_at)
            .returning(Referral.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def list_unsettled_reward_ids(
        session: AsyncSession,
        *,
        rewarded_before_utc: datetime,
        limit: int = 200,
    ) -> list[int]:
        stmt = (
            select(Referral.id)
            .where(
                Referral.reward_granted.is_(True),
                Referral.reward_settled_at.is_(None),
                Referral.rewarded_at <= rewarded_before_utc,
            )
            .order_by(Referral.rewarded_at.asc(), Referral.id.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return [int(referral_id) for referral_id in result.scalars().all()]

    @staticmethod
    async def list_for_sponsor(
        session: AsyncSession,
        *,
        sponsor_user_id: str,
    ) -> list[Referral]:
        stmt = (
            select(Referral)
            .where(Referral.sponsor_user_id == sponsor_user_id)
            .order_by(Referral.created_at.desc(), Referral.id.desc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
