from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.ext.asyncio import AsyncSession

from talent_core.applications.constants import WORK_UNIT_STATUS_ASSIGNED, WORK_UNIT_STATUS_OPEN
from talent_core.db.models.work_units import WorkUnit


class WorkUnitsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, work_unit_id: str) -> WorkUnit | None:
        return await session.get(WorkUnit, work_unit_id)

    @staticmethod
    async def get_by_id_for_share(session: AsyncSession, work_unit_id: str) -> WorkUnit | None:
        """Holds a shared lock so an approval cannot flip the unit until the caller commits."""
        stmt = select(WorkUnit).where(WorkUnit.id == work_unit_id).with_for_update(read=True)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def upsert_open(
        session: AsyncSession,
        *,
        work_unit_id: str,
        title: str,
        now_utc: datetime,
    ) -> None:
        stmt = postgresql_insert(WorkUnit).values(
            id=work_unit_id,
            title=title,
            status=WORK_UNIT_STATUS_OPEN,
            created_at=now_utc,
            updated_at=now_utc,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[WorkUnit.id],
            set_={"title": stmt.excluded.title, "updated_at": stmt.excluded.updated_at},
        )
        await session.execute(stmt)

    @staticmethod
    async def try_assign(
        session: AsyncSession,
        *,
        work_unit_id: str,
        applicant_user_id: str,
        assigned_at: datetime,
    ) -> bool:
        stmt = (
            update(WorkUnit)
            .where(
                WorkUnit.id == work_unit_id,
                WorkUnit.status == WORK_UNIT_STATUS_OPEN,
                WorkUnit.assigned_applicant_user_id.is_(None),
            )
            .values(
                status=WORK_UNIT_STATUS_ASSIGNED,
                assigned_applicant_user_id=applicant_user_id,
                assigned_at=assigned_at,
                updated_at=assigned_at,
            )
            .returning(WorkUnit.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def list_open_unassigned(session: AsyncSession, *, limit: int) -> list[WorkUnit]:
        stmt = (
            select(WorkUnit)
            .where(
                WorkUnit.status == WORK_UNIT_STATUS_OPEN,
                WorkUnit.assigned_applicant_user_id.is_(None),
            )
            .order_by(WorkUnit.created_at.desc(), WorkUnit.id.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
