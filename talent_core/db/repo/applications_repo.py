from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.ext.asyncio import AsyncSession

from talent_core.applications.constants import APPLICATION_STATUS_PENDING
from talent_core.db.models.applications import Application


class ApplicationsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, application_id: int) -> Application | None:
        return await session.get(Application, application_id)

    @staticmethod
    async def try_create_pending(
        session: AsyncSession,
        *,
        work_unit_id: str,
        applicant_user_id: str,
        created_at: datetime,
    ) -> Application | None:
        stmt = (
            postgresql_insert(Application)
            .values(
                work_unit_id=work_unit_id,
                applicant_user_id=applicant_user_id,
                status=APPLICATION_STATUS_PENDING,
                created_at=created_at,
            )
            .on_conflict_do_nothing(constraint="uq_applications_work_unit_applicant")
            .returning(Application)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def resolve_pending(
        session: AsyncSession,
        *,
        application_id: int,
        status: str,
        resolution_notes: str | None,
        reviewer_user_id: str | None,
        resolved_at: datetime,
    ) -> Application | None:
        stmt = (
            update(Application)
            .where(
                Application.id == application_id,
                Application.status == APPLICATION_STATUS_PENDING,
            )
            .values(
                status=status,
                resolution_notes=resolution_notes,
                reviewer_user_id=reviewer_user_id,
                resolved_at=resolved_at,
            )
            .returning(Application)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_recent(
        session: AsyncSession,
        *,
        status: str | None,
        limit: int,
    ) -> list[Application]:
        stmt = select(Application)
        if status is not None:
            stmt = stmt.where(Application.status == status)
        stmt = stmt.order_by(Application.created_at.desc(), Application.id.desc()).limit(limit)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_for_applicant(
        session: AsyncSession,
        *,
        applicant_user_id: str,
        work_unit_ids: Sequence[str],
    ) -> list[Application]:
        if not work_unit_ids:
            return []
        stmt = select(Application).where(
            Application.applicant_user_id == applicant_user_id,
            Application.work_unit_id.in_(list(work_unit_ids)),
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
