from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from talent_core.applications.constants import WORK_UNIT_STATUS_OPEN
from talent_core.applications.errors import DuplicateApplicationError, WorkUnitUnavailableError
from talent_core.applications.types import ApplicationSnapshot
from talent_core.db.models.applications import Application
from talent_core.db.repo.applications_repo import ApplicationsRepo
from talent_core.db.repo.work_units_repo import WorkUnitsRepo

logger = structlog.get_logger(__name__)


def snapshot_from_model(application: Application) -> ApplicationSnapshot:
    return ApplicationSnapshot(
        id=int(application.id),
        work_unit_id=application.work_unit_id,
        applicant_user_id=application.applicant_user_id,
        status=application.status,
        created_at=application.created_at,
        resolution_notes=application.resolution_notes,
        reviewer_user_id=application.reviewer_user_id,
        resolved_at=application.resolved_at,
    )


async def register_work_unit(
    session: AsyncSession,
    *,
    work_unit_id: str,
    title: str,
    now_utc: datetime,
) -> None:
    await WorkUnitsRepo.upsert_open(
        session,
        work_unit_id=work_unit_id,
        title=title,
        now_utc=now_utc,
    )
    logger.info("work_unit_registered", work_unit_id=work_unit_id)


async def submit_application(
    session: AsyncSession,
    *,
    work_unit_id: str,
    applicant_user_id: str,
    now_utc: datetime,
) -> ApplicationSnapshot:
    work_unit = await WorkUnitsRepo.get_by_id_for_share(session, work_unit_id)
    if work_unit is None or work_unit.status != WORK_UNIT_STATUS_OPEN:
        raise WorkUnitUnavailableError

    application = await ApplicationsRepo.try_create_pending(
        session,
        work_unit_id=work_unit_id,
        applicant_user_id=applicant_user_id,
        created_at=now_utc,
    )
    if application is None:
        logger.info(
            "application_already_submitted",
            work_unit_id=work_unit_id,
            applicant_user_id=applicant_user_id,
        )
        raise DuplicateApplicationError

    logger.info(
        "application_submitted",
        application_id=application.id,
        work_unit_id=work_unit_id,
        applicant_user_id=applicant_user_id,
    )
    return snapshot_from_model(application)
