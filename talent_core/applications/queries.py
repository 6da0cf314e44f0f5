from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from talent_core.applications.constants import APPLICATION_STATUS_REJECTED, APPLICATION_STATUSES
from talent_core.applications.errors import InvalidStatusFilterError
from talent_core.applications.submission import snapshot_from_model
from talent_core.applications.types import ApplicationSnapshot, AvailableWorkUnit
from talent_core.db.repo.applications_repo import ApplicationsRepo
from talent_core.db.repo.work_units_repo import WorkUnitsRepo

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200


def _clamp_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_LIST_LIMIT
    return max(1, min(int(limit), MAX_LIST_LIMIT))


async def list_available_work_units(
    session: AsyncSession,
    *,
    applicant_user_id: str,
    limit: int | None = None,
) -> list[AvailableWorkUnit]:
    work_units = await WorkUnitsRepo.list_open_unassigned(session, limit=_clamp_limit(limit))
    applications = await ApplicationsRepo.list_for_applicant(
        session,
        applicant_user_id=applicant_user_id,
        work_unit_ids=[work_unit.id for work_unit in work_units],
    )
    by_work_unit = {application.work_unit_id: application for application in applications}

    items: list[AvailableWorkUnit] = []
    for work_unit in work_units:
        application = by_work_unit.get(work_unit.id)
        rejection_reason = None
        if application is not None and application.status == APPLICATION_STATUS_REJECTED:
            rejection_reason = application.resolution_notes
        items.append(
            AvailableWorkUnit(
                work_unit_id=work_unit.id,
                title=work_unit.title,
                created_at=work_unit.created_at,
                application_status=application.status if application is not None else None,
                rejection_reason=rejection_reason,
            )
        )
    return items


async def list_review_queue(
    session: AsyncSession,
    *,
    status: str | None = None,
    limit: int | None = None,
) -> list[ApplicationSnapshot]:
    normalized_status = status.strip().upper() if status else None
    if normalized_status is not None and normalized_status not in APPLICATION_STATUSES:
        raise InvalidStatusFilterError(f"unknown application status: {status}")

    applications = await ApplicationsRepo.list_recent(
        session,
        status=normalized_status,
        limit=_clamp_limit(limit),
    )
    return [snapshot_from_model(application) for application in applications]
