from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from talent_core.applications.constants import (
    APPLICATION_STATUS_PENDING,
    DECISION_APPROVE,
    DECISION_REJECT,
    DECISION_TO_STATUS,
)
from talent_core.applications.errors import (
    AlreadyResolvedError,
    ApplicationNotFoundError,
    InvalidDecisionError,
    MissingReasonError,
    WorkUnitNoLongerAvailableError,
)
from talent_core.applications.submission import snapshot_from_model
from talent_core.applications.types import ApplicationSnapshot
from talent_core.db.repo.applications_repo import ApplicationsRepo
from talent_core.db.repo.work_units_repo import WorkUnitsRepo

logger = structlog.get_logger(__name__)


def normalize_decision(decision: str) -> str:
    normalized = (decision or "").strip().upper()
    if normalized not in DECISION_TO_STATUS:
        raise InvalidDecisionError
    return normalized


def normalize_notes(notes: str | None) -> str | None:
    if notes is None:
        return None
    stripped = notes.strip()
    return stripped or None


async def resolve(
    session: AsyncSession,
    *,
    application_id: int,
    decision: str,
    notes: str | None,
    reviewer_user_id: str | None,
    now_utc: datetime,
) -> ApplicationSnapshot:
    """Applies a reviewer decision to a pending application exactly once.

    Approval assigns the work unit first and then flips the application, both
    inside one savepoint, so rows are locked work unit before application. A
    unit taken by a competing approval fails the whole decision with
    WorkUnitNoLongerAvailableError; an application resolved meanwhile rolls
    the assignment back and fails with AlreadyResolvedError.
    """
    normalized_decision = normalize_decision(decision)
    normalized_notes = normalize_notes(notes)
    if normalized_decision == DECISION_REJECT and normalized_notes is None:
        raise MissingReasonError

    application = await ApplicationsRepo.get_by_id(session, application_id)
    if application is None:
        raise ApplicationNotFoundError
    if application.status != APPLICATION_STATUS_PENDING:
        raise AlreadyResolvedError

    async with session.begin_nested():
        if normalized_decision == DECISION_APPROVE:
            assigned = await WorkUnitsRepo.try_assign(
                session,
                work_unit_id=application.work_unit_id,
                applicant_user_id=application.applicant_user_id,
                assigned_at=now_utc,
            )
            if not assigned:
                logger.info(
                    "application_work_unit_no_longer_available",
                    application_id=application_id,
                    work_unit_id=application.work_unit_id,
                )
                raise WorkUnitNoLongerAvailableError

        resolved = await ApplicationsRepo.resolve_pending(
            session,
            application_id=application_id,
            status=DECISION_TO_STATUS[normalized_decision],
            resolution_notes=normalized_notes,
            reviewer_user_id=reviewer_user_id,
            resolved_at=now_utc,
        )
        if resolved is None:
            logger.info("application_already_resolved", application_id=application_id)
            raise AlreadyResolvedError

        snapshot = snapshot_from_model(resolved)

    logger.info(
        "application_resolved",
        application_id=application_id,
        work_unit_id=snapshot.work_unit_id,
        status=snapshot.status,
        reviewer_user_id=reviewer_user_id,
    )
    return snapshot
