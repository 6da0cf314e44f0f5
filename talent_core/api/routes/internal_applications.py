from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel, Field

from talent_core.applications.errors import ApplicationError
from talent_core.applications.service import ApplicationService
from talent_core.applications.types import ApplicationSnapshot
from talent_core.core.config import get_settings
from talent_core.db.session import SessionLocal

from .internal_helpers import as_http_exception, assert_internal_access

router = APIRouter(tags=["internal", "applications"])


class WorkUnitRegisterRequest(BaseModel):
    title: str = Field(min_length=1, max_length=512)


class WorkUnitRegisterResponse(BaseModel):
    work_unit_id: str
    registered: bool


class ApplicationSubmitRequest(BaseModel):
    applicant_user_id: str = Field(min_length=1, max_length=64)


class ApplicationResponse(BaseModel):
    application_id: int = Field(gt=0)
    work_unit_id: str
    applicant_user_id: str
    status: str
    resolution_notes: str | None = None
    reviewer_user_id: str | None = None
    created_at: datetime
    resolved_at: datetime | None = None


class ApplicationQueueResponse(BaseModel):
    status_filter: str | None = None
    applications: list[ApplicationResponse]


class ApplicationResolveRequest(BaseModel):
    decision: str = Field(min_length=1, max_length=16)
    notes: str | None = Field(default=None, max_length=2000)
    reviewer_user_id: str | None = Field(default=None, max_length=64)


class AvailableWorkUnitResponse(BaseModel):
    work_unit_id: str
    title: str
    created_at: datetime
    application_status: str | None = None
    rejection_reason: str | None = None


class AvailableWorkUnitsResponse(BaseModel):
    applicant_user_id: str
    work_units: list[AvailableWorkUnitResponse]


def _assert_internal_access(request: Request) -> None:
    assert_internal_access(request, settings=get_settings(), area="applications")


def _as_application_response(application: ApplicationSnapshot) -> ApplicationResponse:
    return ApplicationResponse(
        application_id=application.id,
        work_unit_id=application.work_unit_id,
        applicant_user_id=application.applicant_user_id,
        status=application.status,
        resolution_notes=application.resolution_notes,
        reviewer_user_id=application.reviewer_user_id,
        created_at=application.created_at,
        resolved_at=application.resolved_at,
    )


@router.put("/internal/work-units/{work_unit_id}", response_model=WorkUnitRegisterResponse)
async def register_work_unit(
    work_unit_id: str,
    payload: WorkUnitRegisterRequest,
    request: Request,
) -> WorkUnitRegisterResponse:
    _assert_internal_access(request)

    async with SessionLocal.begin() as session:
        await ApplicationService.register_work_unit(
            session,
            work_unit_id=work_unit_id,
            title=payload.title,
            now_utc=datetime.now(timezone.utc),
        )
    return WorkUnitRegisterResponse(work_unit_id=work_unit_id, registered=True)


@router.get("/internal/work-units/available", response_model=AvailableWorkUnitsResponse)
async def list_available_work_units(
    request: Request,
    applicant_user_id: str = Query(min_length=1, max_length=64),
    limit: int = Query(default=50, ge=1, le=200),
) -> AvailableWorkUnitsResponse:
    _assert_internal_access(request)

    async with SessionLocal.begin() as session:
        items = await ApplicationService.list_available_work_units(
            session,
            applicant_user_id=applicant_user_id,
            limit=limit,
        )
    return AvailableWorkUnitsResponse(
        applicant_user_id=applicant_user_id,
        work_units=[
            AvailableWorkUnitResponse(
                work_unit_id=item.work_unit_id,
                title=item.title,
                created_at=item.created_at,
                application_status=item.application_status,
                rejection_reason=item.rejection_reason,
            )
            for item in items
        ],
    )


@router.post(
    "/internal/work-units/{work_unit_id}/applications",
    response_model=ApplicationResponse,
    status_code=201,
)
async def submit_application(
    work_unit_id: str,
    payload: ApplicationSubmitRequest,
    request: Request,
) -> ApplicationResponse:
    _assert_internal_access(request)

    try:
        async with SessionLocal.begin() as session:
            application = await ApplicationService.submit_application(
                session,
                work_unit_id=work_unit_id,
                applicant_user_id=payload.applicant_user_id,
                now_utc=datetime.now(timezone.utc),
            )
    except ApplicationError as exc:
        raise as_http_exception(exc) from exc

    return _as_application_response(application)


@router.get("/internal/applications", response_model=ApplicationQueueResponse)
async def list_applications(
    request: Request,
    status: str | None = Query(default=None, max_length=16),
    limit: int = Query(default=50, ge=1, le=200),
) -> ApplicationQueueResponse:
    _assert_internal_access(request)

    try:
        async with SessionLocal.begin() as session:
            applications = await ApplicationService.list_review_queue(
                session,
                status=status,
                limit=limit,
            )
    except ApplicationError as exc:
        raise as_http_exception(exc) from exc

    return ApplicationQueueResponse(
        status_filter=status.strip().upper() if status else None,
        applications=[_as_application_response(application) for application in applications],
    )


@router.post(
    "/internal/applications/{application_id}/resolve",
    response_model=ApplicationResponse,
)
async def resolve_application(
    application_id: int,
    payload: ApplicationResolveRequest,
    request: Request,
) -> ApplicationResponse:
    _assert_internal_access(request)

    try:
        async with SessionLocal.begin() as session:
            application = await ApplicationService.resolve(
                session,
                application_id=application_id,
                decision=payload.decision,
                notes=payload.notes,
                reviewer_user_id=payload.reviewer_user_id,
                now_utc=datetime.now(timezone.utc),
            )
    except ApplicationError as exc:
        raise as_http_exception(exc) from exc

    return _as_application_response(application)
