from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from talent_core.core.config import get_settings
from talent_core.core.referral_codes import build_referral_link
from talent_core.db.session import SessionLocal
from talent_core.points.ledger import DatabasePointsLedger
from talent_core.referrals.errors import ReferralError
from talent_core.referrals.rules import resolve_reward_rules
from talent_core.referrals.service import ReferralService
from talent_core.referrals.types import RelationshipSnapshot

from .internal_helpers import as_http_exception, assert_internal_access

router = APIRouter(tags=["internal", "referrals"])


class ReferralCodeIssueRequest(BaseModel):
    owner_user_id: str = Field(min_length=1, max_length=64)


class ReferralCodeIssueResponse(BaseModel):
    code: str
    link: str


class ReferralCodeLookupResponse(BaseModel):
    code: str
    valid: bool


class ReferralRelationshipCreateRequest(BaseModel):
    referral_code: str = Field(min_length=1, max_length=32)
    referee_user_id: str = Field(min_length=1, max_length=64)


class ReferralRelationshipResponse(BaseModel):
    relationship_id: int = Field(gt=0)
    sponsor_user_id: str
    referee_user_id: str
    status: str
    progress_count: int = Field(ge=0)
    reward_granted: bool
    reward_points: int | None = None
    created_at: datetime
    rewarded_at: datetime | None = None
    reward_settled_at: datetime | None = None


class QualifyingActionRequest(BaseModel):
    referee_user_id: str = Field(min_length=1, max_length=64)


class QualifyingActionResponse(BaseModel):
    referred: bool
    relationship: ReferralRelationshipResponse | None = None
    reward_claimed: bool = False
    reward_settled: bool | None = None


class RefereeProgressResponse(BaseModel):
    referee_user_id: str
    status: str
    progress_count: int = Field(ge=0)
    reward_granted: bool
    created_at: datetime


class SponsorOverviewResponse(BaseModel):
    sponsor_user_id: str
    referral_code: str | None = None
    referral_link: str | None = None
    tasks_required: int = Field(ge=1)
    reward_points: int = Field(gt=0)
    referrals_total: int = Field(ge=0)
    completed_total: int = Field(ge=0)
    rewarded_total: int = Field(ge=0)
    points_earned: int = Field(ge=0)
    referees: list[RefereeProgressResponse]


class RewardRedriveResponse(BaseModel):
    relationship_id: int = Field(gt=0)
    outcome: str


def _assert_internal_access(request: Request) -> None:
    assert_internal_access(request, settings=get_settings(), area="referrals")


def _as_relationship_response(relationship: RelationshipSnapshot) -> ReferralRelationshipResponse:
    return ReferralRelationshipResponse(
        relationship_id=relationship.id,
        sponsor_user_id=relationship.sponsor_user_id,
        referee_user_id=relationship.referee_user_id,
        status=relationship.status,
        progress_count=relationship.progress_count,
        reward_granted=relationship.reward_granted,
        reward_points=relationship.reward_points,
        created_at=relationship.created_at,
        rewarded_at=relationship.rewarded_at,
        reward_settled_at=relationship.reward_settled_at,
    )


@router.post("/internal/referrals/codes", response_model=ReferralCodeIssueResponse)
async def issue_referral_code(
    payload: ReferralCodeIssueRequest,
    request: Request,
) -> ReferralCodeIssueResponse:
    _assert_internal_access(request)

    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            code = await ReferralService.get_or_create_code(
                session,
                owner_user_id=payload.owner_user_id,
                now_utc=now_utc,
            )
    except ReferralError as exc:
        raise as_http_exception(exc) from exc

    return ReferralCodeIssueResponse(
        code=code,
        link=build_referral_link(get_settings().referral_signup_base_url, code),
    )


@router.get("/internal/referrals/codes/{code}", response_model=ReferralCodeLookupResponse)
async def lookup_referral_code(code: str, request: Request) -> ReferralCodeLookupResponse:
    _assert_internal_access(request)

    async with SessionLocal.begin() as session:
        lookup = await ReferralService.lookup_referral_code(session, code=code)
    return ReferralCodeLookupResponse(code=lookup.code, valid=lookup.valid)


@router.post(
    "/internal/referrals/relationships",
    response_model=ReferralRelationshipResponse,
    status_code=201,
)
async def create_referral_relationship(
    payload: ReferralRelationshipCreateRequest,
    request: Request,
) -> ReferralRelationshipResponse:
    _assert_internal_access(request)

    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            relationship = await ReferralService.create_relationship(
                session,
                referral_code=payload.referral_code,
                referee_user_id=payload.referee_user_id,
                now_utc=now_utc,
            )
    except ReferralError as exc:
        raise as_http_exception(exc) from exc

    return _as_relationship_response(relationship)


@router.post(
    "/internal/referrals/qualifying-actions",
    response_model=QualifyingActionResponse,
)
async def record_qualifying_action(
    payload: QualifyingActionRequest,
    request: Request,
) -> QualifyingActionResponse:
    _assert_internal_access(request)

    outcome = await ReferralService.handle_qualifying_action(
        referee_user_id=payload.referee_user_id,
        ledger=DatabasePointsLedger(),
    )
    if outcome is None:
        return QualifyingActionResponse(referred=False)

    return QualifyingActionResponse(
        referred=True,
        relationship=_as_relationship_response(outcome.relationship),
        reward_claimed=outcome.reward_claim is not None,
        reward_settled=outcome.reward_settled,
    )


@router.get(
    "/internal/referrals/sponsors/{sponsor_user_id}/overview",
    response_model=SponsorOverviewResponse,
)
async def get_sponsor_overview(sponsor_user_id: str, request: Request) -> SponsorOverviewResponse:
    _assert_internal_access(request)

    rules = resolve_reward_rules()
    async with SessionLocal.begin() as session:
        overview = await ReferralService.get_sponsor_overview(
            session,
            sponsor_user_id=sponsor_user_id,
            rules=rules,
        )

    link = None
    if overview.referral_code is not None:
        link = build_referral_link(get_settings().referral_signup_base_url, overview.referral_code)
    return SponsorOverviewResponse(
        sponsor_user_id=overview.sponsor_user_id,
        referral_code=overview.referral_code,
        referral_link=link,
        tasks_required=overview.tasks_required,
        reward_points=overview.reward_points,
        referrals_total=overview.referrals_total,
        completed_total=overview.completed_total,
        rewarded_total=overview.rewarded_total,
        points_earned=overview.points_earned,
        referees=[
            RefereeProgressResponse(
                referee_user_id=referee.referee_user_id,
                status=referee.status,
                progress_count=referee.progress_count,
                reward_granted=referee.reward_granted,
                created_at=referee.created_at,
            )
            for referee in overview.referees
        ],
    )


@router.post(
    "/internal/referrals/{relationship_id}/reward/redrive",
    response_model=RewardRedriveResponse,
)
async def redrive_referral_reward(relationship_id: int, request: Request) -> RewardRedriveResponse:
    _assert_internal_access(request)
    if relationship_id <= 0:
        raise HTTPException(status_code=422, detail={"code": "E_REFERRAL_ID_INVALID"})

    try:
        outcome = await ReferralService.redrive_reward(
            relationship_id=relationship_id,
            ledger=DatabasePointsLedger(),
        )
    except ReferralError as exc:
        raise as_http_exception(exc) from exc

    return RewardRedriveResponse(relationship_id=relationship_id, outcome=outcome)
