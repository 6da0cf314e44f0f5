from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from talent_core.core.referral_codes import is_well_formed_referral_code, normalize_referral_code
from talent_core.db.models.referrals import Referral
from talent_core.db.repo.referral_codes_repo import ReferralCodesRepo
from talent_core.db.repo.referrals_repo import ReferralsRepo
from talent_core.referrals.errors import (
    AlreadyReferredError,
    InvalidCodeError,
    SelfReferralError,
)
from talent_core.referrals.types import RelationshipSnapshot

logger = structlog.get_logger(__name__)


def snapshot_from_model(referral: Referral) -> RelationshipSnapshot:
    return RelationshipSnapshot(
        id=int(referral.id),
        sponsor_user_id=referral.sponsor_user_id,
        referee_user_id=referral.referee_user_id,
        status=referral.status,
        progress_count=int(referral.progress_count),
        reward_granted=bool(referral.reward_granted),
        created_at=referral.created_at,
        reward_points=referral.reward_points,
        rewarded_at=referral.rewarded_at,
        reward_settled_at=referral.reward_settled_at,
    )


async def create_relationship(
    session: AsyncSession,
    *,
    referral_code: str,
    referee_user_id: str,
    now_utc: datetime,
) -> RelationshipSnapshot:
    normalized_code = normalize_referral_code(referral_code)
    if not is_well_formed_referral_code(normalized_code):
        raise InvalidCodeError

    code_row = await ReferralCodesRepo.get_by_code(session, normalized_code)
    if code_row is None:
        raise InvalidCodeError

    existing = await ReferralsRepo.get_by_referee_user_id(
        session,
        referee_user_id=referee_user_id,
    )
    if existing is not None:
        logger.info(
            "referral_relationship_already_exists",
            referee_user_id=referee_user_id,
            referral_id=existing.id,
        )
        raise AlreadyReferredError

    if code_row.owner_user_id == referee_user_id:
        raise SelfReferralError

    referral = await ReferralsRepo.try_create_pending(
        session,
        sponsor_user_id=code_row.owner_user_id,
        referee_user_id=referee_user_id,
        referral_code=normalized_code,
        created_at=now_utc,
    )
    if referral is None:
        logger.info("referral_relationship_already_exists", referee_user_id=referee_user_id)
        raise AlreadyReferredError

    logger.info(
        "referral_relationship_created",
        referral_id=referral.id,
        sponsor_user_id=referral.sponsor_user_id,
        referee_user_id=referee_user_id,
    )
    return snapshot_from_model(referral)
