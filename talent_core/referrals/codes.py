from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from talent_core.core.config import get_settings
from talent_core.core.referral_codes import (
    generate_referral_code,
    is_well_formed_referral_code,
    normalize_referral_code,
)
from talent_core.db.repo.referral_codes_repo import ReferralCodesRepo
from talent_core.referrals.errors import ReferralCodeGenerationError
from talent_core.referrals.types import ReferralCodeLookup

logger = structlog.get_logger(__name__)


async def get_or_create_code(
    session: AsyncSession,
    *,
    owner_user_id: str,
    now_utc: datetime,
    code_length: int | None = None,
    max_attempts: int | None = None,
) -> str:
    """Returns the owner's referral code, issuing one on first request.

    Candidates go through an insert that skips on any unique conflict. A skip
    means either another request issued this owner's code meanwhile (return
    it) or the candidate collided with someone else's code (try a new one).
    """
    existing = await ReferralCodesRepo.get_by_owner_user_id(session, owner_user_id)
    if existing is not None:
        return existing.code

    settings = get_settings()
    length = code_length or settings.referral_code_length
    attempts = max_attempts or settings.referral_code_max_attempts

    for attempt in range(1, attempts + 1):
        candidate = generate_referral_code(length)
        created_code = await ReferralCodesRepo.try_create(
            session,
            owner_user_id=owner_user_id,
            code=candidate,
            created_at=now_utc,
        )
        if created_code is not None:
            logger.info(
                "referral_code_created",
                owner_user_id=owner_user_id,
                attempt=attempt,
            )
            return created_code

        concurrent = await ReferralCodesRepo.get_by_owner_user_id(session, owner_user_id)
        if concurrent is not None:
            return concurrent.code

        logger.warning(
            "referral_code_collision",
            owner_user_id=owner_user_id,
            attempt=attempt,
            max_attempts=attempts,
        )

    raise ReferralCodeGenerationError(
        f"unable to issue a unique referral code after {attempts} attempts"
    )


async def lookup_referral_code(session: AsyncSession, *, code: str) -> ReferralCodeLookup:
    normalized_code = normalize_referral_code(code)
    if not is_well_formed_referral_code(normalized_code):
        return ReferralCodeLookup(code=normalized_code, valid=False)

    code_row = await ReferralCodesRepo.get_by_code(session, normalized_code)
    return ReferralCodeLookup(code=normalized_code, valid=code_row is not None)
