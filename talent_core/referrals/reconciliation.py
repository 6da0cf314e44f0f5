from __future__ import annotations

from datetime import datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from talent_core.db.repo.referrals_repo import ReferralsRepo
from talent_core.db.session import SessionLocal
from talent_core.points.ledger import PointsLedger
from talent_core.referrals.attribution import settle_reward
from talent_core.referrals.constants import reward_idempotency_key
from talent_core.referrals.errors import RelationshipNotFoundError
from talent_core.referrals.rules import resolve_reward_rules
from talent_core.referrals.types import RewardClaim

logger = structlog.get_logger(__name__)

REDRIVE_SETTLED = "settled"
REDRIVE_ALREADY_SETTLED = "already_settled"
REDRIVE_NOT_GRANTED = "not_granted"
REDRIVE_FAILED = "failed"


async def redrive_reward(
    *,
    relationship_id: int,
    ledger: PointsLedger,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> str:
    """Repeats the ledger increment for a granted but unsettled reward.

    The ledger call reuses the relationship's idempotency key, so re-driving a
    reward that was in fact applied only marks it settled.
    """
    factory = session_factory or SessionLocal
    async with factory() as session:
        referral = await ReferralsRepo.get_by_id(session, relationship_id)
    if referral is None:
        raise RelationshipNotFoundError
    if not referral.reward_granted:
        return REDRIVE_NOT_GRANTED
    if referral.reward_settled_at is not None:
        return REDRIVE_ALREADY_SETTLED

    amount = referral.reward_points or resolve_reward_rules().reward_points
    claim = RewardClaim(
        relationship_id=int(referral.id),
        sponsor_user_id=referral.sponsor_user_id,
        amount=amount,
        idempotency_key=reward_idempotency_key(int(referral.id)),
    )
    settled = await settle_reward(claim=claim, ledger=ledger, session_factory=factory)
    return REDRIVE_SETTLED if settled else REDRIVE_FAILED


async def run_reward_reconciliation(
    *,
    ledger: PointsLedger,
    now_utc: datetime,
    grace: timedelta,
    batch_size: int = 200,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> dict[str, int]:
    factory = session_factory or SessionLocal
    async with factory() as session:
        referral_ids = await ReferralsRepo.list_unsettled_reward_ids(
            session,
            rewarded_before_utc=now_utc - grace,
            limit=batch_size,
        )

    result = {
        "examined": len(referral_ids),
        "settled": 0,
        "failed": 0,
        "skipped": 0,
    }
    for referral_id in referral_ids:
        try:
            outcome = await redrive_reward(
                relationship_id=referral_id,
                ledger=ledger,
                session_factory=factory,
            )
        except RelationshipNotFoundError:
            result["skipped"] += 1
            continue

        if outcome == REDRIVE_SETTLED:
            result["settled"] += 1
        elif outcome == REDRIVE_FAILED:
            result["failed"] += 1
        else:
            result["skipped"] += 1

    logger.info("referral_reward_reconciliation_finished", **result)
    return result
