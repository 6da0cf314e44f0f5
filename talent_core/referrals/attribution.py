from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from talent_core.db.repo.referrals_repo import ReferralsRepo
from talent_core.db.session import SessionLocal
from talent_core.points.errors import PointsLedgerError
from talent_core.points.ledger import PointsLedger
from talent_core.referrals.constants import REFERRAL_REWARD_SOURCE, reward_idempotency_key
from talent_core.referrals.rules import RewardRules
from talent_core.referrals.types import RelationshipSnapshot, RewardClaim

logger = structlog.get_logger(__name__)


async def evaluate(
    session: AsyncSession,
    *,
    relationship: RelationshipSnapshot,
    rules: RewardRules,
    now_utc: datetime,
) -> RewardClaim | None:
    """Claims the one-time reward once progress crosses the threshold.

    The claim is a conditional update on `reward_granted = false`, so among
    concurrent evaluations of the same relationship exactly one gets a row back.
    Overshooting the threshold still triggers because the guard is `>=`.
    """
    if relationship.reward_granted or relationship.progress_count < rules.tasks_required:
        return None

    claimed = await ReferralsRepo.claim_reward(
        session,
        referral_id=relationship.id,
        tasks_required=rules.tasks_required,
        reward_points=rules.reward_points,
        claimed_at=now_utc,
    )
    if claimed is None:
        return None

    logger.info(
        "referral_reward_claimed",
        referral_id=claimed.id,
        sponsor_user_id=claimed.sponsor_user_id,
        progress_count=claimed.progress_count,
        reward_points=rules.reward_points,
    )
    return RewardClaim(
        relationship_id=int(claimed.id),
        sponsor_user_id=claimed.sponsor_user_id,
        amount=rules.reward_points,
        idempotency_key=reward_idempotency_key(int(claimed.id)),
    )


async def settle_reward(
    *,
    claim: RewardClaim,
    ledger: PointsLedger,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> bool:
    """Pays a claimed reward through the ledger; failures stay pending for re-drive."""
    try:
        await ledger.increment(
            user_id=claim.sponsor_user_id,
            amount=claim.amount,
            idempotency_key=claim.idempotency_key,
            source=REFERRAL_REWARD_SOURCE,
            metadata={"referral_id": claim.relationship_id},
        )
    except PointsLedgerError as exc:
        logger.error(
            "referral_reward_reconciliation_failed",
            referral_id=claim.relationship_id,
            sponsor_user_id=claim.sponsor_user_id,
            idempotency_key=claim.idempotency_key,
            error=repr(exc),
        )
        return False

    factory = session_factory or SessionLocal
    try:
        async with factory.begin() as session:
            await ReferralsRepo.mark_reward_settled(
                session,
                referral_id=claim.relationship_id,
                settled_at=datetime.now(timezone.utc),
            )
    except SQLAlchemyError as exc:
        logger.error(
            "referral_reward_reconciliation_failed",
            referral_id=claim.relationship_id,
            sponsor_user_id=claim.sponsor_user_id,
            idempotency_key=claim.idempotency_key,
            stage="mark_settled",
            error=repr(exc),
        )
        return False

    logger.info(
        "referral_reward_settled",
        referral_id=claim.relationship_id,
        sponsor_user_id=claim.sponsor_user_id,
        amount=claim.amount,
    )
    return True
