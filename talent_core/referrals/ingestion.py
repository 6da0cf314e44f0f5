from __future__ import annotations

from dataclasses import replace
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from talent_core.db.repo.referrals_repo import ReferralsRepo
from talent_core.referrals.attribution import evaluate
from talent_core.referrals.constants import RELATIONSHIP_STATUS_COMPLETED
from talent_core.referrals.relationships import snapshot_from_model
from talent_core.referrals.rules import RewardRules
from talent_core.referrals.types import QualifyingActionOutcome

logger = structlog.get_logger(__name__)


async def record_qualifying_action(
    session: AsyncSession,
    *,
    referee_user_id: str,
    rules: RewardRules,
    now_utc: datetime,
) -> QualifyingActionOutcome | None:
    """Counts one completed qualifying action for a referred user.

    The counter bump is a single `progress_count = progress_count + 1` update,
    which also row-locks the relationship until the caller's transaction ends,
    so the attribution check that follows sees a serialized count.
    Returns None for users who were never referred.
    """
    referral = await ReferralsRepo.increment_progress(session, referee_user_id=referee_user_id)
    if referral is None:
        return None

    relationship = snapshot_from_model(referral)
    logger.info(
        "referral_qualifying_action_recorded",
        referral_id=relationship.id,
        referee_user_id=referee_user_id,
        progress_count=relationship.progress_count,
        tasks_required=rules.tasks_required,
        reward_granted=relationship.reward_granted,
    )
    if relationship.reward_granted:
        return QualifyingActionOutcome(relationship=relationship, reward_claim=None)

    claim = await evaluate(session, relationship=relationship, rules=rules, now_utc=now_utc)
    if claim is not None:
        relationship = replace(
            relationship,
            status=RELATIONSHIP_STATUS_COMPLETED,
            reward_granted=True,
            reward_points=claim.amount,
            rewarded_at=now_utc,
        )
    return QualifyingActionOutcome(relationship=relationship, reward_claim=claim)
