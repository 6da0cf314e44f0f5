from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from talent_core.db.repo.referral_codes_repo import ReferralCodesRepo
from talent_core.db.repo.referrals_repo import ReferralsRepo
from talent_core.referrals.constants import RELATIONSHIP_STATUS_COMPLETED
from talent_core.referrals.rules import RewardRules
from talent_core.referrals.types import RefereeProgress, SponsorOverview


async def get_sponsor_overview(
    session: AsyncSession,
    *,
    sponsor_user_id: str,
    rules: RewardRules,
) -> SponsorOverview:
    code_row = await ReferralCodesRepo.get_by_owner_user_id(session, sponsor_user_id)
    referrals = await ReferralsRepo.list_for_sponsor(session, sponsor_user_id=sponsor_user_id)
    # Granted rewards count as earned even while their ledger settlement is pending.
    points_earned = sum(
        int(referral.reward_points if referral.reward_points is not None else rules.reward_points)
        for referral in referrals
        if referral.reward_granted
    )

    referees = [
        RefereeProgress(
            referee_user_id=referral.referee_user_id,
            status=referral.status,
            progress_count=int(referral.progress_count),
            reward_granted=bool(referral.reward_granted),
            created_at=referral.created_at,
        )
        for referral in referrals
    ]
    return SponsorOverview(
        sponsor_user_id=sponsor_user_id,
        referral_code=code_row.code if code_row is not None else None,
        tasks_required=rules.tasks_required,
        reward_points=rules.reward_points,
        referrals_total=len(referees),
        completed_total=sum(
            1 for referee in referees if referee.status == RELATIONSHIP_STATUS_COMPLETED
        ),
        rewarded_total=sum(1 for referee in referees if referee.reward_granted),
        points_earned=points_earned,
        referees=referees,
    )
