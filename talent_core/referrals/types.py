from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class RelationshipSnapshot:
    id: int
    sponsor_user_id: str
    referee_user_id: str
    status: str
    progress_count: int
    reward_granted: bool
    created_at: datetime
    reward_points: int | None = None
    rewarded_at: datetime | None = None
    reward_settled_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class RewardClaim:
    relationship_id: int
    sponsor_user_id: str
    amount: int
    idempotency_key: str


@dataclass(frozen=True, slots=True)
class QualifyingActionOutcome:
    relationship: RelationshipSnapshot
    reward_claim: RewardClaim | None
    reward_settled: bool | None = None


@dataclass(frozen=True, slots=True)
class ReferralCodeLookup:
    code: str
    valid: bool


@dataclass(frozen=True, slots=True)
class RefereeProgress:
    referee_user_id: str
    status: str
    progress_count: int
    reward_granted: bool
    created_at: datetime


@dataclass(frozen=True, slots=True)
class SponsorOverview:
    sponsor_user_id: str
    referral_code: str | None
    tasks_required: int
    reward_points: int
    referrals_total: int
    completed_total: int
    rewarded_total: int
    points_earned: int
    referees: list[RefereeProgress]
