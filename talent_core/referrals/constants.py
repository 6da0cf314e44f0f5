from __future__ import annotations

RELATIONSHIP_STATUS_PENDING = "PENDING"
RELATIONSHIP_STATUS_COMPLETED = "COMPLETED"
RELATIONSHIP_STATUSES = (RELATIONSHIP_STATUS_PENDING, RELATIONSHIP_STATUS_COMPLETED)

REFERRAL_REWARD_SOURCE = "REFERRAL_REWARD"
REFERRAL_REWARD_KEY_PREFIX = "referral:reward"


def reward_idempotency_key(relationship_id: int) -> str:
    return f"{REFERRAL_REWARD_KEY_PREFIX}:{relationship_id}"
