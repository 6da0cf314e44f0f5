from __future__ import annotations

from dataclasses import dataclass

from talent_core.core.config import get_settings


@dataclass(frozen=True, slots=True)
class RewardRules:
    tasks_required: int
    reward_points: int


def resolve_reward_rules(
    *,
    tasks_required: int | None = None,
    reward_points: int | None = None,
) -> RewardRules:
    settings = get_settings()
    rules = RewardRules(
        tasks_required=(
            settings.referral_tasks_required if tasks_required is None else tasks_required
        ),
        reward_points=settings.referral_reward_points if reward_points is None else reward_points,
    )
    if rules.tasks_required <= 0:
        raise ValueError("tasks_required must be positive")
    if rules.reward_points <= 0:
        raise ValueError("reward_points must be positive")
    return rules
