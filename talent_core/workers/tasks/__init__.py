from talent_core.workers.tasks.referral_rewards import run_referral_reward_reconciliation

__all__ = [
    "run_referral_reward_reconciliation",
]
