from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog

from talent_core.core.config import get_settings
from talent_core.points.ledger import DatabasePointsLedger
from talent_core.referrals.service import ReferralService
from talent_core.workers.asyncio_runner import run_async_job
from talent_core.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def run_referral_reward_reconciliation_async(*, batch_size: int | None = None) -> dict[str, int]:
    settings = get_settings()
    result = await ReferralService.run_reward_reconciliation(
        ledger=DatabasePointsLedger(),
        now_utc=datetime.now(timezone.utc),
        grace=timedelta(seconds=settings.referral_reconciliation_grace_seconds),
        batch_size=batch_size or settings.referral_reconciliation_batch_size,
    )
    if result["failed"] > 0:
        logger.warning("referral_reward_reconciliation_incomplete", **result)
    return result


@celery_app.task(name="talent_core.workers.tasks.referral_rewards.run_referral_reward_reconciliation")
def run_referral_reward_reconciliation(batch_size: int | None = None) -> dict[str, int]:
    return run_async_job(
        run_referral_reward_reconciliation_async(batch_size=batch_size),
        job_name="referral_reward_reconciliation",
    )


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "referral-reward-reconciliation-every-10-minutes": {
            "task": "talent_core.workers.tasks.referral_rewards.run_referral_reward_reconciliation",
            "schedule": 600.0,
            "options": {"queue": "q_normal"},
        },
    }
)
