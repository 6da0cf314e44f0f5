from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from talent_core.db.session import SessionLocal
from talent_core.points.ledger import PointsLedger

from .attribution import evaluate, settle_reward
from .codes import get_or_create_code, lookup_referral_code
from .ingestion import record_qualifying_action
from .overview import get_sponsor_overview
from .reconciliation import redrive_reward, run_reward_reconciliation
from .relationships import create_relationship
from .rules import RewardRules, resolve_reward_rules
from .types import QualifyingActionOutcome


async def handle_qualifying_action(
    *,
    referee_user_id: str,
    ledger: PointsLedger,
    rules: RewardRules | None = None,
    now_utc: datetime | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> QualifyingActionOutcome | None:
    """Records the action and, when this call won the reward claim, pays it.

    The counter and the claim commit before the ledger is called, so a ledger
    outage leaves the reward granted and pending settlement rather than undone.
    """
    factory = session_factory or SessionLocal
    resolved_rules = rules or resolve_reward_rules()
    resolved_now = now_utc or datetime.now(timezone.utc)

    async with factory.begin() as session:
        outcome = await record_qualifying_action(
            session,
            referee_user_id=referee_user_id,
            rules=resolved_rules,
            now_utc=resolved_now,
        )

    if outcome is None or outcome.reward_claim is None:
        return outcome

    settled = await settle_reward(
        claim=outcome.reward_claim,
        ledger=ledger,
        session_factory=factory,
    )
    return replace(outcome, reward_settled=settled)


class ReferralService:
    get_or_create_code = staticmethod(get_or_create_code)
    lookup_referral_code = staticmethod(lookup_referral_code)
    create_relationship = staticmethod(create_relationship)
    record_qualifying_action = staticmethod(record_qualifying_action)
    evaluate = staticmethod(evaluate)
    settle_reward = staticmethod(settle_reward)
    handle_qualifying_action = staticmethod(handle_qualifying_action)
    redrive_reward = staticmethod(redrive_reward)
    run_reward_reconciliation = staticmethod(run_reward_reconciliation)
    get_sponsor_overview = staticmethod(get_sponsor_overview)
