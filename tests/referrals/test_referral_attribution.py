from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from talent_core.referrals import attribution
from talent_core.referrals.attribution import evaluate, settle_reward
from talent_core.referrals.ingestion import record_qualifying_action
from talent_core.referrals.rules import RewardRules
from talent_core.referrals.service import handle_qualifying_action
from talent_core.referrals.types import RelationshipSnapshot, RewardClaim
from tests.fakes import FakeSessionFactory, InMemoryReferrals, RecordingLedger, make_referral_row

NOW_UTC = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
RULES = RewardRules(tasks_required=3, reward_points=10)


def _snapshot(*, progress_count: int, reward_granted: bool = False) -> RelationshipSnapshot:
    return RelationshipSnapshot(
        id=1,
        sponsor_user_id="sponsor-1",
        referee_user_id="referee-1",
        status="COMPLETED" if reward_granted else "PENDING",
        progress_count=progress_count,
        reward_granted=reward_granted,
        created_at=NOW_UTC,
    )


async def test_record_qualifying_action_below_threshold_only_counts(monkeypatch) -> None:
    store = InMemoryReferrals(make_referral_row(progress_count=1))
    store.install(monkeypatch)

    outcome = await record_qualifying_action(
        object(), referee_user_id="referee-1", rules=RULES, now_utc=NOW_UTC
    )

    assert outcome is not None
    assert outcome.relationship.progress_count == 2
    assert outcome.reward_claim is None
    assert store.rows[1].reward_granted is False


async def test_record_qualifying_action_claims_reward_at_threshold(monkeypatch) -> None:
    store = InMemoryReferrals(make_referral_row(progress_count=2))
    store.install(monkeypatch)

    outcome = await record_qualifying_action(
        object(), referee_user_id="referee-1", rules=RULES, now_utc=NOW_UTC
    )

    assert outcome is not None
    assert outcome.reward_claim == RewardClaim(
        relationship_id=1,
        sponsor_user_id="sponsor-1",
        amount=10,
        idempotency_key="referral:reward:1",
    )
    assert outcome.relationship.status == "COMPLETED"
    assert outcome.relationship.reward_granted is True
    assert outcome.relationship.reward_points == 10
    assert store.rows[1].rewarded_at == NOW_UTC


async def test_record_qualifying_action_after_grant_keeps_counting_without_claim(monkeypatch) -> None:
    store = InMemoryReferrals(
        make_referral_row(progress_count=3, reward_granted=True, reward_points=10, rewarded_at=NOW_UTC)
    )
    store.install(monkeypatch)

    outcome = await record_qualifying_action(
        object(), referee_user_id="referee-1", rules=RULES, now_utc=NOW_UTC
    )

    assert outcome is not None
    assert outcome.relationship.progress_count == 4
    assert outcome.reward_claim is None


async def test_record_qualifying_action_ignores_unreferred_user(monkeypatch) -> None:
    InMemoryReferrals().install(monkeypatch)

    outcome = await record_qualifying_action(
        object(), referee_user_id="organic-user", rules=RULES, now_utc=NOW_UTC
    )

    assert outcome is None


async def test_evaluate_triggers_when_threshold_is_overshot(monkeypatch) -> None:
    store = InMemoryReferrals(make_referral_row(progress_count=6))
    store.install(monkeypatch)

    claim = await evaluate(
        object(),
        relationship=_snapshot(progress_count=6),
        rules=RULES,
        now_utc=NOW_UTC,
    )

    assert claim is not None
    assert claim.amount == 10
    assert store.rows[1].reward_granted is True


async def test_evaluate_returns_none_for_already_granted_snapshot(monkeypatch) -> None:
    store = InMemoryReferrals(make_referral_row(progress_count=2))
    store.install(monkeypatch)
    first = await record_qualifying_action(
        object(), referee_user_id="referee-1", rules=RULES, now_utc=NOW_UTC
    )

    claim = await evaluate(object(), relationship=first.relationship, rules=RULES, now_utc=NOW_UTC)

    assert claim is None


async def test_concurrent_qualifying_actions_pay_the_reward_once(monkeypatch) -> None:
    store = InMemoryReferrals(make_referral_row(progress_count=0))
    store.install(monkeypatch)
    ledger = RecordingLedger()
    factory = FakeSessionFactory()

    outcomes = await asyncio.gather(
        *(
            handle_qualifying_action(
                referee_user_id="referee-1",
                ledger=ledger,
                rules=RULES,
                now_utc=NOW_UTC,
                session_factory=factory,
            )
            for _ in range(8)
        )
    )

    claims = [outcome.reward_claim for outcome in outcomes if outcome.reward_claim is not None]
    assert len(claims) == 1
    assert len(ledger.calls) == 1
    assert ledger.calls[0]["user_id"] == "sponsor-1"
    assert ledger.calls[0]["amount"] == 10
    assert ledger.calls[0]["source"] == "REFERRAL_REWARD"
    assert store.rows[1].progress_count == 8
    assert store.rows[1].reward_settled_at is not None


async def test_handle_qualifying_action_keeps_grant_when_ledger_fails(monkeypatch) -> None:
    store = InMemoryReferrals(make_referral_row(progress_count=2))
    store.install(monkeypatch)
    ledger = RecordingLedger(failures=1)

    outcome = await handle_qualifying_action(
        referee_user_id="referee-1",
        ledger=ledger,
        rules=RULES,
        now_utc=NOW_UTC,
        session_factory=FakeSessionFactory(),
    )

    assert outcome is not None
    assert outcome.reward_claim is not None
    assert outcome.reward_settled is False
    assert store.rows[1].reward_granted is True
    assert store.rows[1].reward_settled_at is None
    assert len(ledger.calls) == 1


async def test_handle_qualifying_action_repeated_after_grant_never_calls_ledger_again(monkeypatch) -> None:
    store = InMemoryReferrals(make_referral_row(progress_count=0))
    store.install(monkeypatch)
    ledger = RecordingLedger()
    factory = FakeSessionFactory()

    for _ in range(8):
        await handle_qualifying_action(
            referee_user_id="referee-1",
            ledger=ledger,
            rules=RULES,
            now_utc=NOW_UTC,
            session_factory=factory,
        )

    assert store.rows[1].progress_count == 8
    assert len(ledger.calls) == 1


async def test_settle_reward_logs_reconciliation_failure(monkeypatch) -> None:
    logged: list[tuple[str, dict[str, object]]] = []

    class _CapturingLogger:
        def error(self, event: str, **kwargs: object) -> None:
            logged.append((event, kwargs))

        def info(self, event: str, **kwargs: object) -> None:
            del event, kwargs

    monkeypatch.setattr(attribution, "logger", _CapturingLogger())
    claim = RewardClaim(
        relationship_id=5,
        sponsor_user_id="sponsor-1",
        amount=10,
        idempotency_key="referral:reward:5",
    )

    settled = await settle_reward(
        claim=claim,
        ledger=RecordingLedger(failures=1),
        session_factory=FakeSessionFactory(),
    )

    assert settled is False
    assert logged[0][0] == "referral_reward_reconciliation_failed"
    assert logged[0][1]["referral_id"] == 5
    assert logged[0][1]["idempotency_key"] == "referral:reward:5"


async def test_settle_reward_reports_failure_when_settlement_mark_fails(monkeypatch) -> None:
    async def failing_mark(session, *, referral_id: int, settled_at: datetime) -> bool:
        del session, referral_id, settled_at
        raise OperationalError("UPDATE referrals", {}, Exception("connection lost"))

    monkeypatch.setattr(attribution.ReferralsRepo, "mark_reward_settled", failing_mark)
    ledger = RecordingLedger()
    claim = RewardClaim(
        relationship_id=5,
        sponsor_user_id="sponsor-1",
        amount=10,
        idempotency_key="referral:reward:5",
    )

    settled = await settle_reward(claim=claim, ledger=ledger, session_factory=FakeSessionFactory())

    assert settled is False
    assert ledger.applied_keys == {"referral:reward:5"}


@pytest.mark.parametrize("progress_count", [0, 2])
async def test_evaluate_below_threshold_does_not_touch_storage(monkeypatch, progress_count: int) -> None:
    async def fail_claim(*args, **kwargs):
        raise AssertionError("claim must not run below the threshold")

    monkeypatch.setattr(attribution.ReferralsRepo, "claim_reward", fail_claim)

    claim = await evaluate(
        object(),
        relationship=_snapshot(progress_count=progress_count),
        rules=RULES,
        now_utc=NOW_UTC,
    )

    assert claim is None


async def test_evaluate_with_stale_snapshot_loses_the_claim(monkeypatch) -> None:
    store = InMemoryReferrals(
        make_referral_row(progress_count=3, reward_granted=True, reward_points=10, rewarded_at=NOW_UTC)
    )
    store.install(monkeypatch)

    claim = await evaluate(
        object(),
        relationship=_snapshot(progress_count=3),
        rules=RULES,
        now_utc=NOW_UTC,
    )

    assert claim is None
