from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from talent_core.api.routes import internal_referrals
from talent_core.core.config import get_settings
from talent_core.main import app
from talent_core.referrals.errors import (
    AlreadyReferredError,
    ReferralCodeGenerationError,
    RelationshipNotFoundError,
    SelfReferralError,
)
from talent_core.referrals.types import (
    QualifyingActionOutcome,
    RelationshipSnapshot,
    RewardClaim,
)
from tests.fakes import FakeSessionFactory

NOW_UTC = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _relationship(**overrides: object) -> RelationshipSnapshot:
    values: dict[str, object] = {
        "id": 11,
        "sponsor_user_id": "sponsor-1",
        "referee_user_id": "referee-1",
        "status": "PENDING",
        "progress_count": 0,
        "reward_granted": False,
        "created_at": NOW_UTC,
    }
    values.update(overrides)
    return RelationshipSnapshot(**values)


async def _request(method: str, path: str, payload: dict[str, object] | None = None):
    async with AsyncClient(
        transport=ASGITransport(app=app, client=("127.0.0.1", 8080)),
        base_url="http://testserver",
    ) as client:
        return await client.request(
            method,
            path,
            json=payload,
            headers={"X-Internal-Token": get_settings().internal_api_token},
        )


def test_internal_referrals_rejects_missing_token(monkeypatch) -> None:
    monkeypatch.setattr(
        internal_referrals,
        "get_settings",
        lambda: SimpleNamespace(
            internal_api_token="internal-secret",
            internal_api_allowlist="127.0.0.1/32",
        ),
    )

    client = TestClient(app)
    response = client.post("/internal/referrals/codes", json={"owner_user_id": "u-1"})

    assert response.status_code == 403
    assert response.json() == {"detail": {"code": "E_FORBIDDEN"}}


def test_internal_referrals_rejects_disallowed_ip(monkeypatch) -> None:
    monkeypatch.setattr(
        internal_referrals,
        "get_settings",
        lambda: SimpleNamespace(
            internal_api_token="internal-secret",
            internal_api_allowlist="192.168.0.0/16",
        ),
    )

    client = TestClient(app)
    response = client.post(
        "/internal/referrals/qualifying-actions",
        json={"referee_user_id": "referee-1"},
        headers={
            "X-Internal-Token": "internal-secret",
            "X-Forwarded-For": "10.0.0.25",
        },
    )

    assert response.status_code == 403
    assert response.json() == {"detail": {"code": "E_FORBIDDEN"}}


async def test_issue_referral_code_returns_code_and_signup_link(monkeypatch) -> None:
    async def fake_get_or_create_code(session, *, owner_user_id: str, now_utc) -> str:
        del session, now_utc
        assert owner_user_id == "u-1"
        return "AB2CD3"

    monkeypatch.setattr(internal_referrals, "SessionLocal", FakeSessionFactory())
    monkeypatch.setattr(internal_referrals.ReferralService, "get_or_create_code", fake_get_or_create_code)

    response = await _request("POST", "/internal/referrals/codes", {"owner_user_id": "u-1"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["code"] == "AB2CD3"
    assert payload["link"].endswith("/auth/signup?ref=AB2CD3")


async def test_issue_referral_code_maps_exhaustion_to_503(monkeypatch) -> None:
    async def fake_get_or_create_code(session, *, owner_user_id: str, now_utc) -> str:
        raise ReferralCodeGenerationError

    monkeypatch.setattr(internal_referrals, "SessionLocal", FakeSessionFactory())
    monkeypatch.setattr(internal_referrals.ReferralService, "get_or_create_code", fake_get_or_create_code)

    response = await _request("POST", "/internal/referrals/codes", {"owner_user_id": "u-1"})

    assert response.status_code == 503
    assert response.json() == {"detail": {"code": "E_REFERRAL_CODE_UNAVAILABLE"}}


async def test_create_relationship_returns_created_relationship(monkeypatch) -> None:
    async def fake_create_relationship(session, *, referral_code: str, referee_user_id: str, now_utc):
        del session, now_utc
        assert referral_code == "ab2cd3"
        return _relationship(referee_user_id=referee_user_id)

    monkeypatch.setattr(internal_referrals, "SessionLocal", FakeSessionFactory())
    monkeypatch.setattr(internal_referrals.ReferralService, "create_relationship", fake_create_relationship)

    response = await _request(
        "POST",
        "/internal/referrals/relationships",
        {"referral_code": "ab2cd3", "referee_user_id": "referee-7"},
    )

    assert response.status_code == 201
    payload = response.json()
    assert payload["relationship_id"] == 11
    assert payload["referee_user_id"] == "referee-7"
    assert payload["status"] == "PENDING"


async def test_create_relationship_maps_domain_errors(monkeypatch) -> None:
    errors = iter([SelfReferralError(), AlreadyReferredError()])

    async def fake_create_relationship(session, **kwargs):
        raise next(errors)

    monkeypatch.setattr(internal_referrals, "SessionLocal", FakeSessionFactory())
    monkeypatch.setattr(internal_referrals.ReferralService, "create_relationship", fake_create_relationship)
    payload = {"referral_code": "AB2CD3", "referee_user_id": "referee-1"}

    self_response = await _request("POST", "/internal/referrals/relationships", payload)
    again_response = await _request("POST", "/internal/referrals/relationships", payload)

    assert self_response.status_code == 422
    assert self_response.json() == {"detail": {"code": "E_REFERRAL_SELF"}}
    assert again_response.status_code == 409
    assert again_response.json() == {"detail": {"code": "E_REFERRAL_ALREADY_REFERRED"}}


async def test_qualifying_action_reports_reward_claim(monkeypatch) -> None:
    async def fake_handle(*, referee_user_id: str, ledger):
        del ledger
        return QualifyingActionOutcome(
            relationship=_relationship(
                referee_user_id=referee_user_id,
                status="COMPLETED",
                progress_count=3,
                reward_granted=True,
                reward_points=10,
                rewarded_at=NOW_UTC,
            ),
            reward_claim=RewardClaim(
                relationship_id=11,
                sponsor_user_id="sponsor-1",
                amount=10,
                idempotency_key="referral:reward:11",
            ),
            reward_settled=True,
        )

    monkeypatch.setattr(internal_referrals.ReferralService, "handle_qualifying_action", fake_handle)

    response = await _request(
        "POST",
        "/internal/referrals/qualifying-actions",
        {"referee_user_id": "referee-1"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["referred"] is True
    assert payload["reward_claimed"] is True
    assert payload["reward_settled"] is True
    assert payload["relationship"]["progress_count"] == 3


async def test_qualifying_action_for_unreferred_user_is_noop(monkeypatch) -> None:
    async def fake_handle(*, referee_user_id: str, ledger):
        del referee_user_id, ledger
        return None

    monkeypatch.setattr(internal_referrals.ReferralService, "handle_qualifying_action", fake_handle)

    response = await _request(
        "POST",
        "/internal/referrals/qualifying-actions",
        {"referee_user_id": "organic"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "referred": False,
        "relationship": None,
        "reward_claimed": False,
        "reward_settled": None,
    }


async def test_redrive_reward_maps_missing_relationship_to_404(monkeypatch) -> None:
    async def fake_redrive(*, relationship_id: int, ledger):
        raise RelationshipNotFoundError

    monkeypatch.setattr(internal_referrals.ReferralService, "redrive_reward", fake_redrive)

    response = await _request("POST", "/internal/referrals/77/reward/redrive")

    assert response.status_code == 404
    assert response.json() == {"detail": {"code": "E_REFERRAL_NOT_FOUND"}}


async def test_redrive_reward_returns_outcome(monkeypatch) -> None:
    async def fake_redrive(*, relationship_id: int, ledger):
        del ledger
        assert relationship_id == 77
        return "settled"

    monkeypatch.setattr(internal_referrals.ReferralService, "redrive_reward", fake_redrive)

    response = await _request("POST", "/internal/referrals/77/reward/redrive")

    assert response.status_code == 200
    assert response.json() == {"relationship_id": 77, "outcome": "settled"}
