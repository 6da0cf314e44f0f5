from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from talent_core.referrals import codes
from talent_core.referrals.codes import get_or_create_code, lookup_referral_code
from talent_core.referrals.errors import ReferralCodeGenerationError

NOW_UTC = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


async def test_get_or_create_code_returns_existing_code_without_insert(monkeypatch) -> None:
    async def fake_get_by_owner(session, owner_user_id: str):
        del session
        return SimpleNamespace(owner_user_id=owner_user_id, code="EXIST2")

    async def fail_try_create(*args, **kwargs):
        raise AssertionError("existing owners must not get a second code")

    monkeypatch.setattr(codes.ReferralCodesRepo, "get_by_owner_user_id", fake_get_by_owner)
    monkeypatch.setattr(codes.ReferralCodesRepo, "try_create", fail_try_create)

    assert await get_or_create_code(object(), owner_user_id="u-1", now_utc=NOW_UTC) == "EXIST2"


async def test_get_or_create_code_retries_after_collision(monkeypatch) -> None:
    candidates = iter(["TAKEN2", "FRESH3"])
    inserted: list[str] = []

    async def fake_get_by_owner(session, owner_user_id: str):
        del session, owner_user_id
        return None

    async def fake_try_create(session, *, owner_user_id: str, code: str, created_at):
        del session, owner_user_id, created_at
        if code == "TAKEN2":
            return None
        inserted.append(code)
        return code

    monkeypatch.setattr(codes, "generate_referral_code", lambda length: next(candidates))
    monkeypatch.setattr(codes.ReferralCodesRepo, "get_by_owner_user_id", fake_get_by_owner)
    monkeypatch.setattr(codes.ReferralCodesRepo, "try_create", fake_try_create)

    code = await get_or_create_code(object(), owner_user_id="u-1", now_utc=NOW_UTC, max_attempts=3)

    assert code == "FRESH3"
    assert inserted == ["FRESH3"]


async def test_get_or_create_code_returns_concurrently_issued_code(monkeypatch) -> None:
    owner_lookups = iter([None, SimpleNamespace(owner_user_id="u-1", code="RACED2")])

    async def fake_get_by_owner(session, owner_user_id: str):
        del session, owner_user_id
        return next(owner_lookups)

    async def fake_try_create(session, *, owner_user_id: str, code: str, created_at):
        del session, owner_user_id, code, created_at
        return None

    monkeypatch.setattr(codes.ReferralCodesRepo, "get_by_owner_user_id", fake_get_by_owner)
    monkeypatch.setattr(codes.ReferralCodesRepo, "try_create", fake_try_create)

    assert await get_or_create_code(object(), owner_user_id="u-1", now_utc=NOW_UTC) == "RACED2"


async def test_get_or_create_code_fails_after_bounded_attempts(monkeypatch) -> None:
    attempts: list[str] = []

    async def fake_get_by_owner(session, owner_user_id: str):
        del session, owner_user_id
        return None

    async def fake_try_create(session, *, owner_user_id: str, code: str, created_at):
        del session, owner_user_id, created_at
        attempts.append(code)
        return None

    monkeypatch.setattr(codes.ReferralCodesRepo, "get_by_owner_user_id", fake_get_by_owner)
    monkeypatch.setattr(codes.ReferralCodesRepo, "try_create", fake_try_create)

    with pytest.raises(ReferralCodeGenerationError):
        await get_or_create_code(object(), owner_user_id="u-1", now_utc=NOW_UTC, max_attempts=3)
    assert len(attempts) == 3


async def test_lookup_referral_code_normalizes_and_checks_owner(monkeypatch) -> None:
    seen_codes: list[str] = []

    async def fake_get_by_code(session, code: str):
        del session
        seen_codes.append(code)
        return SimpleNamespace(owner_user_id="sponsor", code=code) if code == "AB2CD3" else None

    monkeypatch.setattr(codes.ReferralCodesRepo, "get_by_code", fake_get_by_code)

    assert await lookup_referral_code(object(), code=" ab2cd3 ") == codes.ReferralCodeLookup(
        code="AB2CD3", valid=True
    )
    assert (await lookup_referral_code(object(), code="ZZ2ZZ3")).valid is False
    assert (await lookup_referral_code(object(), code="no")).valid is False
    assert seen_codes == ["AB2CD3", "ZZ2ZZ3"]
