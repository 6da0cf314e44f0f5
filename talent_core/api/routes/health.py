from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy import text

from talent_core.core.config import get_settings
from talent_core.db.session import SessionLocal
from talent_core.workers.celery_app import celery_app

router = APIRouter(tags=["health"])

CheckResult = dict[str, Any]
CHECK_NAMES = ("database", "redis", "celery")


def _ok_check(extra: dict[str, Any] | None = None) -> CheckResult:
    return {"status": "ok", **(extra or {})}


def _failed_check(error: str) -> CheckResult:
    return {"status": "failed", "error": error}


async def _check_database() -> CheckResult:
    try:
        async with SessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        return _failed_check(str(exc))
    return _ok_check()


async def _check_redis() -> CheckResult:
    redis_client = Redis.from_url(get_settings().redis_url)
    try:
        pong = await redis_client.ping()
    except Exception as exc:
        return _failed_check(str(exc))
    finally:
        await redis_client.aclose()

    if pong is not True:
        return _failed_check(f"unexpected redis ping response: {pong!r}")
    return _ok_check()


def _ping_celery_workers() -> CheckResult:
    try:
        inspector = celery_app.control.inspect(timeout=1.0)
        replies = inspector.ping() if inspector is not None else None
    except Exception as exc:
        return _failed_check(str(exc))

    if not replies:
        return _failed_check("no celery workers responded to ping")
    return _ok_check({"workers": len(replies)})


async def _check_celery_worker() -> CheckResult:
    return await asyncio.to_thread(_ping_celery_workers)


async def _collect_checks() -> dict[str, CheckResult]:
    results = await asyncio.gather(
        _check_database(),
        _check_redis(),
        _check_celery_worker(),
    )
    return dict(zip(CHECK_NAMES, results))


def _all_checks_ok(checks: dict[str, CheckResult]) -> bool:
    return all(check.get("status") == "ok" for check in checks.values())


async def _checks_response(*, ok_status: str, failed_status: str) -> JSONResponse:
    checks = await _collect_checks()
    is_ok = _all_checks_ok(checks)
    return JSONResponse(
        status_code=status.HTTP_200_OK if is_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": ok_status if is_ok else failed_status, "checks": checks},
    )


@router.get("/health")
async def health() -> JSONResponse:
    return await _checks_response(ok_status="ok", failed_status="degraded")


@router.get("/ready")
async def ready() -> JSONResponse:
    return await _checks_response(ok_status="ready", failed_status="not_ready")


@router.get("/live")
async def live() -> dict[str, str]:
    return {"status": "live"}
