from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable
from typing import TypeVar

import structlog

from talent_core.db.session import dispose_engine

T = TypeVar("T")

logger = structlog.get_logger(__name__)


async def _run_job(job_name: str, awaitable: Awaitable[T]) -> T:
    # Pooled asyncpg connections are bound to the loop that opened them.
    await dispose_engine()
    structlog.contextvars.bind_contextvars(job=job_name)
    started_at = time.monotonic()
    try:
        result = await awaitable
        logger.info(
            "worker_job_finished",
            duration_ms=int((time.monotonic() - started_at) * 1000),
        )
        return result
    finally:
        structlog.contextvars.unbind_contextvars("job")
        await dispose_engine()


def run_async_job(awaitable: Awaitable[T], *, job_name: str) -> T:
    """Runs a coroutine from a sync Celery task; its log lines carry `job`."""
    return asyncio.run(_run_job(job_name, awaitable))
