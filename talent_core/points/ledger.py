from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from talent_core.db.repo.points_ledger_repo import PointsLedgerRepo
from talent_core.db.session import SessionLocal
from talent_core.points.errors import (
    PointsAmountInvalidError,
    PointsIdempotencyConflictError,
    PointsLedgerUnavailableError,
)
from talent_core.points.types import PointsIncrementResult

logger = structlog.get_logger(__name__)


class PointsLedger(Protocol):
    async def increment(
        self,
        *,
        user_id: str,
        amount: int,
        idempotency_key: str,
        source: str,
        metadata: dict[str, object] | None = None,
    ) -> PointsIncrementResult: ...


async def apply_points_increment(
    session: AsyncSession,
    *,
    user_id: str,
    amount: int,
    idempotency_key: str,
    source: str,
    now_utc: datetime,
    metadata: dict[str, object] | None = None,
) -> PointsIncrementResult:
    """Adds points at most once per idempotency key.

    The ledger row and the balance bump share the caller's transaction, so a
    replayed key never reaches the balance.
    """
    if amount <= 0:
        raise PointsAmountInvalidError

    entry_id = await PointsLedgerRepo.try_create_entry(
        session,
        user_id=user_id,
        amount=amount,
        source=source,
        idempotency_key=idempotency_key,
        metadata=metadata or {},
        created_at=now_utc,
    )
    if entry_id is None:
        existing = await PointsLedgerRepo.get_by_idempotency_key(session, idempotency_key)
        if existing is None or existing.user_id != user_id or existing.amount != amount:
            raise PointsIdempotencyConflictError
        return PointsIncrementResult(
            user_id=user_id,
            amount=amount,
            idempotency_key=idempotency_key,
            idempotent_replay=True,
        )

    total_points = await PointsLedgerRepo.add_to_balance(
        session,
        user_id=user_id,
        amount=amount,
        updated_at=now_utc,
    )
    return PointsIncrementResult(
        user_id=user_id,
        amount=amount,
        idempotency_key=idempotency_key,
        idempotent_replay=False,
        total_points=total_points,
    )


class DatabasePointsLedger:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory or SessionLocal

    async def increment(
        self,
        *,
        user_id: str,
        amount: int,
        idempotency_key: str,
        source: str,
        metadata: dict[str, object] | None = None,
    ) -> PointsIncrementResult:
        try:
            async with self._session_factory.begin() as session:
                result = await apply_points_increment(
                    session,
                    user_id=user_id,
                    amount=amount,
                    idempotency_key=idempotency_key,
                    source=source,
                    now_utc=datetime.now(timezone.utc),
                    metadata=metadata,
                )
        except SQLAlchemyError as exc:
            raise PointsLedgerUnavailableError(str(exc)) from exc

        logger.info(
            "points_ledger_increment_applied",
            user_id=user_id,
            amount=amount,
            idempotency_key=idempotency_key,
            idempotent_replay=result.idempotent_replay,
        )
        return result

    async def get_balance(self, user_id: str) -> int:
        async with self._session_factory() as session:
            return await PointsLedgerRepo.get_balance(session, user_id)
