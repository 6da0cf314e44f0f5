from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PointsIncrementResult:
    user_id: str
    amount: int
    idempotency_key: str
    idempotent_replay: bool
    total_points: int | None = None
