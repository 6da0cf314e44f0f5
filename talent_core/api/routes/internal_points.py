from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from talent_core.core.config import get_settings
from talent_core.points.ledger import DatabasePointsLedger

from .internal_helpers import assert_internal_access

router = APIRouter(tags=["internal", "points"])


class PointsBalanceResponse(BaseModel):
    user_id: str
    total_points: int = Field(ge=0)


def _assert_internal_access(request: Request) -> None:
    assert_internal_access(request, settings=get_settings(), area="points")


@router.get("/internal/points/{user_id}", response_model=PointsBalanceResponse)
async def get_points_balance(user_id: str, request: Request) -> PointsBalanceResponse:
    _assert_internal_access(request)

    total_points = await DatabasePointsLedger().get_balance(user_id)
    return PointsBalanceResponse(user_id=user_id, total_points=total_points)
