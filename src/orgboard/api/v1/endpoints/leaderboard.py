# src/orgboard/api/v1/endpoints/leaderboard.py
"""Coin leaderboard endpoint."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Query

from orgboard.schemas.organization import LeaderboardEntry
from orgboard.services.leaderboard import get_leaderboard

from ..dependencies import RewardRepoDep

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get("/", response_model=list[LeaderboardEntry])
async def leaderboard(
    rewards: RewardRepoDep,
    org_id: uuid.UUID | None = None,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
) -> list[LeaderboardEntry]:
    """Rank users by coins earned from votes, feedback and events."""
    entries = get_leaderboard(rewards, org_id=org_id, limit=limit)
    return [LeaderboardEntry.model_validate(entry) for entry in entries]
