"""Coin leaderboard built from the reward ledger."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from orgboard.core.settings import settings
from orgboard.repositories.reward_repo import LeaderboardRow, RewardRepository


@dataclass(frozen=True)
class RankedEntry:
    rank: int
    user_id: uuid.UUID
    display_name: str
    points: int
    actions: int


def rank_rows(rows: list[LeaderboardRow]) -> list[RankedEntry]:
    """Assign competition ranks; equal point totals share a rank."""
    ranked: list[RankedEntry] = []
    previous_points: int | None = None
    rank = 0
    for position, row in enumerate(rows, start=1):
        if row.points != previous_points:
            rank = position
            previous_points = row.points
        ranked.append(
            RankedEntry(
                rank=rank,
                user_id=row.user_id,
                display_name=row.display_name,
                points=row.points,
                actions=row.actions,
            )
        )
    return ranked


def get_leaderboard(
    rewards: RewardRepository,
    org_id: uuid.UUID | None = None,
    limit: int | None = None,
) -> list[RankedEntry]:
    """Return the top users by coins, optionally scoped to one organization."""
    rows = rewards.leaderboard(org_id=org_id, limit=limit or settings.leaderboard_size)
    return rank_rows(rows)
