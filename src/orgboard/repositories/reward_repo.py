"""Coin ledger procedures backing the leaderboard."""
from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from orgboard.models import Post, RewardLog, User
from orgboard.repositories.base import backend_call
from orgboard.services.errors import ConstraintViolation

__all__ = ["LeaderboardRow", "RewardRepository"]


@dataclass(frozen=True)
class LeaderboardRow:
    """Aggregated coins of one user."""

    user_id: uuid.UUID
    display_name: str
    points: int
    actions: int


class RewardRepository:
    """Awards coins at most once per (user, post, action)."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def award_user_coins_once(
        self, user_id: uuid.UUID, post_id: uuid.UUID | None, action: str, points: int
    ) -> int:
        """Run ``award_user_coins_once``; returns the coins granted (0 if already awarded)."""
        if points <= 0:
            return 0
        with backend_call(self.session, "load reward"):
            existing = self.session.scalars(
                select(RewardLog).where(
                    RewardLog.user_id == user_id,
                    RewardLog.post_id == post_id,
                    RewardLog.action == action,
                )
            ).first()
        if existing is not None:
            return 0
        try:
            with backend_call(self.session, "award coins"):
                self.session.add(
                    RewardLog(user_id=user_id, post_id=post_id, action=action, points=points)
                )
                self.session.commit()
        except ConstraintViolation:
            # A concurrent award landed first.
            return 0
        return points

    def total_points(self, user_id: uuid.UUID) -> int:
        with backend_call(self.session, "load coins"):
            total = self.session.scalar(
                select(func.coalesce(func.sum(RewardLog.points), 0)).where(
                    RewardLog.user_id == user_id
                )
            )
        return int(total or 0)

    def leaderboard(self, org_id: uuid.UUID | None = None, limit: int = 10) -> list[LeaderboardRow]:
        """Rank users by coins, optionally counting only posts of one organization."""
        points = func.sum(RewardLog.points).label("points")
        actions = func.count(RewardLog.id).label("actions")
        stmt = (
            select(User, points, actions)
            .join(RewardLog, RewardLog.user_id == User.id)
            .group_by(User.id)
            .order_by(desc(points), User.id)
            .limit(limit)
        )
        if org_id is not None:
            stmt = stmt.join(Post, Post.id == RewardLog.post_id).where(Post.org_id == org_id)
        with backend_call(self.session, "load leaderboard"):
            rows = self.session.execute(stmt).all()
        return [
            LeaderboardRow(
                user_id=user.id,
                display_name=user.display_name,
                points=int(row_points or 0),
                actions=int(row_actions or 0),
            )
            for user, row_points, row_actions in rows
        ]
