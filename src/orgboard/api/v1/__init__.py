# src/orgboard/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    interactions_router,
    leaderboard_router,
    organizations_router,
    posts_router,
    tags_router,
)

__all__ = [
    "interactions_router",
    "leaderboard_router",
    "organizations_router",
    "posts_router",
    "tags_router",
]
