# src/orgboard/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .interactions import router as interactions_router
from .leaderboard import router as leaderboard_router
from .organizations import router as organizations_router
from .posts import router as posts_router
from .tags import router as tags_router

__all__ = [
    "interactions_router",
    "leaderboard_router",
    "organizations_router",
    "posts_router",
    "tags_router",
]
