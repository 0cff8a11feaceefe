"""Gateways issuing every read and write against the backend tables."""

from .organization_repo import OrganizationRepository
from .post_repo import PostFilter, PostRepository, PostSort
from .reward_repo import RewardRepository

__all__ = [
    "OrganizationRepository",
    "PostFilter",
    "PostRepository",
    "PostSort",
    "RewardRepository",
]
