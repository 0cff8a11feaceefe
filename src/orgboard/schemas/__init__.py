# src/orgboard/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .interaction import (
    FormSubmission,
    LikeResponse,
    ResponseRowOut,
    ResponsesOut,
    RsvpCreate,
    ViewResponse,
    VoteCreate,
)
from .organization import LeaderboardEntry, OfficerPromote, OfficerResponse, OrganizationDelete
from .post import PostCreate, PostOut, PostUpdate, serialize_card

__all__ = [
    "FormSubmission", "LikeResponse", "ResponseRowOut", "ResponsesOut",
    "RsvpCreate", "ViewResponse", "VoteCreate",
    "LeaderboardEntry", "OfficerPromote", "OfficerResponse", "OrganizationDelete",
    "PostCreate", "PostOut", "PostUpdate", "serialize_card",
]
