"""SQLAlchemy models for the Orgboard application."""

from .interaction import EventParticipant, EventRsvp, FormResponse, PollVote, PostLike, PostView
from .organization import Officer, Organization, OrganizationMember
from .post import EventDetail, FormDetail, PollDetail, Post
from .reward import RewardLog
from .user import User

__all__ = [
    "EventParticipant", "EventRsvp", "FormResponse", "PollVote", "PostLike", "PostView",
    "Officer", "Organization", "OrganizationMember",
    "EventDetail", "FormDetail", "PollDetail", "Post",
    "RewardLog",
    "User",
]
