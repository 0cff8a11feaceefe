"""Immutable domain types shared by the service layer."""

from .variants import (
    EventPost,
    FeedbackPost,
    FormField,
    GeneralPost,
    PollPost,
    PostVariant,
)

__all__ = [
    "EventPost",
    "FeedbackPost",
    "FormField",
    "GeneralPost",
    "PollPost",
    "PostVariant",
]
