"""Closed tagged union of post variants.

Only :mod:`orgboard.services.normalizer` looks at the raw ``post_type``
column; everything downstream dispatches on the variant class.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar

from orgboard.models.post import PostStatus, PostType


@dataclass(frozen=True, kw_only=True)
class _PostBase:
    id: uuid.UUID
    user_id: uuid.UUID
    org_id: uuid.UUID | None
    title: str
    tags: frozenset[str]
    status: PostStatus
    is_pinned: bool
    created_at: datetime
    updated_at: datetime | None = None
    view_count: int = 0

    kind: ClassVar[PostType]

    @property
    def edited(self) -> bool:
        """Return True when the post was updated after creation."""
        return self.updated_at is not None and self.updated_at != self.created_at


@dataclass(frozen=True, kw_only=True)
class GeneralPost(_PostBase):
    """Plain announcement; also the projection used when side data is missing."""

    kind: ClassVar[PostType] = PostType.GENERAL

    body: str
    # Set when a typed post was projected here because its side row was absent.
    degraded_from: PostType | None = None


@dataclass(frozen=True, kw_only=True)
class EventPost(_PostBase):
    """Event with a schedule and an optional participant cap."""

    kind: ClassVar[PostType] = PostType.EVENT

    body: str
    start_date: datetime
    end_date: datetime
    location: str
    max_participants: int | None = None
    participants: frozenset[uuid.UUID] = field(default_factory=frozenset)

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    @property
    def is_full(self) -> bool:
        """Return True once the cap is reached; uncapped events never fill."""
        return self.max_participants is not None and self.participant_count >= self.max_participants


@dataclass(frozen=True, kw_only=True)
class PollPost(_PostBase):
    """Poll with ordered options."""

    kind: ClassVar[PostType] = PostType.POLL

    question: str
    options: tuple[str, ...]
    multiple_choice: bool = False
    end_date: datetime | None = None
    # Cached tally from the side table; ballots remain the source of truth.
    cached_results: Mapping[str, int] = field(default_factory=dict)

    def is_closed(self, now: datetime) -> bool:
        return self.end_date is not None and now > self.end_date


@dataclass(frozen=True)
class FormField:
    """One question of an inline feedback form."""

    question: str
    type: str = "text"
    required: bool = False


@dataclass(frozen=True, kw_only=True)
class FeedbackPost(_PostBase):
    """Feedback form, either inline fields or a link to an external form."""

    kind: ClassVar[PostType] = PostType.FEEDBACK

    description: str
    fields: tuple[FormField, ...] = ()
    form_url: str | None = None
    deadline: datetime | None = None

    def is_closed(self, now: datetime) -> bool:
        return self.deadline is not None and now > self.deadline


PostVariant = GeneralPost | EventPost | PollPost | FeedbackPost
