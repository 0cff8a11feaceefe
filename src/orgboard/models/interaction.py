"""Models capturing per-user interactions with posts."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from orgboard.db.session import Base
from orgboard.db.time import utcnow


class RsvpStatus(str, Enum):
    """Attendance intent recorded by an RSVP."""

    ATTENDING = "attending"
    MAYBE = "maybe"
    NOT_ATTENDING = "not_attending"


class PostLike(Base):
    """Presence of a row means the user likes the post."""

    __tablename__ = "post_likes"

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class PollVote(Base):
    """A user's single ballot on a poll.

    The composite primary key allows one ballot per user; multiple-choice
    polls record every selected option in ``option_indexes``.
    """

    __tablename__ = "poll_votes"
    __table_args__ = (
        CheckConstraint("option_index >= 0", name="ck_poll_votes_option_index"),
        Index("ix_poll_votes_post_id", "post_id"),
    )

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    option_index: Mapped[int] = mapped_column(Integer, nullable=False)
    option_indexes: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    @property
    def selected(self) -> list[int]:
        """Return every option index chosen on this ballot."""
        return list(self.option_indexes) or [self.option_index]


class FormResponse(Base):
    """Answers submitted once by a user to a feedback post."""

    __tablename__ = "form_responses"
    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_form_responses_post_user"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    responses: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class EventParticipant(Base):
    """Joined participant of an event; counts against ``max_participants``."""

    __tablename__ = "event_participants"

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("event_posts.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class EventRsvp(Base):
    """Stated attendance intent for an event; may be changed by its owner."""

    __tablename__ = "rsvps"
    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_rsvps_post_user"),
        CheckConstraint(
            "status IN ('attending', 'maybe', 'not_attending')",
            name="ck_rsvps_status",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class PostView(Base):
    """One recorded view; written by the ``increment_view_count`` procedure."""

    __tablename__ = "post_views"
    __table_args__ = (Index("ix_post_views_post_id", "post_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    viewed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
