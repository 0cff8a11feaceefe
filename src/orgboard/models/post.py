# src/orgboard/models/post.py
"""SQLAlchemy models for posts and their type-specific side tables."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orgboard.db.session import Base
from orgboard.db.time import utcnow

if TYPE_CHECKING:
    from .interaction import EventParticipant


class PostType(str, Enum):
    """Kind of post; fixed at creation and selects the side table."""

    GENERAL = "general"
    EVENT = "event"
    POLL = "poll"
    FEEDBACK = "feedback"


class PostStatus(str, Enum):
    """Publication state of a post."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Post(Base):
    """Base content row shared by every post variant."""

    __tablename__ = "posts"
    __table_args__ = (
        CheckConstraint(
            "post_type IN ('general', 'event', 'poll', 'feedback')",
            name="ck_posts_post_type",
        ),
        CheckConstraint(
            "status IN ('draft', 'published', 'archived')",
            name="ck_posts_status",
        ),
        Index("ix_posts_org_id", "org_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    org_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    # Poll and feedback posts may carry a JSON payload here instead of plain text.
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(Text, nullable=False, default=PostStatus.PUBLISHED.value)
    is_pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    post_type: Mapped[str] = mapped_column(Text, nullable=False, default=PostType.GENERAL.value)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    event: Mapped[EventDetail | None] = relationship(
        back_populates="post", uselist=False, cascade="all, delete-orphan", lazy="selectin"
    )
    poll: Mapped[PollDetail | None] = relationship(
        back_populates="post", uselist=False, cascade="all, delete-orphan", lazy="selectin"
    )
    form: Mapped[FormDetail | None] = relationship(
        back_populates="post", uselist=False, cascade="all, delete-orphan", lazy="selectin"
    )

    @property
    def side_detail(self) -> EventDetail | PollDetail | FormDetail | None:
        """Return the side-table row selected by ``post_type``, if present."""
        return {
            PostType.EVENT.value: self.event,
            PostType.POLL.value: self.poll,
            PostType.FEEDBACK.value: self.form,
        }.get(self.post_type)


class EventDetail(Base):
    """Schedule and capacity of an event post."""

    __tablename__ = "event_posts"
    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_event_posts_dates"),
        CheckConstraint(
            "max_participants IS NULL OR max_participants > 0",
            name="ck_event_posts_capacity",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    location: Mapped[str] = mapped_column(Text, nullable=False, default="")
    max_participants: Mapped[int | None] = mapped_column(Integer, nullable=True)

    post: Mapped[Post] = relationship(back_populates="event")
    participants: Mapped[list[EventParticipant]] = relationship(
        cascade="all, delete-orphan", passive_deletes=True, lazy="selectin"
    )


class PollDetail(Base):
    """Options of a poll post plus the cached tally."""

    __tablename__ = "poll_posts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    options: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    multiple_choice: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # Recomputed from poll_votes after every accepted ballot; never incremented in place.
    results: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    post: Mapped[Post] = relationship(back_populates="poll")


class FormDetail(Base):
    """External form link and required fields of a feedback post."""

    __tablename__ = "form_posts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    form_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    required_fields: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    post: Mapped[Post] = relationship(back_populates="form")
