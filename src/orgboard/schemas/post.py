# src/orgboard/schemas/post.py
"""Post-related Pydantic schemas."""

import json
import uuid
from datetime import datetime
from typing import Annotated, Any, Literal, TypeVar, assert_never

from pydantic import BaseModel, ConfigDict, Field, model_validator

from orgboard.domain.variants import EventPost, FeedbackPost, GeneralPost, PollPost
from orgboard.models.post import PostStatus, PostType
from orgboard.services.presentation import (
    EventAffordance,
    FormAffordance,
    GeneralAffordance,
    PollAffordance,
    PostCard,
)


class EventDetailIn(BaseModel):
    """Side data for event posts."""

    start_date: datetime
    end_date: datetime
    location: str = Field(..., min_length=1, max_length=255)
    max_participants: int | None = Field(None, gt=0)

    @model_validator(mode="after")
    def _check_schedule(self) -> "EventDetailIn":
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class PollDetailIn(BaseModel):
    """Side data for poll posts."""

    options: list[str] = Field(..., min_length=2, max_length=20)
    multiple_choice: bool = False
    end_date: datetime | None = None


class FormFieldIn(BaseModel):
    """One question of an inline feedback form."""

    question: str = Field(..., min_length=1, max_length=500)
    type: Literal["text", "textarea", "email", "number", "rating"] = "text"
    required: bool = False


class FormDetailIn(BaseModel):
    """Side data for feedback posts linking to an external form."""

    form_url: str | None = Field(None, max_length=2048)
    deadline: datetime | None = None
    required_fields: list[str] = Field(default_factory=list)


class PostCreate(BaseModel):
    """Schema for creating a new post together with its side data."""

    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field("", max_length=10000, description="Body text")
    tags: list[str] = Field(default_factory=list, max_length=20)
    status: PostStatus = PostStatus.PUBLISHED
    is_pinned: bool = False
    post_type: PostType = PostType.GENERAL
    org_id: uuid.UUID | None = None
    event: EventDetailIn | None = None
    poll: PollDetailIn | None = None
    form: FormDetailIn | None = None
    fields: list[FormFieldIn] | None = Field(
        None, description="Inline form questions, stored in the content payload"
    )

    @model_validator(mode="after")
    def _check_side_data(self) -> "PostCreate":
        if self.post_type is PostType.EVENT and self.event is None:
            raise ValueError("event posts require event details")
        if self.post_type is PostType.POLL and self.poll is None:
            raise ValueError("poll posts require poll options")
        if self.post_type is PostType.FEEDBACK and self.form is None and not self.fields:
            raise ValueError("feedback posts require form details or inline fields")
        return self

    def base_columns(self, user_id: uuid.UUID) -> dict[str, Any]:
        content = self.content
        if self.post_type is PostType.FEEDBACK and self.fields:
            content = json.dumps(
                {
                    "description": self.content,
                    "fields": [field.model_dump() for field in self.fields],
                }
            )
        return {
            "user_id": user_id,
            "org_id": self.org_id,
            "title": self.title,
            "content": content,
            "tags": sorted({tag.strip() for tag in self.tags if tag.strip()}),
            "status": self.status.value,
            "is_pinned": self.is_pinned,
            "post_type": self.post_type.value,
        }

    def side_columns(self) -> dict[str, Any] | None:
        if self.post_type is PostType.EVENT and self.event is not None:
            return self.event.model_dump()
        if self.post_type is PostType.POLL and self.poll is not None:
            return self.poll.model_dump()
        if self.post_type is PostType.FEEDBACK and self.form is not None:
            return self.form.model_dump()
        return None


class PostUpdate(BaseModel):
    """Schema for editing a post; ``post_type`` may only repeat its current value."""

    title: str | None = Field(None, min_length=1, max_length=255)
    content: str | None = Field(None, max_length=10000)
    tags: list[str] | None = None
    status: PostStatus | None = None
    is_pinned: bool | None = None
    post_type: PostType | None = None
    event: EventDetailIn | None = None
    poll: PollDetailIn | None = None
    form: FormDetailIn | None = None
    fields: list[FormFieldIn] | None = Field(
        None, min_length=1, description="Replacement inline form questions (feedback posts)"
    )

    def patch_columns(self) -> dict[str, Any]:
        """Return base columns to write; ``content`` and ``fields`` merge into feedback payloads."""
        patch = self.model_dump(
            exclude_unset=True, exclude={"event", "poll", "form"}, mode="json"
        )
        if "tags" in patch and patch["tags"] is not None:
            patch["tags"] = sorted({tag.strip() for tag in patch["tags"] if tag.strip()})
        return {key: value for key, value in patch.items() if value is not None}

    def side_patch(self) -> dict[str, dict[str, Any]]:
        """Return the detail blocks that were sent, keyed by block name."""
        blocks = {"event": self.event, "poll": self.poll, "form": self.form}
        return {
            name: detail.model_dump(exclude_unset=True)
            for name, detail in blocks.items()
            if detail is not None
        }


class _PostOutBase(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    org_id: uuid.UUID | None
    title: str
    tags: list[str]
    status: PostStatus
    is_pinned: bool
    created_at: datetime
    updated_at: datetime | None
    view_count: int
    edited: bool

    model_config = ConfigDict(from_attributes=True)


class GeneralPostOut(_PostOutBase):
    post_type: Literal["general"] = "general"
    body: str
    degraded_from: PostType | None = None
    like_count: int
    liked: bool


class EventPostOut(_PostOutBase):
    post_type: Literal["event"] = "event"
    body: str
    start_date: datetime
    end_date: datetime
    location: str
    max_participants: int | None
    participant_count: int
    joined: bool
    join_disabled: bool
    rsvp_status: str | None
    rsvp_counts: dict[str, int]


class PollOptionOut(BaseModel):
    label: str
    votes: int
    percentage: float


class PollPostOut(_PostOutBase):
    post_type: Literal["poll"] = "poll"
    question: str
    options: list[str]
    multiple_choice: bool
    end_date: datetime | None
    mode: Literal["vote", "results"]
    results: list[PollOptionOut]
    selected: list[int]
    closed: bool
    total_votes: int


class FormFieldOut(BaseModel):
    question: str
    type: str
    required: bool

    model_config = ConfigDict(from_attributes=True)


class FeedbackPostOut(_PostOutBase):
    post_type: Literal["feedback"] = "feedback"
    description: str
    fields: list[FormFieldOut]
    form_url: str | None
    deadline: datetime | None
    submitted: bool
    closed: bool


PostOut = Annotated[
    GeneralPostOut | EventPostOut | PollPostOut | FeedbackPostOut,
    Field(discriminator="post_type"),
]


def _common(post: GeneralPost | EventPost | PollPost | FeedbackPost) -> dict[str, Any]:
    return {
        "id": post.id,
        "user_id": post.user_id,
        "org_id": post.org_id,
        "title": post.title,
        "tags": sorted(post.tags),
        "status": post.status,
        "is_pinned": post.is_pinned,
        "created_at": post.created_at,
        "updated_at": post.updated_at,
        "view_count": post.view_count,
        "edited": post.edited,
    }


_A = TypeVar("_A", EventAffordance, PollAffordance, FormAffordance, GeneralAffordance)


def _expect_affordance(card: PostCard, expected: type[_A]) -> _A:
    if not isinstance(card.affordance, expected):
        raise TypeError(
            f"{type(card.post).__name__} cannot render {type(card.affordance).__name__}"
        )
    return card.affordance


def serialize_card(card: PostCard) -> GeneralPostOut | EventPostOut | PollPostOut | FeedbackPostOut:
    """Flatten a card's variant and affordance into its response schema."""
    post = card.post
    if isinstance(post, EventPost):
        event_affordance = _expect_affordance(card, EventAffordance)
        return EventPostOut(
            **_common(post),
            body=post.body,
            start_date=post.start_date,
            end_date=post.end_date,
            location=post.location,
            max_participants=event_affordance.max_participants,
            participant_count=event_affordance.participant_count,
            joined=event_affordance.joined,
            join_disabled=event_affordance.disabled,
            rsvp_status=event_affordance.rsvp_status,
            rsvp_counts=event_affordance.rsvp_counts,
        )
    if isinstance(post, PollPost):
        poll_affordance = _expect_affordance(card, PollAffordance)
        return PollPostOut(
            **_common(post),
            question=post.question,
            options=list(post.options),
            multiple_choice=post.multiple_choice,
            end_date=post.end_date,
            mode=poll_affordance.mode,
            results=[PollOptionOut(**vars(bar)) for bar in poll_affordance.results],
            selected=list(poll_affordance.selected),
            closed=poll_affordance.closed,
            total_votes=poll_affordance.total_votes,
        )
    if isinstance(post, FeedbackPost):
        form_affordance = _expect_affordance(card, FormAffordance)
        return FeedbackPostOut(
            **_common(post),
            description=post.description,
            fields=[FormFieldOut.model_validate(field) for field in post.fields],
            form_url=post.form_url,
            deadline=post.deadline,
            submitted=form_affordance.submitted,
            closed=form_affordance.closed,
        )
    if isinstance(post, GeneralPost):
        general_affordance = _expect_affordance(card, GeneralAffordance)
        return GeneralPostOut(
            **_common(post),
            body=post.body,
            degraded_from=post.degraded_from,
            like_count=general_affordance.like_count,
            liked=general_affordance.liked,
        )
    assert_never(post)
