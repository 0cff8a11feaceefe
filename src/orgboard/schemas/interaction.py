# src/orgboard/schemas/interaction.py
"""Schemas for likes, ballots, form submissions, RSVPs and response listings."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from orgboard.models.interaction import RsvpStatus


class VoteCreate(BaseModel):
    """Schema for casting a poll ballot."""

    option_index: int | None = Field(None, description="Single-choice selection")
    option_indexes: list[int] | None = Field(None, description="Multiple-choice selections")

    @model_validator(mode="after")
    def _require_selection(self) -> "VoteCreate":
        if self.option_index is None and not self.option_indexes:
            raise ValueError("option_index or option_indexes is required")
        return self

    @property
    def selection(self) -> int | list[int]:
        if self.option_indexes:
            return list(self.option_indexes)
        if self.option_index is None:
            raise TypeError("VoteCreate carries no selection")
        return self.option_index


class FormSubmission(BaseModel):
    """Answers keyed by question text."""

    responses: dict[str, Any] = Field(default_factory=dict)


class RsvpCreate(BaseModel):
    status: RsvpStatus


class LikeResponse(BaseModel):
    post_id: uuid.UUID
    liked: bool
    like_count: int


class ViewResponse(BaseModel):
    post_id: uuid.UUID
    counted: bool
    view_count: int | None = None


class ResponseRowOut(BaseModel):
    user_id: uuid.UUID
    display_name: str
    answers: dict[str, Any]
    recorded_at: datetime | None


class ResponsesOut(BaseModel):
    post_id: uuid.UUID
    kind: str
    rows: list[ResponseRowOut]
    summary: dict[str, Any]
