# src/orgboard/api/v1/endpoints/interactions.py
"""Per-post interaction endpoints: views, likes, ballots, forms and events."""

import uuid
from typing import Literal

from fastapi import APIRouter, Response

from orgboard.domain.variants import EventPost, FeedbackPost, PostVariant
from orgboard.schemas.interaction import (
    FormSubmission,
    LikeResponse,
    ResponsesOut,
    RsvpCreate,
    ViewResponse,
    VoteCreate,
)
from orgboard.schemas.post import PostOut, serialize_card
from orgboard.services.errors import ValidationError
from orgboard.services.interactions import (
    EventInteraction,
    FormInteraction,
    LikeInteraction,
)
from orgboard.services.presentation import PostCallbacks
from orgboard.services.responses import export_csv

from ..dependencies import CallbacksDep, CurrentUserDep

router = APIRouter(prefix="/posts", tags=["interactions"])


def _event(callbacks: PostCallbacks, post_id: uuid.UUID) -> EventPost:
    post = callbacks.load(post_id)
    if not isinstance(post, EventPost):
        raise ValidationError("Only events can be joined", {"post_type": "Not an event"})
    return post


def _refreshed(callbacks: PostCallbacks, post: PostVariant) -> PostOut:
    return serialize_card(callbacks.card(callbacks.load(post.id)))


@router.post("/{post_id}/view", response_model=ViewResponse)
async def record_view(post_id: uuid.UUID, callbacks: CallbacksDep) -> ViewResponse:
    """Count a view once per client session."""
    callbacks.load(post_id)
    count = callbacks.on_view(post_id)
    return ViewResponse(post_id=post_id, counted=count is not None, view_count=count)


@router.post("/{post_id}/like", response_model=LikeResponse)
async def toggle_like(
    post_id: uuid.UUID, current_user: CurrentUserDep, callbacks: CallbacksDep
) -> LikeResponse:
    """Like the post, or remove the like if it already exists."""
    callbacks.load(post_id)
    snapshot = LikeInteraction(callbacks.repo, current_user, post_id).toggle()
    return LikeResponse(post_id=post_id, liked=snapshot.liked, like_count=snapshot.count)


@router.post("/{post_id}/vote", response_model=PostOut)
async def cast_vote(
    post_id: uuid.UUID,
    vote_data: VoteCreate,
    current_user: CurrentUserDep,
    callbacks: CallbacksDep,
) -> PostOut:
    """Cast the viewer's only ballot on a poll."""
    return serialize_card(callbacks.on_vote(post_id, vote_data.selection))


@router.post("/{post_id}/form", response_model=PostOut)
async def submit_form(
    post_id: uuid.UUID,
    submission: FormSubmission,
    current_user: CurrentUserDep,
    callbacks: CallbacksDep,
) -> PostOut:
    """Submit answers to an inline feedback form, once."""
    post = callbacks.load(post_id)
    if not isinstance(post, FeedbackPost):
        raise ValidationError("Only feedback posts accept responses", {"post_type": "Not a form"})
    FormInteraction(callbacks.repo, current_user, post, callbacks.rewards).submit(
        submission.responses
    )
    return _refreshed(callbacks, post)


@router.post("/{post_id}/join", response_model=PostOut)
async def join_event(
    post_id: uuid.UUID, current_user: CurrentUserDep, callbacks: CallbacksDep
) -> PostOut:
    """Join an event; nothing happens when it is full or already joined."""
    post = _event(callbacks, post_id)
    EventInteraction(callbacks.repo, current_user, post, callbacks.rewards).join()
    return _refreshed(callbacks, post)


@router.post("/{post_id}/leave", response_model=PostOut)
async def leave_event(
    post_id: uuid.UUID, current_user: CurrentUserDep, callbacks: CallbacksDep
) -> PostOut:
    """Leave an event the viewer joined."""
    post = _event(callbacks, post_id)
    EventInteraction(callbacks.repo, current_user, post, callbacks.rewards).leave()
    return _refreshed(callbacks, post)


@router.post("/{post_id}/rsvp", response_model=PostOut)
async def rsvp_event(
    post_id: uuid.UUID,
    rsvp_data: RsvpCreate,
    current_user: CurrentUserDep,
    callbacks: CallbacksDep,
) -> PostOut:
    """Record or change the viewer's RSVP status."""
    post = _event(callbacks, post_id)
    EventInteraction(callbacks.repo, current_user, post, callbacks.rewards).rsvp(rsvp_data.status)
    return _refreshed(callbacks, post)


@router.get("/{post_id}/responses", response_model=ResponsesOut)
async def list_responses(
    post_id: uuid.UUID,
    current_user: CurrentUserDep,
    callbacks: CallbacksDep,
    format: Literal["json", "csv"] = "json",
) -> ResponsesOut | Response:
    """Return who responded to the post; ``format=csv`` downloads the listing."""
    view = callbacks.on_view_responses(callbacks.load(post_id))
    if format == "csv":
        return Response(
            content=export_csv(view),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{view.filename}"'},
        )
    return ResponsesOut(
        post_id=view.post_id,
        kind=view.kind,
        rows=[vars(row) for row in view.rows],
        summary=view.summary,
    )

