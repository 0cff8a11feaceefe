"""Select the interaction affordance for a post and wire host callbacks.

Dispatch is exhaustive over :data:`PostVariant`; adding a variant without a
branch here fails type checking at the ``assert_never`` calls.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, assert_never

from orgboard.core.security import Viewer
from orgboard.db.time import utcnow
from orgboard.domain.variants import (
    EventPost,
    FeedbackPost,
    FormField,
    GeneralPost,
    PollPost,
    PostVariant,
)
from orgboard.models.interaction import RsvpStatus
from orgboard.models.post import PostStatus
from orgboard.repositories.post_repo import PostFilter, PostRepository
from orgboard.repositories.reward_repo import RewardRepository
from orgboard.services.errors import ValidationError
from orgboard.services.interactions import (
    EventInteraction,
    EventSnapshot,
    FormInteraction,
    Interacted,
    LikeInteraction,
    LikeSnapshot,
    PollInteraction,
    PollSnapshot,
)
from orgboard.services.normalizer import normalize_row
from orgboard.services.responses import ResponsesView, collect_responses
from orgboard.services.views import ViewTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventAffordance:
    """Join/leave button; disabled while the event is full and not joined."""

    joined: bool
    disabled: bool
    participant_count: int
    max_participants: int | None
    rsvp_status: str | None = None
    rsvp_counts: dict[str, int] = field(default_factory=dict)

    @property
    def action(self) -> str:
        return "leave" if self.joined else "join"


@dataclass(frozen=True)
class PollOptionBar:
    label: str
    votes: int
    percentage: float


@dataclass(frozen=True)
class PollAffordance:
    """Vote buttons before the viewer votes, result bars afterwards."""

    mode: str
    options: tuple[str, ...]
    multiple_choice: bool
    results: tuple[PollOptionBar, ...] = ()
    selected: tuple[int, ...] = ()
    closed: bool = False

    @property
    def total_votes(self) -> int:
        return sum(bar.votes for bar in self.results)


@dataclass(frozen=True)
class FormAffordance:
    """Inline one-shot form, or a link when the form is hosted elsewhere."""

    fields: tuple[FormField, ...]
    submitted: bool
    closed: bool
    form_url: str | None = None


@dataclass(frozen=True)
class GeneralAffordance:
    """No primary action; only the like count is shown."""

    like_count: int
    liked: bool


Affordance = EventAffordance | PollAffordance | FormAffordance | GeneralAffordance


def _event_affordance(snapshot: EventSnapshot) -> EventAffordance:
    rsvp_status = None
    if isinstance(snapshot.rsvp, Interacted):
        rsvp_status = RsvpStatus(snapshot.rsvp.value).value
    return EventAffordance(
        joined=snapshot.joined,
        disabled=not snapshot.joined and snapshot.is_full,
        participant_count=snapshot.participant_count,
        max_participants=snapshot.max_participants,
        rsvp_status=rsvp_status,
        rsvp_counts=dict(snapshot.rsvp_counts),
    )


def _poll_affordance(post: PollPost, snapshot: PollSnapshot) -> PollAffordance:
    closed = post.is_closed(utcnow())
    if not snapshot.has_voted and not closed:
        return PollAffordance(
            mode="vote", options=post.options, multiple_choice=post.multiple_choice
        )
    bars = tuple(
        PollOptionBar(label=label, votes=votes, percentage=percentage)
        for label, votes, percentage in zip(
            snapshot.options, snapshot.counts, snapshot.percentages, strict=True
        )
    )
    selected = tuple(snapshot.state.value) if isinstance(snapshot.state, Interacted) else ()
    return PollAffordance(
        mode="results",
        options=post.options,
        multiple_choice=post.multiple_choice,
        results=bars,
        selected=selected,
        closed=closed,
    )


def _general_affordance(snapshot: LikeSnapshot) -> GeneralAffordance:
    return GeneralAffordance(like_count=snapshot.count, liked=snapshot.liked)


def select_affordance(
    repo: PostRepository, viewer: Viewer | None, post: PostVariant
) -> Affordance:
    """Return the primary affordance and aggregate for ``post`` as seen by ``viewer``."""
    if isinstance(post, EventPost):
        return _event_affordance(EventInteraction(repo, viewer, post).load())
    if isinstance(post, PollPost):
        return _poll_affordance(post, PollInteraction(repo, viewer, post).load())
    if isinstance(post, FeedbackPost):
        snapshot = FormInteraction(repo, viewer, post).load()
        return FormAffordance(
            fields=post.fields,
            submitted=snapshot.submitted,
            closed=post.is_closed(utcnow()),
            form_url=post.form_url,
        )
    if isinstance(post, GeneralPost):
        return _general_affordance(LikeInteraction(repo, viewer, post.id).load())
    assert_never(post)


@dataclass(frozen=True)
class PostCard:
    post: PostVariant
    affordance: Affordance


class PostCallbacks:
    """Uniform actions the list and detail views call back into.

    ``session_key`` identifies the client session for view dedup; the viewer
    is always passed in explicitly.
    """

    def __init__(
        self,
        repo: PostRepository,
        viewer: Viewer | None,
        *,
        session_key: str | None = None,
        rewards: RewardRepository | None = None,
        tracker: ViewTracker | None = None,
    ) -> None:
        self.repo = repo
        self.viewer = viewer
        self.rewards = rewards
        self.session_key = session_key or (str(viewer.id) if viewer is not None else None)
        self.tracker = tracker or ViewTracker(repo)

    def load(self, post_id: uuid.UUID) -> PostVariant:
        """Return the post as a variant; drafts of other authors are not found."""
        viewer_id = self.viewer.id if self.viewer is not None else None
        return normalize_row(self.repo.get_visible_post(post_id, viewer_id))

    def card(self, post: PostVariant) -> PostCard:
        return PostCard(post=post, affordance=select_affordance(self.repo, self.viewer, post))

    def on_view(self, post_id: uuid.UUID) -> int | None:
        """Count a view once per session; anonymous callers without a session are ignored."""
        if self.session_key is None:
            return None
        user_id = self.viewer.id if self.viewer is not None else None
        return self.tracker.record_view(self.session_key, post_id, user_id)

    def on_vote(self, post_id: uuid.UUID, options: int | Sequence[int]) -> PostCard:
        """Cast a ballot on a poll and return the refreshed card."""
        post = self.load(post_id)
        if not isinstance(post, PollPost):
            raise ValidationError("Only polls accept votes", {"post_type": "Not a poll"})
        PollInteraction(self.repo, self.viewer, post, self.rewards).cast(options)
        return self.card(post)

    def on_tag_click(self, tag: str, limit: int | None = None) -> list[PostVariant]:
        """Re-list published posts carrying ``tag``."""
        rows = self.repo.list_posts(
            PostFilter(tag=tag, status=PostStatus.PUBLISHED.value), limit=limit
        )
        logger.debug("Tag %r matched %d post(s)", tag, len(rows))
        return [normalize_row(row) for row in rows]

    def on_view_responses(self, post: PostVariant) -> ResponsesView:
        return collect_responses(self.repo, post, self.viewer)

    def interaction_for(self, post: PostVariant) -> Any:
        """Return the state machine that governs the viewer's action on ``post``."""
        if isinstance(post, EventPost):
            return EventInteraction(self.repo, self.viewer, post, self.rewards)
        if isinstance(post, PollPost):
            return PollInteraction(self.repo, self.viewer, post, self.rewards)
        if isinstance(post, FeedbackPost):
            return FormInteraction(self.repo, self.viewer, post, self.rewards)
        if isinstance(post, GeneralPost):
            return LikeInteraction(self.repo, self.viewer, post.id, self.rewards)
        assert_never(post)
