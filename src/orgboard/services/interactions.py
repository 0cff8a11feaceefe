"""Per-viewer interaction state for likes, poll ballots, form responses and events.

Every interaction has the same two states, :class:`NoInteraction` and
:class:`Interacted`. Likes and event participation may go back to
:class:`NoInteraction`; poll ballots and form responses are terminal once
recorded. Aggregates other than the like count are always re-read from the
backend after a successful write.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from orgboard.core.security import Viewer
from orgboard.core.settings import settings
from orgboard.db.time import utcnow
from orgboard.domain.variants import EventPost, FeedbackPost, FormField, PollPost
from orgboard.models.interaction import RsvpStatus
from orgboard.repositories.post_repo import PostRepository
from orgboard.repositories.reward_repo import RewardRepository
from orgboard.services.errors import ConstraintViolation, PermissionDenied, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
REQUIRED_MESSAGE = "This field is required"
EMAIL_MESSAGE = "Please enter a valid email address"


@dataclass(frozen=True)
class NoInteraction:
    """The viewer has not acted on the post."""


@dataclass(frozen=True)
class Interacted(Generic[T]):
    """The viewer's recorded action."""

    value: T


InteractionState = NoInteraction | Interacted[Any]

NO_INTERACTION = NoInteraction()


# --- pure aggregate helpers -------------------------------------------------------


def tally_votes(ballots: Sequence[Sequence[int]], option_count: int) -> tuple[int, ...]:
    """Count selections per option; out-of-range indexes are ignored."""
    counts: Counter[int] = Counter()
    for selected in ballots:
        counts.update(index for index in selected if 0 <= index < option_count)
    return tuple(counts.get(index, 0) for index in range(option_count))


def poll_percentages(counts: Sequence[int]) -> tuple[float, ...]:
    """Return each option's share of all selections, 0 for every option when empty."""
    total = sum(counts)
    if total == 0:
        return tuple(0.0 for _ in counts)
    return tuple(round(count / total * 100, 1) for count in counts)


def validate_form_responses(
    fields: Sequence[FormField], responses: Mapping[str, Any]
) -> dict[str, str]:
    """Return per-question error messages; an empty dict means the answers are valid."""
    errors: dict[str, str] = {}
    for form_field in fields:
        raw = responses.get(form_field.question)
        value = "" if raw is None else str(raw).strip()
        if form_field.required and not value:
            errors[form_field.question] = REQUIRED_MESSAGE
            continue
        if form_field.type == "email" and value and not EMAIL_PATTERN.match(value):
            errors[form_field.question] = EMAIL_MESSAGE
    return errors


# --- snapshots ----------------------------------------------------------------------


@dataclass(frozen=True)
class LikeSnapshot:
    state: InteractionState
    count: int

    @property
    def liked(self) -> bool:
        return isinstance(self.state, Interacted)


@dataclass(frozen=True)
class PollSnapshot:
    state: InteractionState
    options: tuple[str, ...]
    counts: tuple[int, ...]
    percentages: tuple[float, ...]

    @property
    def total_votes(self) -> int:
        return sum(self.counts)

    @property
    def tally(self) -> dict[str, int]:
        return dict(zip(self.options, self.counts, strict=True))

    @property
    def has_voted(self) -> bool:
        return isinstance(self.state, Interacted)


@dataclass(frozen=True)
class FormSnapshot:
    state: InteractionState

    @property
    def submitted(self) -> bool:
        return isinstance(self.state, Interacted)


@dataclass(frozen=True)
class EventSnapshot:
    participation: InteractionState
    participant_count: int
    max_participants: int | None
    rsvp: InteractionState = NO_INTERACTION
    rsvp_counts: Mapping[str, int] = field(default_factory=dict)

    @property
    def joined(self) -> bool:
        return isinstance(self.participation, Interacted)

    @property
    def is_full(self) -> bool:
        return self.max_participants is not None and self.participant_count >= self.max_participants

    @property
    def can_join(self) -> bool:
        return not self.joined and not self.is_full


# --- state machines -----------------------------------------------------------------


class _Interaction:
    """Shared wiring: gateway, explicit viewer and optional coin ledger."""

    action: str = ""

    def __init__(
        self,
        repo: PostRepository,
        viewer: Viewer | None,
        rewards: RewardRepository | None = None,
    ) -> None:
        self.repo = repo
        self.viewer = viewer
        self.rewards = rewards

    def _require_viewer(self) -> Viewer:
        if self.viewer is None:
            raise PermissionDenied("Sign in to interact with posts")
        return self.viewer

    def _award(self, post_id: Any) -> int:
        if self.rewards is None or self.viewer is None:
            return 0
        points = settings.reward_points.get(self.action, 0)
        return self.rewards.award_user_coins_once(self.viewer.id, post_id, self.action, points)


class LikeInteraction(_Interaction):
    """Reversible like; the displayed count moves by exactly one per toggle."""

    def __init__(
        self,
        repo: PostRepository,
        viewer: Viewer | None,
        post_id: Any,
        rewards: RewardRepository | None = None,
    ) -> None:
        super().__init__(repo, viewer, rewards)
        self.post_id = post_id

    def load(self) -> LikeSnapshot:
        count = self.repo.count_likes(self.post_id)
        if self.viewer is None or not self.repo.get_like(self.post_id, self.viewer.id):
            return LikeSnapshot(state=NO_INTERACTION, count=count)
        return LikeSnapshot(state=Interacted(True), count=count)

    def toggle(self, current: LikeSnapshot | None = None) -> LikeSnapshot:
        """Flip the like and adjust ``current.count`` locally."""
        viewer = self._require_viewer()
        current = current or self.load()
        if current.liked:
            self.repo.delete_like(self.post_id, viewer.id)
            logger.debug("User %s unliked post %s", viewer.id, self.post_id)
            return LikeSnapshot(state=NO_INTERACTION, count=max(0, current.count - 1))
        self.repo.insert_like(self.post_id, viewer.id)
        logger.debug("User %s liked post %s", viewer.id, self.post_id)
        return LikeSnapshot(state=Interacted(True), count=current.count + 1)


class PollInteraction(_Interaction):
    """One ballot per viewer; the tally is recomputed from every ballot."""

    action = "vote"

    def __init__(
        self,
        repo: PostRepository,
        viewer: Viewer | None,
        poll: PollPost,
        rewards: RewardRepository | None = None,
    ) -> None:
        super().__init__(repo, viewer, rewards)
        self.poll = poll

    def _snapshot(self, state: InteractionState) -> PollSnapshot:
        votes = self.repo.list_votes(self.poll.id)
        counts = tally_votes([vote.selected for vote in votes], len(self.poll.options))
        return PollSnapshot(
            state=state,
            options=self.poll.options,
            counts=counts,
            percentages=poll_percentages(counts),
        )

    def load(self) -> PollSnapshot:
        state: InteractionState = NO_INTERACTION
        if self.viewer is not None:
            vote = self.repo.get_vote(self.poll.id, self.viewer.id)
            if vote is not None:
                state = Interacted(tuple(vote.selected))
        return self._snapshot(state)

    def _validate(self, option_indexes: Sequence[int]) -> list[int]:
        selected = list(dict.fromkeys(option_indexes))
        if not selected:
            raise ValidationError("Select an option", {"option_index": "Select an option"})
        if len(selected) > 1 and not self.poll.multiple_choice:
            raise ValidationError(
                "This poll accepts a single option",
                {"option_index": "Only one option may be selected"},
            )
        option_count = len(self.poll.options)
        for index in selected:
            if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < option_count:
                raise ValidationError(
                    f"Option {index!r} is not part of this poll",
                    {"option_index": f"Must be between 0 and {option_count - 1}"},
                )
        if self.poll.is_closed(utcnow()):
            raise ValidationError("This poll has closed", {"option_index": "Voting has ended"})
        return selected

    def cast(self, option_index: int | Sequence[int]) -> PollSnapshot:
        """Record the viewer's ballot.

        Raises:
            ValidationError: If an index is out of range or too many are given.
            ConstraintViolation: If the viewer already voted; the first ballot stands.
        """
        viewer = self._require_viewer()
        indexes = [option_index] if isinstance(option_index, int) else list(option_index)
        selected = self._validate(indexes)

        if self.repo.get_vote(self.poll.id, viewer.id) is not None:
            logger.info("Rejected second ballot by %s on poll %s", viewer.id, self.poll.id)
            raise ConstraintViolation("You have already voted on this poll")

        self.repo.insert_vote(self.poll.id, viewer.id, selected)
        self.repo.refresh_poll_results(self.poll.id, self.poll.options)
        logger.debug("User %s voted %s on poll %s", viewer.id, selected, self.poll.id)
        self._award(self.poll.id)
        return self._snapshot(Interacted(tuple(selected)))


class FormInteraction(_Interaction):
    """One-shot feedback submission."""

    action = "feedback"

    def __init__(
        self,
        repo: PostRepository,
        viewer: Viewer | None,
        form: FeedbackPost,
        rewards: RewardRepository | None = None,
    ) -> None:
        super().__init__(repo, viewer, rewards)
        self.form = form

    def load(self) -> FormSnapshot:
        if self.viewer is None:
            return FormSnapshot(state=NO_INTERACTION)
        response = self.repo.get_form_response(self.form.id, self.viewer.id)
        if response is None:
            return FormSnapshot(state=NO_INTERACTION)
        return FormSnapshot(state=Interacted(dict(response.responses)))

    def submit(self, responses: Mapping[str, Any]) -> FormSnapshot:
        """Validate and store the viewer's answers.

        Raises:
            ValidationError: With one message per offending question; nothing is sent.
            ConstraintViolation: If the viewer already submitted.
        """
        viewer = self._require_viewer()
        errors = validate_form_responses(self.form.fields, responses)
        if errors:
            logger.info("Rejected form submission on %s: %d invalid field(s)", self.form.id, len(errors))
            raise ValidationError("Please correct the highlighted fields", errors)
        if self.form.is_closed(utcnow()):
            raise ValidationError("This form is no longer accepting responses")

        if self.repo.get_form_response(self.form.id, viewer.id) is not None:
            logger.info("Rejected second submission by %s on form %s", viewer.id, self.form.id)
            raise ConstraintViolation("You have already submitted a response")

        answers = {key: value for key, value in responses.items()}
        self.repo.insert_form_response(self.form.id, viewer.id, answers)
        logger.debug("User %s submitted form %s", viewer.id, self.form.id)
        self._award(self.form.id)
        return FormSnapshot(state=Interacted(answers))


class EventInteraction(_Interaction):
    """Join/leave participation plus an independent RSVP status."""

    action = "event_join"

    def __init__(
        self,
        repo: PostRepository,
        viewer: Viewer | None,
        event: EventPost,
        rewards: RewardRepository | None = None,
    ) -> None:
        super().__init__(repo, viewer, rewards)
        self.event = event

    def load(self) -> EventSnapshot:
        participants = self.repo.list_participants(self.event.id)
        rsvps = self.repo.list_rsvps(self.event.id)
        rsvp_counts = {status.value: 0 for status in RsvpStatus}
        for rsvp in rsvps:
            rsvp_counts[rsvp.status] = rsvp_counts.get(rsvp.status, 0) + 1

        participation: InteractionState = NO_INTERACTION
        rsvp_state: InteractionState = NO_INTERACTION
        if self.viewer is not None:
            if self.viewer.id in participants:
                participation = Interacted(True)
            own = next((rsvp for rsvp in rsvps if rsvp.user_id == self.viewer.id), None)
            if own is not None:
                rsvp_state = Interacted(RsvpStatus(own.status))
        return EventSnapshot(
            participation=participation,
            participant_count=len(participants),
            max_participants=self.event.max_participants,
            rsvp=rsvp_state,
            rsvp_counts=rsvp_counts,
        )

    def join(self) -> EventSnapshot:
        """Join the event; a no-op when already joined or the event is full."""
        viewer = self._require_viewer()
        current = self.load()
        if current.joined:
            return current
        if current.is_full:
            logger.info("Ignored join by %s on full event %s", viewer.id, self.event.id)
            return current
        self.repo.insert_participant(self.event.id, viewer.id)
        self._award(self.event.id)
        return self.load()

    def leave(self) -> EventSnapshot:
        """Leave the event; a no-op when the viewer has not joined."""
        viewer = self._require_viewer()
        current = self.load()
        if not current.joined:
            return current
        self.repo.delete_participant(self.event.id, viewer.id)
        return self.load()

    def rsvp(self, status: RsvpStatus | str) -> EventSnapshot:
        """Record or change the viewer's RSVP."""
        viewer = self._require_viewer()
        try:
            status = RsvpStatus(status)
        except ValueError as err:
            raise ValidationError(
                f"Unknown RSVP status {status!r}",
                {"status": "Must be attending, maybe or not_attending"},
            ) from err
        self.repo.upsert_rsvp(self.event.id, viewer.id, status.value)
        if self.rewards is not None:
            self.rewards.award_user_coins_once(
                viewer.id, self.event.id, "rsvp", settings.reward_points.get("rsvp", 0)
            )
        return self.load()
