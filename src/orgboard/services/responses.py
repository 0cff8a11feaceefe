"""Response listings for post owners and their CSV export."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, assert_never

from orgboard.core.security import Viewer
from orgboard.db.time import as_utc
from orgboard.domain.variants import EventPost, FeedbackPost, GeneralPost, PollPost, PostVariant
from orgboard.models.interaction import RsvpStatus
from orgboard.repositories.post_repo import PostRepository
from orgboard.services.errors import PermissionDenied, ValidationError
from orgboard.services.interactions import poll_percentages, tally_votes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResponseRow:
    """One respondent's entry; ``answers`` holds the variant-specific columns."""

    user_id: Any
    display_name: str
    answers: dict[str, Any]
    recorded_at: datetime | None


@dataclass(frozen=True)
class ResponsesView:
    post_id: Any
    kind: str
    rows: list[ResponseRow]
    summary: dict[str, Any] = field(default_factory=dict)
    # Header for the timestamp column in exports.
    time_column: str = "created_at"

    @property
    def filename(self) -> str:
        prefix = {"event": "event-rsvps", "poll": "poll-results", "feedback": "form-responses"}
        return f"{prefix.get(self.kind, 'responses')}-{self.post_id}.csv"


def _require_owner(post: PostVariant, viewer: Viewer | None) -> None:
    if viewer is None or viewer.id != post.user_id:
        raise PermissionDenied("Only the author can view responses")


def _event_rows(repo: PostRepository, post: EventPost) -> ResponsesView:
    rsvps = repo.list_rsvps(post.id)
    participants = repo.list_participants(post.id)
    names = repo.display_names([rsvp.user_id for rsvp in rsvps] + participants)
    counts = {status.value: 0 for status in RsvpStatus}
    rows = []
    for rsvp in rsvps:
        counts[rsvp.status] = counts.get(rsvp.status, 0) + 1
        rows.append(
            ResponseRow(
                user_id=rsvp.user_id,
                display_name=names.get(rsvp.user_id, str(rsvp.user_id)),
                answers={"status": rsvp.status},
                recorded_at=as_utc(rsvp.updated_at or rsvp.created_at),
            )
        )
    summary = {
        "rsvp_counts": counts,
        "participants": [names.get(user_id, str(user_id)) for user_id in participants],
        "participant_count": len(participants),
        "max_participants": post.max_participants,
    }
    return ResponsesView(post_id=post.id, kind="event", rows=rows, summary=summary)


def _option_label(options: tuple[str, ...], index: int) -> str:
    if 0 <= index < len(options):
        return options[index]
    return f"Option {index + 1}"


def _poll_rows(repo: PostRepository, post: PollPost) -> ResponsesView:
    votes = repo.list_votes(post.id)
    names = repo.display_names([vote.user_id for vote in votes])
    rows = [
        ResponseRow(
            user_id=vote.user_id,
            display_name=names.get(vote.user_id, str(vote.user_id)),
            answers={"option": "; ".join(_option_label(post.options, i) for i in vote.selected)},
            recorded_at=as_utc(vote.created_at),
        )
        for vote in votes
    ]
    counts = tally_votes([vote.selected for vote in votes], len(post.options))
    summary = {
        "tally": dict(zip(post.options, counts, strict=True)),
        "percentages": dict(zip(post.options, poll_percentages(counts), strict=True)),
        "total_votes": sum(counts),
    }
    return ResponsesView(post_id=post.id, kind="poll", rows=rows, summary=summary)


def _feedback_rows(repo: PostRepository, post: FeedbackPost) -> ResponsesView:
    responses = repo.list_form_responses(post.id)
    names = repo.display_names([response.user_id for response in responses])
    rows = [
        ResponseRow(
            user_id=response.user_id,
            display_name=names.get(response.user_id, str(response.user_id)),
            answers=dict(response.responses or {}),
            recorded_at=as_utc(response.submitted_at),
        )
        for response in responses
    ]
    summary = {"response_count": len(rows), "questions": [f.question for f in post.fields]}
    return ResponsesView(
        post_id=post.id, kind="feedback", rows=rows, summary=summary, time_column="submitted_at"
    )


def collect_responses(
    repo: PostRepository, post: PostVariant, viewer: Viewer | None
) -> ResponsesView:
    """Return who responded to ``post`` and how; author only.

    Raises:
        PermissionDenied: If ``viewer`` did not author the post.
        ValidationError: For general posts, which collect no responses.
    """
    _require_owner(post, viewer)
    if isinstance(post, EventPost):
        return _event_rows(repo, post)
    if isinstance(post, PollPost):
        return _poll_rows(repo, post)
    if isinstance(post, FeedbackPost):
        return _feedback_rows(repo, post)
    if isinstance(post, GeneralPost):
        raise ValidationError("General posts do not collect responses")
    assert_never(post)


def export_csv(view: ResponsesView) -> str:
    """Render ``view`` as CSV with a header row; answers become columns."""
    answer_columns: list[str] = []
    for row in view.rows:
        for key in row.answers:
            if key not in answer_columns:
                answer_columns.append(key)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["user_id", "display_name", *answer_columns, view.time_column])
    for row in view.rows:
        writer.writerow(
            [
                row.user_id,
                row.display_name,
                *(row.answers.get(column, "") for column in answer_columns),
                row.recorded_at.isoformat() if row.recorded_at else "",
            ]
        )
    logger.info("Exported %d response row(s) for post %s", len(view.rows), view.post_id)
    return buffer.getvalue()
