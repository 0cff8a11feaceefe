"""Data access helpers for posts, their side tables and interaction rows."""
from __future__ import annotations

import json
import uuid
from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import String, asc, cast, desc, func, or_, select
from sqlalchemy.orm import Session

from orgboard.db.time import utcnow
from orgboard.models import (
    EventDetail,
    EventParticipant,
    EventRsvp,
    FormDetail,
    FormResponse,
    PollDetail,
    PollVote,
    Post,
    PostLike,
    PostView,
    User,
)
from orgboard.models.post import PostStatus, PostType
from orgboard.repositories.base import backend_call
from orgboard.services.errors import ConstraintViolation, NotFoundError, ValidationError
from orgboard.services.normalizer import parse_content_payload

__all__ = ["PostFilter", "PostRepository", "PostSort"]

SORTABLE_FIELDS = {
    "created_at": Post.created_at,
    "updated_at": Post.updated_at,
    "title": Post.title,
    "view_count": Post.view_count,
}

# post_type -> (side model, relationship on Post)
_SIDE_MODELS: dict[str, tuple[type[EventDetail] | type[PollDetail] | type[FormDetail], str]] = {
    PostType.EVENT.value: (EventDetail, "event"),
    PostType.POLL.value: (PollDetail, "poll"),
    PostType.FEEDBACK.value: (FormDetail, "form"),
}

# post_type -> key holding the display text inside a structured content payload
_PAYLOAD_TEXT_KEYS = {
    PostType.POLL.value: "question",
    PostType.FEEDBACK.value: "description",
}


@dataclass(frozen=True)
class PostFilter:
    """Optional criteria for :meth:`PostRepository.list_posts`."""

    tag: str | None = None
    status: str | None = None
    post_type: str | None = None
    search_text: str | None = None
    org_id: uuid.UUID | None = None
    # Hide drafts and archived posts from everyone except their author.
    public_only: bool = False
    viewer_id: uuid.UUID | None = None


@dataclass(frozen=True)
class PostSort:
    """Ordering applied after pinned posts."""

    field: str = "created_at"
    direction: str = "desc"


class PostRepository:
    """The only component issuing reads and writes for posts and interactions."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    # --- posts --------------------------------------------------------------------
    def list_posts(
        self,
        post_filter: PostFilter | None = None,
        sort: PostSort | None = None,
        limit: int | None = None,
    ) -> list[Post]:
        """Return posts matching ``post_filter``; pinned posts always come first."""
        post_filter = post_filter or PostFilter()
        sort = sort or PostSort()
        column = SORTABLE_FIELDS.get(sort.field)
        if column is None:
            raise ValidationError(
                f"Cannot sort posts by {sort.field!r}",
                {"sort": f"Must be one of {', '.join(sorted(SORTABLE_FIELDS))}"},
            )

        stmt = select(Post)
        if post_filter.status:
            stmt = stmt.where(Post.status == post_filter.status)
        if post_filter.post_type:
            stmt = stmt.where(Post.post_type == post_filter.post_type)
        if post_filter.org_id is not None:
            stmt = stmt.where(Post.org_id == post_filter.org_id)
        if post_filter.public_only:
            published = Post.status == PostStatus.PUBLISHED.value
            if post_filter.viewer_id is None:
                stmt = stmt.where(published)
            else:
                stmt = stmt.where(or_(published, Post.user_id == post_filter.viewer_id))
        if post_filter.tag:
            # Tags are stored as a JSON array; match the element exactly as the
            # serializer wrote it, quotes and \u escapes included.
            stmt = stmt.where(
                cast(Post.tags, String).contains(json.dumps(post_filter.tag), autoescape=True)
            )
        if post_filter.search_text:
            text = post_filter.search_text
            stmt = stmt.where(
                or_(
                    Post.title.icontains(text, autoescape=True),
                    Post.content.icontains(text, autoescape=True),
                )
            )

        order = desc(column) if sort.direction == "desc" else asc(column)
        stmt = stmt.order_by(desc(Post.is_pinned), order, desc(Post.id))
        if limit is not None:
            stmt = stmt.limit(limit)

        with backend_call(self.session, "list posts"):
            result = self.session.execute(stmt)
            return list(result.scalars())

    def get_visible_post(self, post_id: uuid.UUID, viewer_id: uuid.UUID | None) -> Post:
        """Return a post the viewer may see; unpublished posts are visible to their author only.

        Raises:
            NotFoundError: If the post does not exist or is hidden from the viewer.
        """
        post = self.get_post(post_id)
        if post.status != PostStatus.PUBLISHED.value and post.user_id != viewer_id:
            raise NotFoundError("Post not found")
        return post

    def get_post(self, post_id: uuid.UUID) -> Post:
        """Return a post with its side row loaded.

        Raises:
            NotFoundError: If no post has this id.
        """
        with backend_call(self.session, "load post"):
            post = self.session.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return post

    def create_post(self, base: dict[str, Any], side: dict[str, Any] | None = None) -> Post:
        """Insert a post and its side row in one transaction.

        Args:
            base: Column values for ``posts``.
            side: Column values for the side table selected by ``post_type``.
        """
        post = Post(**base)
        side_entry = _SIDE_MODELS.get(post.post_type or PostType.GENERAL.value)
        if side_entry is not None and side is not None:
            side_model, relationship_name = side_entry
            setattr(post, relationship_name, side_model(**side))
        with backend_call(self.session, "create post"):
            self.session.add(post)
            self.session.commit()
        self.session.refresh(post)
        return post

    def update_post(
        self,
        post_id: uuid.UUID,
        patch: dict[str, Any],
        side_patch: Mapping[str, dict[str, Any]] | None = None,
    ) -> Post:
        """Apply ``patch`` to a post; ``post_type`` cannot change.

        Args:
            patch: Base column values. For feedback posts ``content`` and
                ``fields`` are merged into the structured payload instead of
                replacing it.
            side_patch: Side-table values keyed by block name (``event``,
                ``poll`` or ``form``); only the block of the post's own type
                is accepted.

        Raises:
            ValidationError: If the patch does not fit the post's type.
            ConstraintViolation: If poll options change after votes were cast.
        """
        post = self.get_post(post_id)
        patch = dict(patch)
        new_type = patch.pop("post_type", None)
        if new_type is not None and new_type != post.post_type:
            raise ValidationError(
                "Post type cannot be changed after creation",
                {"post_type": "Post type is fixed once the post exists"},
            )
        if "content" in patch or "fields" in patch:
            patch["content"] = self._merged_content(
                post, patch.pop("content", None), patch.pop("fields", None)
            )
        side_values = self._side_values(post, side_patch)
        side_entry = _SIDE_MODELS.get(post.post_type)
        relationship_name = side_entry[1] if side_entry is not None else None
        if relationship_name == "poll" and side_values:
            self._check_ballot_shape(post, side_values)

        with backend_call(self.session, "update post"):
            for key, value in patch.items():
                setattr(post, key, value)
            if side_values and side_entry is not None:
                side_model, relationship_name = side_entry
                side_row = getattr(post, relationship_name)
                if side_row is None:
                    setattr(post, relationship_name, side_model(**side_values))
                else:
                    for key, value in side_values.items():
                        setattr(side_row, key, value)
            post.updated_at = utcnow()
            self.session.commit()
        self.session.refresh(post)

        if relationship_name == "poll" and side_values and post.poll is not None:
            self.refresh_poll_results(post.id, post.poll.options)
        return post

    def _merged_content(
        self, post: Post, content: str | None, fields: list[dict[str, Any]] | None
    ) -> str:
        """Write new text and fields into the post's payload, keeping what was not patched."""
        text_key = _PAYLOAD_TEXT_KEYS.get(post.post_type)
        if fields is not None and post.post_type != PostType.FEEDBACK.value:
            raise ValidationError(
                "Only feedback posts have inline fields",
                {"fields": f"{post.post_type} posts do not accept form fields"},
            )
        payload = parse_content_payload(post.content)
        if text_key is None or (payload is None and fields is None):
            return content if content is not None else post.content

        payload = dict(payload) if payload is not None else {text_key: post.content or ""}
        if content is not None:
            payload[text_key] = content
        if fields is not None:
            payload["fields"] = fields
        return json.dumps(payload)

    def _side_values(
        self, post: Post, side_patch: Mapping[str, dict[str, Any]] | None
    ) -> dict[str, Any] | None:
        """Return the side columns to write, rejecting blocks of another post type."""
        if not side_patch:
            return None
        side_entry = _SIDE_MODELS.get(post.post_type)
        foreign = sorted(
            name for name in side_patch if side_entry is None or name != side_entry[1]
        )
        if foreign or side_entry is None:
            raise ValidationError(
                "Details do not match the post type",
                {name: f"{post.post_type} posts do not accept {name} details" for name in foreign},
            )
        side_model, own_block = side_entry
        values = dict(side_patch[own_block])
        columns = set(side_model.__table__.columns.keys()) - {"id"}
        unknown = sorted(set(values) - columns)
        if unknown:
            raise ValidationError(
                "Unknown detail fields",
                {name: "Not a field of this post type" for name in unknown},
            )
        return values

    def _check_ballot_shape(self, post: Post, values: dict[str, Any]) -> None:
        """Refuse option or choice-mode changes once ballots reference the current options."""
        current_options = list(post.poll.options) if post.poll is not None else []
        if not current_options:
            payload = parse_content_payload(post.content) or {}
            current_options = [str(option) for option in payload.get("options") or []]
        current_multiple = bool(post.poll.multiple_choice) if post.poll is not None else False
        changes_options = "options" in values and list(values["options"]) != current_options
        changes_mode = (
            "multiple_choice" in values and bool(values["multiple_choice"]) != current_multiple
        )
        if (changes_options or changes_mode) and self.list_votes(post.id):
            raise ConstraintViolation("Poll options cannot change once votes have been cast")

    def delete_post(self, post_id: uuid.UUID) -> None:
        """Delete a post; interaction rows go with it through ON DELETE CASCADE."""
        post = self.get_post(post_id)
        with backend_call(self.session, "delete post"):
            self.session.delete(post)
            self.session.commit()

    # --- views --------------------------------------------------------------------
    def increment_view_count(self, post_id: uuid.UUID, user_id: uuid.UUID | None) -> int:
        """Run the ``increment_view_count`` procedure and return the new count."""
        post = self.get_post(post_id)
        with backend_call(self.session, "record view"):
            # Incremented in SQL so concurrent viewers do not overwrite each other.
            post.view_count = Post.view_count + 1
            self.session.add(PostView(post_id=post_id, user_id=user_id))
            self.session.commit()
            self.session.refresh(post)
        return int(post.view_count)

    # --- likes --------------------------------------------------------------------
    def get_like(self, post_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        with backend_call(self.session, "load like"):
            return self.session.get(PostLike, (post_id, user_id)) is not None

    def count_likes(self, post_id: uuid.UUID) -> int:
        with backend_call(self.session, "count likes"):
            count = self.session.scalar(
                select(func.count()).select_from(PostLike).where(PostLike.post_id == post_id)
            )
        return int(count or 0)

    def insert_like(self, post_id: uuid.UUID, user_id: uuid.UUID) -> None:
        with backend_call(self.session, "like post"):
            self.session.add(PostLike(post_id=post_id, user_id=user_id))
            self.session.commit()

    def delete_like(self, post_id: uuid.UUID, user_id: uuid.UUID) -> None:
        with backend_call(self.session, "unlike post"):
            like = self.session.get(PostLike, (post_id, user_id))
            if like is not None:
                self.session.delete(like)
                self.session.commit()

    # --- poll votes ---------------------------------------------------------------
    def get_vote(self, post_id: uuid.UUID, user_id: uuid.UUID) -> PollVote | None:
        with backend_call(self.session, "load vote"):
            return self.session.get(PollVote, (post_id, user_id))

    def list_votes(self, post_id: uuid.UUID) -> list[PollVote]:
        with backend_call(self.session, "load votes"):
            result = self.session.execute(
                select(PollVote).where(PollVote.post_id == post_id).order_by(PollVote.created_at)
            )
            return list(result.scalars())

    def insert_vote(
        self, post_id: uuid.UUID, user_id: uuid.UUID, option_indexes: Sequence[int]
    ) -> PollVote:
        """Insert one ballot; the primary key rejects a second ballot by the same user."""
        vote = PollVote(
            post_id=post_id,
            user_id=user_id,
            option_index=option_indexes[0],
            option_indexes=list(option_indexes),
        )
        with backend_call(self.session, "cast vote"):
            self.session.add(vote)
            self.session.commit()
        return vote

    def refresh_poll_results(self, post_id: uuid.UUID, options: Sequence[str]) -> dict[str, int]:
        """Rewrite the cached tally on ``poll_posts`` from the ballots."""
        counts: Counter[int] = Counter()
        for vote in self.list_votes(post_id):
            counts.update(vote.selected)
        results = {option: counts.get(index, 0) for index, option in enumerate(options)}
        with backend_call(self.session, "refresh poll results"):
            poll = self.session.get(PollDetail, post_id)
            if poll is not None:
                poll.results = results
                self.session.commit()
        return results

    # --- form responses -----------------------------------------------------------
    def get_form_response(self, post_id: uuid.UUID, user_id: uuid.UUID) -> FormResponse | None:
        with backend_call(self.session, "load form response"):
            return self.session.scalars(
                select(FormResponse).where(
                    FormResponse.post_id == post_id, FormResponse.user_id == user_id
                )
            ).first()

    def list_form_responses(self, post_id: uuid.UUID) -> list[FormResponse]:
        with backend_call(self.session, "load form responses"):
            result = self.session.execute(
                select(FormResponse)
                .where(FormResponse.post_id == post_id)
                .order_by(FormResponse.submitted_at)
            )
            return list(result.scalars())

    def insert_form_response(
        self, post_id: uuid.UUID, user_id: uuid.UUID, responses: dict[str, Any]
    ) -> FormResponse:
        response = FormResponse(post_id=post_id, user_id=user_id, responses=dict(responses))
        with backend_call(self.session, "submit form"):
            self.session.add(response)
            self.session.commit()
        return response

    # --- event participation ------------------------------------------------------
    def list_participants(self, post_id: uuid.UUID) -> list[uuid.UUID]:
        with backend_call(self.session, "load participants"):
            result = self.session.execute(
                select(EventParticipant.user_id)
                .where(EventParticipant.event_id == post_id)
                .order_by(EventParticipant.joined_at)
            )
            return list(result.scalars())

    def insert_participant(self, post_id: uuid.UUID, user_id: uuid.UUID) -> None:
        with backend_call(self.session, "join event"):
            self.session.add(EventParticipant(event_id=post_id, user_id=user_id))
            self.session.commit()
        self._expire_event(post_id)

    def delete_participant(self, post_id: uuid.UUID, user_id: uuid.UUID) -> None:
        with backend_call(self.session, "leave event"):
            participant = self.session.get(EventParticipant, (post_id, user_id))
            if participant is not None:
                self.session.delete(participant)
                self.session.commit()
        self._expire_event(post_id)

    def _expire_event(self, post_id: uuid.UUID) -> None:
        event = self.session.get(EventDetail, post_id)
        if event is not None:
            self.session.expire(event, ["participants"])

    # --- RSVPs --------------------------------------------------------------------
    def get_rsvp(self, post_id: uuid.UUID, user_id: uuid.UUID) -> EventRsvp | None:
        with backend_call(self.session, "load RSVP"):
            return self.session.scalars(
                select(EventRsvp).where(EventRsvp.post_id == post_id, EventRsvp.user_id == user_id)
            ).first()

    def list_rsvps(self, post_id: uuid.UUID) -> list[EventRsvp]:
        with backend_call(self.session, "load RSVPs"):
            result = self.session.execute(
                select(EventRsvp).where(EventRsvp.post_id == post_id).order_by(EventRsvp.created_at)
            )
            return list(result.scalars())

    def upsert_rsvp(self, post_id: uuid.UUID, user_id: uuid.UUID, status: str) -> EventRsvp:
        """Record or change a user's RSVP status."""
        rsvp = self.get_rsvp(post_id, user_id)
        with backend_call(self.session, "save RSVP"):
            if rsvp is None:
                rsvp = EventRsvp(post_id=post_id, user_id=user_id, status=status)
                self.session.add(rsvp)
            else:
                rsvp.status = status
                rsvp.updated_at = utcnow()
            self.session.commit()
        return rsvp

    # --- authors ------------------------------------------------------------------
    def display_names(self, user_ids: Sequence[uuid.UUID]) -> dict[uuid.UUID, str]:
        """Return display names for ``user_ids``; unknown ids are omitted."""
        if not user_ids:
            return {}
        with backend_call(self.session, "load users"):
            users = self.session.scalars(select(User).where(User.id.in_(set(user_ids))))
            return {user.id: user.display_name for user in users}
