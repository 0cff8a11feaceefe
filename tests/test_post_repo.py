# tests/test_post_repo.py
"""Tests for the post gateway."""

import json
import uuid
from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from orgboard.db.time import utcnow
from orgboard.models import (
    EventDetail,
    EventParticipant,
    Organization,
    PollVote,
    Post,
    PostLike,
    PostView,
    User,
)
from orgboard.repositories import PostFilter, PostRepository, PostSort
from orgboard.services.errors import (
    ConstraintViolation,
    NetworkError,
    NotFoundError,
    ValidationError,
)


def _count(repo: PostRepository, model) -> int:
    return repo.session.scalar(select(func.count()).select_from(model))


def test_create_event_post_is_atomic(
    repo: PostRepository, author: User, organization: Organization
) -> None:
    """Test that a failing side row leaves no orphaned base row."""
    start = utcnow()
    with pytest.raises(ConstraintViolation):
        repo.create_post(
            {"user_id": author.id, "title": "Broken", "post_type": "event"},
            # end before start violates the schedule check
            {"start_date": start, "end_date": start - timedelta(days=1), "location": "Hall"},
        )
    assert _count(repo, Post) == 0
    assert _count(repo, EventDetail) == 0


def test_create_post_persists_side_row(repo: PostRepository, event_post: Post) -> None:
    loaded = repo.get_post(event_post.id)
    assert loaded.side_detail is not None
    assert loaded.side_detail.location == "Engineering Hall"


def test_get_post_missing_raises_not_found(repo: PostRepository) -> None:
    with pytest.raises(NotFoundError):
        repo.get_post(uuid.uuid4())


class TestListPosts:
    """Tests for filtering and ordering posts."""

    def test_pinned_posts_come_first(
        self, repo: PostRepository, author: User, organization: Organization
    ) -> None:
        older = repo.create_post(
            {"user_id": author.id, "title": "Pinned", "is_pinned": True,
             "created_at": utcnow() - timedelta(days=3)}
        )
        newer = repo.create_post({"user_id": author.id, "title": "Fresh"})

        rows = repo.list_posts()
        assert [row.id for row in rows] == [older.id, newer.id]

    def test_filter_by_tag(
        self, repo: PostRepository, general_post: Post, event_post: Post
    ) -> None:
        rows = repo.list_posts(PostFilter(tag="welcome"))
        assert [row.id for row in rows] == [general_post.id]

    def test_filter_by_type_and_status(
        self, repo: PostRepository, author: User, general_post: Post, poll_post: Post
    ) -> None:
        repo.create_post({"user_id": author.id, "title": "Draft poll idea", "status": "draft"})
        assert [r.id for r in repo.list_posts(PostFilter(post_type="poll"))] == [poll_post.id]
        drafts = repo.list_posts(PostFilter(status="draft"))
        assert [r.title for r in drafts] == ["Draft poll idea"]

    def test_search_matches_title_or_content(
        self, repo: PostRepository, general_post: Post, event_post: Post
    ) -> None:
        assert [r.id for r in repo.list_posts(PostFilter(search_text="hackathon"))] == [
            event_post.id
        ]
        assert [r.id for r in repo.list_posts(PostFilter(search_text="general post"))] == [
            general_post.id
        ]

    def test_filter_by_non_ascii_tag(
        self, repo: PostRepository, author: User, general_post: Post
    ) -> None:
        """Test that accented tags match even though JSON stores them escaped."""
        cafe = repo.create_post(
            {"user_id": author.id, "title": "Coffee social", "tags": ["café"], "status": "published"}
        )
        repo.create_post(
            {"user_id": author.id, "title": "Plain cafe", "tags": ["cafe"], "status": "published"}
        )
        assert [r.id for r in repo.list_posts(PostFilter(tag="café"))] == [cafe.id]

    def test_tag_wildcards_are_literal(self, repo: PostRepository, author: User) -> None:
        underscored = repo.create_post(
            {"user_id": author.id, "title": "Underscore", "tags": ["a_c"], "status": "published"}
        )
        repo.create_post(
            {"user_id": author.id, "title": "Letters", "tags": ["abc"], "status": "published"}
        )
        assert [r.id for r in repo.list_posts(PostFilter(tag="a_c"))] == [underscored.id]
        assert repo.list_posts(PostFilter(tag="%")) == []

    def test_search_wildcards_are_literal(
        self, repo: PostRepository, author: User, general_post: Post, event_post: Post
    ) -> None:
        discount = repo.create_post(
            {"user_id": author.id, "title": "100% attendance", "status": "published"}
        )
        assert [r.id for r in repo.list_posts(PostFilter(search_text="100%"))] == [discount.id]
        assert repo.list_posts(PostFilter(search_text="_")) == []

    def test_public_listing_hides_drafts_of_other_authors(
        self, repo: PostRepository, author: User, member: User, general_post: Post
    ) -> None:
        draft = repo.create_post({"user_id": author.id, "title": "Unfinished", "status": "draft"})

        anonymous = repo.list_posts(PostFilter(public_only=True))
        as_member = repo.list_posts(PostFilter(public_only=True, viewer_id=member.id))
        as_member_drafts = repo.list_posts(
            PostFilter(public_only=True, viewer_id=member.id, status="draft")
        )
        as_author = repo.list_posts(PostFilter(public_only=True, viewer_id=author.id))

        assert [r.id for r in anonymous] == [general_post.id]
        assert [r.id for r in as_member] == [general_post.id]
        assert as_member_drafts == []
        assert {r.id for r in as_author} == {general_post.id, draft.id}

    def test_sort_by_title_ascending(
        self, repo: PostRepository, general_post: Post, event_post: Post, poll_post: Post
    ) -> None:
        rows = repo.list_posts(sort=PostSort(field="title", direction="asc"))
        assert [r.title for r in rows] == ["Hackathon", "Next meetup", "Welcome week"]

    def test_unknown_sort_field_is_rejected(self, repo: PostRepository) -> None:
        with pytest.raises(ValidationError) as exc_info:
            repo.list_posts(sort=PostSort(field="password"))
        assert "sort" in exc_info.value.field_errors


class TestUpdatePost:
    def test_post_type_is_immutable(self, repo: PostRepository, general_post: Post) -> None:
        """Test that changing post_type is refused."""
        with pytest.raises(ValidationError):
            repo.update_post(general_post.id, {"post_type": "poll"})
        assert repo.get_post(general_post.id).post_type == "general"

    def test_update_sets_updated_at_and_side_fields(
        self, repo: PostRepository, event_post: Post
    ) -> None:
        updated = repo.update_post(
            event_post.id, {"title": "Hackathon 2.0"}, {"event": {"location": "Library"}}
        )
        assert updated.title == "Hackathon 2.0"
        assert updated.updated_at is not None
        assert updated.event.location == "Library"

    def test_feedback_content_patch_keeps_fields(
        self, repo: PostRepository, feedback_post: Post
    ) -> None:
        """Test that new text lands in the payload instead of replacing it."""
        updated = repo.update_post(feedback_post.id, {"content": "How was the workshop?"})

        payload = json.loads(updated.content)
        assert payload["description"] == "How was the workshop?"
        assert [field["question"] for field in payload["fields"]] == ["Email", "Comments"]

    def test_feedback_fields_patch_keeps_description(
        self, repo: PostRepository, feedback_post: Post
    ) -> None:
        fields = [{"question": "Rating", "type": "text", "required": True}]
        updated = repo.update_post(feedback_post.id, {"fields": fields})

        payload = json.loads(updated.content)
        assert payload["description"] == "Tell us how the workshop went"
        assert payload["fields"] == fields

    def test_poll_question_patch_keeps_payload_shape(
        self, repo: PostRepository, poll_post: Post
    ) -> None:
        updated = repo.update_post(poll_post.id, {"content": "Which evening works best?"})
        assert json.loads(updated.content) == {"question": "Which evening works best?"}

    def test_fields_rejected_on_general_post(
        self, repo: PostRepository, general_post: Post
    ) -> None:
        with pytest.raises(ValidationError) as exc_info:
            repo.update_post(general_post.id, {"fields": [{"question": "Email"}]})
        assert "fields" in exc_info.value.field_errors
        assert repo.get_post(general_post.id).content == "Body of the general post"

    def test_side_block_of_another_type_is_rejected(
        self, repo: PostRepository, poll_post: Post
    ) -> None:
        """Test that an event block sent to a poll changes nothing."""
        with pytest.raises(ValidationError) as exc_info:
            repo.update_post(
                poll_post.id, {"title": "Renamed"}, {"event": {"location": "Library"}}
            )
        assert "event" in exc_info.value.field_errors
        assert repo.get_post(poll_post.id).title == "Next meetup"

    def test_side_block_on_general_post_is_rejected(
        self, repo: PostRepository, general_post: Post
    ) -> None:
        with pytest.raises(ValidationError) as exc_info:
            repo.update_post(general_post.id, {}, {"poll": {"options": ["a", "b"]}})
        assert "poll" in exc_info.value.field_errors

    def test_poll_options_patch_refreshes_results(
        self, repo: PostRepository, poll_post: Post
    ) -> None:
        updated = repo.update_post(poll_post.id, {}, {"poll": {"options": ["X", "Y", "Z"]}})
        assert updated.poll.options == ["X", "Y", "Z"]
        assert updated.poll.results == {"X": 0, "Y": 0, "Z": 0}

    def test_poll_options_are_locked_once_voted(
        self, repo: PostRepository, poll_post: Post, member: User
    ) -> None:
        """Test that existing ballots are never re-labelled."""
        repo.insert_vote(poll_post.id, member.id, [0])
        repo.refresh_poll_results(poll_post.id, ["A", "B"])

        with pytest.raises(ConstraintViolation):
            repo.update_post(poll_post.id, {}, {"poll": {"options": ["X", "Y", "Z"]}})
        with pytest.raises(ConstraintViolation):
            repo.update_post(poll_post.id, {}, {"poll": {"multiple_choice": True}})

        poll = repo.get_post(poll_post.id).poll
        assert poll.options == ["A", "B"]
        assert poll.results == {"A": 1, "B": 0}

    def test_poll_end_date_can_change_after_votes(
        self, repo: PostRepository, poll_post: Post, member: User
    ) -> None:
        repo.insert_vote(poll_post.id, member.id, [1])
        end = utcnow() + timedelta(days=2)
        updated = repo.update_post(
            poll_post.id, {}, {"poll": {"options": ["A", "B"], "end_date": end}}
        )
        assert updated.poll.results == {"A": 0, "B": 1}


class TestGetVisiblePost:
    def test_author_sees_own_draft(self, repo: PostRepository, author: User) -> None:
        draft = repo.create_post({"user_id": author.id, "title": "Unfinished", "status": "draft"})
        assert repo.get_visible_post(draft.id, author.id).id == draft.id

    @pytest.mark.parametrize("status", ["draft", "archived"])
    def test_unpublished_post_is_hidden_from_others(
        self, repo: PostRepository, author: User, member: User, status: str
    ) -> None:
        hidden = repo.create_post({"user_id": author.id, "title": "Hidden", "status": status})
        with pytest.raises(NotFoundError):
            repo.get_visible_post(hidden.id, member.id)
        with pytest.raises(NotFoundError):
            repo.get_visible_post(hidden.id, None)

    def test_published_post_is_visible_to_anyone(
        self, repo: PostRepository, general_post: Post
    ) -> None:
        assert repo.get_visible_post(general_post.id, None).id == general_post.id


def test_delete_post_cascades_interactions(
    repo: PostRepository, event_post: Post, poll_post: Post, member: User
) -> None:
    """Test that removing posts removes their interaction rows."""
    repo.insert_participant(event_post.id, member.id)
    repo.insert_like(event_post.id, member.id)
    repo.insert_vote(poll_post.id, member.id, [0])

    repo.delete_post(event_post.id)
    repo.delete_post(poll_post.id)

    assert _count(repo, EventDetail) == 0
    assert _count(repo, EventParticipant) == 0
    assert _count(repo, PostLike) == 0
    assert _count(repo, PollVote) == 0


def test_increment_view_count_records_view(
    repo: PostRepository, general_post: Post, member: User
) -> None:
    assert repo.increment_view_count(general_post.id, member.id) == 1
    assert repo.increment_view_count(general_post.id, None) == 2
    assert _count(repo, PostView) == 2


def test_like_can_be_toggled_repeatedly(
    repo: PostRepository, general_post: Post, member: User
) -> None:
    for _ in range(2):
        repo.insert_like(general_post.id, member.id)
        assert repo.get_like(general_post.id, member.id)
        repo.delete_like(general_post.id, member.id)
        assert not repo.get_like(general_post.id, member.id)


def test_backend_outage_surfaces_as_network_error(repo: PostRepository) -> None:
    """Test that connectivity failures become NetworkError."""
    failure = OperationalError("SELECT 1", {}, Exception("server closed the connection"))
    with patch.object(repo.session, "execute", side_effect=failure):
        with pytest.raises(NetworkError):
            repo.list_posts()


def test_display_names(repo: PostRepository, author: User, member: User) -> None:
    names = repo.display_names([author.id, member.id, uuid.uuid4()])
    assert names == {author.id: "Alice Tester", member.id: "Bob Tester"}
