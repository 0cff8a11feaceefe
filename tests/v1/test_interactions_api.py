# tests/v1/test_interactions_api.py
"""Tests for the per-post interaction endpoints."""

from fastapi.testclient import TestClient

from orgboard.models import Post


def test_like_toggle(
    client: TestClient, member_headers: dict[str, str], general_post: Post
) -> None:
    """Test that liking twice returns to the original count."""
    url = f"/api/v1/posts/{general_post.id}/like"
    first = client.post(url, headers=member_headers).json()
    assert first == {"post_id": str(general_post.id), "liked": True, "like_count": 1}

    second = client.post(url, headers=member_headers).json()
    assert second["liked"] is False
    assert second["like_count"] == 0


def test_like_requires_auth(client: TestClient, general_post: Post) -> None:
    assert client.post(f"/api/v1/posts/{general_post.id}/like").status_code == 401


def test_vote_then_duplicate(
    client: TestClient, member_headers: dict[str, str], poll_post: Post
) -> None:
    """Test that the first ballot stands and a second one conflicts."""
    url = f"/api/v1/posts/{poll_post.id}/vote"
    response = client.post(url, json={"option_index": 0}, headers=member_headers)

    assert response.status_code == 200
    card = response.json()
    assert card["mode"] == "results"
    assert card["selected"] == [0]
    assert [(r["label"], r["votes"], r["percentage"]) for r in card["results"]] == [
        ("A", 1, 100.0),
        ("B", 0, 0.0),
    ]

    again = client.post(url, json={"option_index": 1}, headers=member_headers)
    assert again.status_code == 409
    assert again.json()["detail"] == "You have already voted on this poll"

    card = client.get(f"/api/v1/posts/{poll_post.id}", headers=member_headers).json()
    assert card["selected"] == [0]
    assert card["total_votes"] == 1


def test_vote_out_of_range(
    client: TestClient, member_headers: dict[str, str], poll_post: Post
) -> None:
    response = client.post(
        f"/api/v1/posts/{poll_post.id}/vote", json={"option_index": 5}, headers=member_headers
    )
    assert response.status_code == 422
    assert "option_index" in response.json()["field_errors"]


def test_vote_requires_a_selection(
    client: TestClient, member_headers: dict[str, str], poll_post: Post
) -> None:
    response = client.post(
        f"/api/v1/posts/{poll_post.id}/vote", json={}, headers=member_headers
    )
    assert response.status_code == 422


def test_vote_on_event_is_rejected(
    client: TestClient, member_headers: dict[str, str], event_post: Post
) -> None:
    response = client.post(
        f"/api/v1/posts/{event_post.id}/vote", json={"option_index": 0}, headers=member_headers
    )
    assert response.status_code == 422


def test_form_submission_validation(
    client: TestClient, member_headers: dict[str, str], feedback_post: Post
) -> None:
    """Test that an invalid email is reported for that field."""
    url = f"/api/v1/posts/{feedback_post.id}/form"
    response = client.post(
        url, json={"responses": {"Email": "not-an-email"}}, headers=member_headers
    )
    assert response.status_code == 422
    assert response.json()["field_errors"] == {"Email": "Please enter a valid email address"}

    card = client.get(f"/api/v1/posts/{feedback_post.id}", headers=member_headers).json()
    assert card["submitted"] is False


def test_form_submission_is_one_shot(
    client: TestClient, member_headers: dict[str, str], feedback_post: Post
) -> None:
    url = f"/api/v1/posts/{feedback_post.id}/form"
    body = {"responses": {"Email": "bob@campus.edu"}}
    first = client.post(url, json=body, headers=member_headers)
    assert first.status_code == 200
    assert first.json()["submitted"] is True

    second = client.post(url, json=body, headers=member_headers)
    assert second.status_code == 409


def test_join_full_event_is_noop(
    client: TestClient,
    member_headers: dict[str, str],
    other_headers: dict[str, str],
    author_headers: dict[str, str],
    event_post: Post,
) -> None:
    """Test that joining a full event leaves it unchanged."""
    url = f"/api/v1/posts/{event_post.id}/join"
    client.post(url, headers=member_headers)
    full = client.post(url, headers=other_headers).json()
    assert full["participant_count"] == 2

    card = client.get(f"/api/v1/posts/{event_post.id}", headers=author_headers).json()
    assert card["join_disabled"] is True

    response = client.post(url, headers=author_headers)
    assert response.status_code == 200
    assert response.json()["participant_count"] == 2
    assert response.json()["joined"] is False


def test_leave_event(
    client: TestClient, member_headers: dict[str, str], event_post: Post
) -> None:
    client.post(f"/api/v1/posts/{event_post.id}/join", headers=member_headers)
    card = client.post(f"/api/v1/posts/{event_post.id}/leave", headers=member_headers).json()
    assert card["joined"] is False
    assert card["participant_count"] == 0


def test_rsvp(client: TestClient, member_headers: dict[str, str], event_post: Post) -> None:
    url = f"/api/v1/posts/{event_post.id}/rsvp"
    card = client.post(url, json={"status": "maybe"}, headers=member_headers).json()
    assert card["rsvp_status"] == "maybe"

    card = client.post(url, json={"status": "not_attending"}, headers=member_headers).json()
    assert card["rsvp_status"] == "not_attending"
    assert card["rsvp_counts"]["not_attending"] == 1
    assert card["rsvp_counts"]["maybe"] == 0

    bad = client.post(url, json={"status": "going"}, headers=member_headers)
    assert bad.status_code == 422


def test_view_counted_once_per_client_session(client: TestClient, general_post: Post) -> None:
    url = f"/api/v1/posts/{general_post.id}/view"
    headers = {"X-Client-Session": "browser-tab-1"}

    first = client.post(url, headers=headers).json()
    assert first == {"post_id": str(general_post.id), "counted": True, "view_count": 1}
    assert client.post(url, headers=headers).json()["counted"] is False

    other = client.post(url, headers={"X-Client-Session": "browser-tab-2"}).json()
    assert other["view_count"] == 2


def test_responses_listing_and_csv(
    client: TestClient,
    author_headers: dict[str, str],
    member_headers: dict[str, str],
    poll_post: Post,
) -> None:
    client.post(
        f"/api/v1/posts/{poll_post.id}/vote", json={"option_index": 1}, headers=member_headers
    )

    url = f"/api/v1/posts/{poll_post.id}/responses"
    listing = client.get(url, headers=author_headers)
    assert listing.status_code == 200
    assert listing.json()["summary"]["tally"] == {"A": 0, "B": 1}

    export = client.get(url, params={"format": "csv"}, headers=author_headers)
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    assert f"poll-results-{poll_post.id}.csv" in export.headers["content-disposition"]
    lines = export.text.splitlines()
    assert lines[0] == "user_id,display_name,option,created_at"
    assert ",Bob Tester,B," in lines[1]


def test_responses_are_author_only(
    client: TestClient, member_headers: dict[str, str], poll_post: Post
) -> None:
    response = client.get(f"/api/v1/posts/{poll_post.id}/responses", headers=member_headers)
    assert response.status_code == 403
