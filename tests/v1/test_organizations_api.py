# tests/v1/test_organizations_api.py
"""Tests for organization administration and the leaderboard."""

from fastapi.testclient import TestClient

from orgboard.models import Organization, Post, User


def test_promote_and_demote(
    client: TestClient,
    author_headers: dict[str, str],
    organization: Organization,
    member: User,
) -> None:
    url = f"/api/v1/organizations/{organization.id}/officers"
    response = client.post(
        url, json={"member_id": str(member.id), "position": "Secretary"}, headers=author_headers
    )
    assert response.status_code == 201
    assert response.json()["position"] == "Secretary"

    officers = client.get(url).json()
    assert {officer["user_id"] for officer in officers} >= {str(member.id)}

    response = client.delete(f"{url}/{member.id}", headers=author_headers)
    assert response.status_code == 204
    assert str(member.id) not in {officer["user_id"] for officer in client.get(url).json()}


def test_promote_non_member_conflicts(
    client: TestClient, author_headers: dict[str, str], organization: Organization, make_user
) -> None:
    outsider = make_user("Grace")
    response = client.post(
        f"/api/v1/organizations/{organization.id}/officers",
        json={"member_id": str(outsider.id), "position": "Secretary"},
        headers=author_headers,
    )
    assert response.status_code == 409


def test_members_cannot_promote(
    client: TestClient,
    member_headers: dict[str, str],
    organization: Organization,
    other_member: User,
) -> None:
    response = client.post(
        f"/api/v1/organizations/{organization.id}/officers",
        json={"member_id": str(other_member.id), "position": "Secretary"},
        headers=member_headers,
    )
    assert response.status_code == 403


def test_delete_organization_requires_matching_code(
    client: TestClient, author_headers: dict[str, str], organization: Organization
) -> None:
    url = f"/api/v1/organizations/{organization.id}"
    response = client.request(
        "DELETE", url, json={"confirmation_code": "nope"}, headers=author_headers
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Organization code does not match"

    response = client.request(
        "DELETE", url, json={"confirmation_code": organization.org_code}, headers=author_headers
    )
    assert response.status_code == 204


def test_leaderboard(
    client: TestClient,
    member_headers: dict[str, str],
    member: User,
    organization: Organization,
    poll_post: Post,
) -> None:
    client.post(
        f"/api/v1/posts/{poll_post.id}/vote", json={"option_index": 0}, headers=member_headers
    )

    response = client.get("/api/v1/leaderboard/", params={"org_id": str(organization.id)})

    assert response.status_code == 200
    assert response.json() == [
        {
            "rank": 1,
            "user_id": str(member.id),
            "display_name": "Bob Tester",
            "points": 10,
            "actions": 1,
        }
    ]
