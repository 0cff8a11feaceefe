# tests/conftest.py
from __future__ import annotations

import json
import os
from collections.abc import Callable, Generator, Iterator
from datetime import timedelta
from itertools import count

import pytest

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from orgboard.core.security import Viewer, create_access_token
from orgboard.db.session import Base
from orgboard.db.session import get_db as app_get_session
from orgboard.db.time import utcnow
from orgboard.main import app as fastapi_app
from orgboard.models import Officer, Organization, OrganizationMember, Post, User
from orgboard.repositories import PostRepository, RewardRepository
from orgboard.services.views import clear_view_markers

TEST_DB_URL = "sqlite://"

_ORG_CODE_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    # Repository commits and rollbacks act on savepoints inside the outer transaction.
    session = Session(
        bind=connection,
        autoflush=False,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    try:
        yield session
    finally:
        session.close()
        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture(autouse=True)
def reset_view_markers() -> Iterator[None]:
    clear_view_markers()
    yield
    clear_view_markers()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def repo(db_session: Session) -> PostRepository:
    return PostRepository(db_session)


@pytest.fixture()
def rewards(db_session: Session) -> RewardRepository:
    return RewardRepository(db_session)


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory persisting users."""

    def _make_user(first_name: str, last_name: str = "Tester", email: str | None = None) -> User:
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email or f"{first_name.lower()}@campus.test",
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture()
def author(make_user: Callable[..., User]) -> User:
    """Create the officer who authors posts."""
    return make_user("Alice")


@pytest.fixture()
def member(make_user: Callable[..., User]) -> User:
    """Create a regular organization member."""
    return make_user("Bob")


@pytest.fixture()
def other_member(make_user: Callable[..., User]) -> User:
    """Create a second regular member."""
    return make_user("Carol")


def viewer_of(user: User) -> Viewer:
    return Viewer(id=user.id, email=user.email)


@pytest.fixture()
def author_viewer(author: User) -> Viewer:
    return viewer_of(author)


@pytest.fixture()
def member_viewer(member: User) -> Viewer:
    return viewer_of(member)


@pytest.fixture()
def other_viewer(other_member: User) -> Viewer:
    return viewer_of(other_member)


def auth_headers_for(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def author_headers(author: User) -> dict[str, str]:
    """Return authorization headers for the post author."""
    return auth_headers_for(author)


@pytest.fixture()
def member_headers(member: User) -> dict[str, str]:
    """Return authorization headers for a regular member."""
    return auth_headers_for(member)


@pytest.fixture()
def other_headers(other_member: User) -> dict[str, str]:
    return auth_headers_for(other_member)


@pytest.fixture()
def organization(
    db_session: Session, author: User, member: User, other_member: User
) -> Organization:
    """Create an organization with the author as its president."""
    organization = Organization(
        org_code=f"CSS-{next(_ORG_CODE_COUNTER):04d}",
        name="Computer Science Society",
        abbrev_name="CSS",
        department="engineering",
    )
    db_session.add(organization)
    db_session.flush()
    db_session.add_all(
        [
            OrganizationMember(org_id=organization.id, user_id=author.id, position="President"),
            OrganizationMember(org_id=organization.id, user_id=member.id),
            OrganizationMember(org_id=organization.id, user_id=other_member.id),
            Officer(user_id=author.id, org_id=organization.id, position="President"),
        ]
    )
    db_session.commit()
    return organization


def _base(author: User, organization: Organization, post_type: str, **overrides: object) -> dict:
    base = {
        "user_id": author.id,
        "org_id": organization.id,
        "title": f"A {post_type} post",
        "content": f"Body of the {post_type} post",
        "tags": ["campus"],
        "status": "published",
        "post_type": post_type,
    }
    base.update(overrides)
    return base


@pytest.fixture()
def general_post(repo: PostRepository, author: User, organization: Organization) -> Post:
    return repo.create_post(
        _base(author, organization, "general", title="Welcome week", tags=["campus", "welcome"])
    )


@pytest.fixture()
def event_post(repo: PostRepository, author: User, organization: Organization) -> Post:
    start = utcnow() + timedelta(days=7)
    return repo.create_post(
        _base(author, organization, "event", title="Hackathon", tags=["events"]),
        {
            "start_date": start,
            "end_date": start + timedelta(hours=8),
            "location": "Engineering Hall",
            "max_participants": 2,
        },
    )


@pytest.fixture()
def poll_post(repo: PostRepository, author: User, organization: Organization) -> Post:
    return repo.create_post(
        _base(
            author,
            organization,
            "poll",
            title="Next meetup",
            content=json.dumps({"question": "Which day works best?"}),
        ),
        {"options": ["A", "B"], "multiple_choice": False},
    )


@pytest.fixture()
def multi_poll_post(repo: PostRepository, author: User, organization: Organization) -> Post:
    return repo.create_post(
        _base(author, organization, "poll", title="Snacks", content="Pick any snacks"),
        {"options": ["Chips", "Fruit", "Cookies"], "multiple_choice": True},
    )


@pytest.fixture()
def feedback_post(repo: PostRepository, author: User, organization: Organization) -> Post:
    payload = {
        "description": "Tell us how the workshop went",
        "fields": [
            {"question": "Email", "type": "email", "required": True},
            {"question": "Comments", "type": "textarea", "required": False},
        ],
    }
    return repo.create_post(
        _base(author, organization, "feedback", title="Workshop feedback",
              content=json.dumps(payload)),
    )
