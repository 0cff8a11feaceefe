# tests/v1/test_dependencies.py
"""Tests for API dependencies module."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from fastapi import HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from orgboard.api.v1.dependencies import get_current_user, get_optional_viewer
from orgboard.core.security import Viewer, create_access_token, decode_access_token
from orgboard.core.settings import settings
from orgboard.models import User


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestGetCurrentUser:
    """Test the get_current_user dependency function."""

    def test_valid_token_returns_viewer(self, db_session, member: User) -> None:
        """Test that a valid token resolves to an explicit viewer."""
        token = create_access_token(member.id, member.email)
        viewer = get_current_user(_credentials(token), db_session)
        assert viewer == Viewer(id=member.id, email=member.email)

    def test_missing_token(self, db_session) -> None:
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(None, db_session)
        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED

    def test_invalid_signature(self, db_session, member: User) -> None:
        token = jwt.encode({"sub": str(member.id)}, "wrong-secret", algorithm="HS256")
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(_credentials(token), db_session)
        assert exc_info.value.detail == "Could not validate credentials"

    def test_expired_token(self, db_session, member: User) -> None:
        token = jwt.encode(
            {"sub": str(member.id), "exp": datetime.now(UTC) - timedelta(minutes=1)},
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(HTTPException):
            get_current_user(_credentials(token), db_session)

    def test_unknown_user(self, db_session) -> None:
        token = create_access_token(uuid.uuid4())
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(_credentials(token), db_session)
        assert exc_info.value.detail == "User not found"


def test_optional_viewer_is_none_without_token(db_session) -> None:
    assert get_optional_viewer(None, db_session) is None


def test_decode_rejects_non_uuid_subject() -> None:
    from jose import JWTError

    token = jwt.encode({"sub": "alice"}, settings.secret_key, algorithm=settings.jwt_algorithm)
    with pytest.raises(JWTError):
        decode_access_token(token)
