"""Token helpers for the external auth provider boundary."""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from orgboard.core.settings import settings


@dataclass(frozen=True)
class Viewer:
    """The signed-in user on whose behalf an interaction is performed."""

    id: uuid.UUID
    email: str | None = None


def create_access_token(user_id: uuid.UUID | str, email: str | None = None) -> str:
    """Create a JWT the way the auth provider mints them.

    Only used by development tooling and tests; production tokens come from
    the provider itself.
    """
    to_encode: dict[str, object] = {"sub": str(user_id)}
    if email:
        to_encode["email"] = email
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> Viewer:
    """Return the viewer encoded in ``token``.

    Raises:
        JWTError: If the signature, expiry or subject claim is invalid.
    """
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    subject = payload.get("sub")
    if subject is None:
        raise JWTError("Token is missing a subject")
    try:
        user_id = uuid.UUID(str(subject))
    except ValueError as err:
        raise JWTError("Token subject is not a user id") from err
    return Viewer(id=user_id, email=payload.get("email"))
