# src/orgboard/api/v1/dependencies.py
"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from orgboard.core.security import Viewer, decode_access_token
from orgboard.db.session import get_db
from orgboard.models import User
from orgboard.repositories import OrganizationRepository, PostRepository, RewardRepository
from orgboard.services.presentation import PostCallbacks

# HTTP Bearer scheme for JWT authentication; anonymous browsing is allowed
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]
CredentialsDep = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


def _viewer_from_token(token: str, db: Session) -> Viewer:
    try:
        viewer = decode_access_token(token)
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    if db.get(User, viewer.id) is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return viewer


def get_current_user(credentials: CredentialsDep, db: SessionDep) -> Viewer:
    """Return the signed-in viewer.

    Raises:
        HTTPException: 401 if the token is missing or invalid or the user is unknown.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _viewer_from_token(credentials.credentials, db)


def get_optional_viewer(credentials: CredentialsDep, db: SessionDep) -> Viewer | None:
    """Return the viewer when a bearer token is present, otherwise None."""
    if credentials is None:
        return None
    return _viewer_from_token(credentials.credentials, db)


CurrentUserDep = Annotated[Viewer, Depends(get_current_user)]
OptionalViewerDep = Annotated[Viewer | None, Depends(get_optional_viewer)]


def get_post_repository(db: SessionDep) -> PostRepository:
    return PostRepository(db)


def get_reward_repository(db: SessionDep) -> RewardRepository:
    return RewardRepository(db)


def get_organization_repository(db: SessionDep) -> OrganizationRepository:
    return OrganizationRepository(db)


PostRepoDep = Annotated[PostRepository, Depends(get_post_repository)]
RewardRepoDep = Annotated[RewardRepository, Depends(get_reward_repository)]
OrganizationRepoDep = Annotated[OrganizationRepository, Depends(get_organization_repository)]


def get_callbacks(
    repo: PostRepoDep,
    rewards: RewardRepoDep,
    viewer: OptionalViewerDep,
    x_client_session: Annotated[str | None, Header()] = None,
) -> PostCallbacks:
    """Bind the post callbacks to this request's viewer and client session."""
    return PostCallbacks(repo, viewer, session_key=x_client_session, rewards=rewards)


CallbacksDep = Annotated[PostCallbacks, Depends(get_callbacks)]
