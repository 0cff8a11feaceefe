# src/orgboard/api/v1/endpoints/posts.py
"""Post listing, detail and authoring endpoints."""

import logging
import uuid
from typing import Annotated, Literal

from fastapi import APIRouter, Query, Response, status

from orgboard.models.post import PostStatus, PostType
from orgboard.repositories import PostFilter, PostSort
from orgboard.schemas.post import PostCreate, PostOut, PostUpdate, serialize_card
from orgboard.services.errors import PermissionDenied
from orgboard.services.normalizer import normalize_row

from ..dependencies import CallbacksDep, CurrentUserDep, PostRepoDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("/", response_model=list[PostOut])
async def list_posts(
    callbacks: CallbacksDep,
    repo: PostRepoDep,
    tag: str | None = None,
    status_filter: Annotated[PostStatus | None, Query(alias="status")] = PostStatus.PUBLISHED,
    post_type: PostType | None = None,
    q: Annotated[str | None, Query(max_length=200)] = None,
    org_id: uuid.UUID | None = None,
    sort: str = "created_at",
    direction: Literal["asc", "desc"] = "desc",
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> list[PostOut]:
    """List posts, pinned first, with optional filters."""
    post_filter = PostFilter(
        tag=tag,
        status=status_filter.value if status_filter else None,
        post_type=post_type.value if post_type else None,
        search_text=q,
        org_id=org_id,
        public_only=True,
        viewer_id=callbacks.viewer.id if callbacks.viewer is not None else None,
    )
    rows = repo.list_posts(post_filter, PostSort(field=sort, direction=direction), limit=limit)
    return [serialize_card(callbacks.card(normalize_row(row))) for row in rows]


@router.post("/", response_model=PostOut, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    current_user: CurrentUserDep,
    callbacks: CallbacksDep,
    repo: PostRepoDep,
) -> PostOut:
    """Create a post and its side data in one transaction."""
    post = repo.create_post(post_data.base_columns(current_user.id), post_data.side_columns())
    logger.info("User %s created %s post %s", current_user.id, post.post_type, post.id)
    return serialize_card(callbacks.card(normalize_row(post)))


@router.get("/{post_id}", response_model=PostOut)
async def get_post(post_id: uuid.UUID, callbacks: CallbacksDep) -> PostOut:
    """Return one post rendered for the viewer."""
    return serialize_card(callbacks.card(callbacks.load(post_id)))


@router.patch("/{post_id}", response_model=PostOut)
async def update_post(
    post_id: uuid.UUID,
    post_data: PostUpdate,
    current_user: CurrentUserDep,
    callbacks: CallbacksDep,
    repo: PostRepoDep,
) -> PostOut:
    """Edit a post; only its author may do so."""
    post = repo.get_visible_post(post_id, current_user.id)
    if post.user_id != current_user.id:
        raise PermissionDenied("Only the author can edit this post")
    post = repo.update_post(post_id, post_data.patch_columns(), post_data.side_patch())
    return serialize_card(callbacks.card(normalize_row(post)))


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: uuid.UUID,
    current_user: CurrentUserDep,
    repo: PostRepoDep,
) -> Response:
    """Delete a post with its interactions; only its author may do so."""
    post = repo.get_visible_post(post_id, current_user.id)
    if post.user_id != current_user.id:
        raise PermissionDenied("Only the author can delete this post")
    repo.delete_post(post_id)
    logger.info("User %s deleted post %s", current_user.id, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
