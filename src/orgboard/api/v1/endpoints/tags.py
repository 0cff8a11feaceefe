# src/orgboard/api/v1/endpoints/tags.py
"""Tag browsing endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query

from orgboard.schemas.post import PostOut, serialize_card

from ..dependencies import CallbacksDep

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("/{tag}/posts", response_model=list[PostOut])
async def posts_by_tag(
    tag: str,
    callbacks: CallbacksDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> list[PostOut]:
    """List published posts carrying ``tag``."""
    return [serialize_card(callbacks.card(post)) for post in callbacks.on_tag_click(tag, limit)]
