"""Turn a base post row plus its optional side row into one tagged variant."""

from __future__ import annotations

import json
import logging
from typing import Any

from orgboard.db.time import as_utc
from orgboard.domain.variants import (
    EventPost,
    FeedbackPost,
    FormField,
    GeneralPost,
    PollPost,
    PostVariant,
)
from orgboard.models.post import EventDetail, FormDetail, PollDetail, Post, PostStatus, PostType

logger = logging.getLogger(__name__)

SideDetail = EventDetail | PollDetail | FormDetail

# Keys that mark a JSON object in ``content`` as a structured post payload.
PAYLOAD_KEYS = frozenset({"question", "description", "options", "fields"})


def parse_content_payload(content: str | None) -> dict[str, Any] | None:
    """Return ``content`` decoded as a structured payload, or None for literal text."""
    if not content:
        return None
    try:
        payload = json.loads(content)
    except (TypeError, ValueError):
        return None
    if not isinstance(payload, dict) or not PAYLOAD_KEYS.intersection(payload):
        return None
    return payload


def _display_text(payload: dict[str, Any] | None, content: str, *keys: str) -> str:
    if payload is None:
        return content
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def _payload_options(payload: dict[str, Any] | None) -> tuple[str, ...]:
    if payload is None:
        return ()
    options = payload.get("options")
    if not isinstance(options, list):
        return ()
    return tuple(str(option) for option in options)


def _payload_fields(payload: dict[str, Any] | None) -> tuple[FormField, ...]:
    if payload is None:
        return ()
    raw_fields = payload.get("fields")
    if not isinstance(raw_fields, list):
        return ()
    fields: list[FormField] = []
    for raw in raw_fields:
        if not isinstance(raw, dict) or not raw.get("question"):
            continue
        fields.append(
            FormField(
                question=str(raw["question"]),
                type=str(raw.get("type") or "text"),
                required=bool(raw.get("required", False)),
            )
        )
    return tuple(fields)


def _base_fields(base: Post) -> dict[str, Any]:
    try:
        status = PostStatus(base.status)
    except ValueError:
        status = PostStatus.PUBLISHED
    return {
        "id": base.id,
        "user_id": base.user_id,
        "org_id": base.org_id,
        "title": base.title,
        "tags": frozenset(base.tags or ()),
        "status": status,
        "is_pinned": bool(base.is_pinned),
        "created_at": as_utc(base.created_at),
        "updated_at": as_utc(base.updated_at),
        "view_count": base.view_count or 0,
    }


def _general(base: Post, degraded_from: PostType | None = None) -> GeneralPost:
    if degraded_from is not None:
        logger.warning(
            "Post %s is typed %s but has no usable side detail; rendering as general",
            base.id,
            degraded_from.value,
        )
    payload = parse_content_payload(base.content)
    body = _display_text(payload, base.content or "", "question", "description")
    return GeneralPost(**_base_fields(base), body=body, degraded_from=degraded_from)


def _event(base: Post, side: SideDetail | None) -> PostVariant:
    if not isinstance(side, EventDetail):
        return _general(base, PostType.EVENT)
    return EventPost(
        **_base_fields(base),
        body=base.content or "",
        start_date=as_utc(side.start_date),
        end_date=as_utc(side.end_date),
        location=side.location or "",
        max_participants=side.max_participants,
        participants=frozenset(participant.user_id for participant in side.participants),
    )


def _poll(base: Post, side: SideDetail | None) -> PostVariant:
    payload = parse_content_payload(base.content)
    poll = side if isinstance(side, PollDetail) else None
    options = tuple(poll.options) if poll is not None and poll.options else _payload_options(payload)
    if poll is None and not options:
        return _general(base, PostType.POLL)
    return PollPost(
        **_base_fields(base),
        question=_display_text(payload, base.content or "", "question", "description"),
        options=options,
        multiple_choice=bool(poll.multiple_choice) if poll is not None else False,
        end_date=as_utc(poll.end_date) if poll is not None else None,
        cached_results=dict(poll.results or {}) if poll is not None else {},
    )


def _feedback(base: Post, side: SideDetail | None) -> PostVariant:
    payload = parse_content_payload(base.content)
    form = side if isinstance(side, FormDetail) else None
    fields = _payload_fields(payload)
    if form is None and not fields:
        return _general(base, PostType.FEEDBACK)
    if not fields and form is not None:
        fields = tuple(
            FormField(question=name, type="text", required=True)
            for name in form.required_fields or ()
        )
    return FeedbackPost(
        **_base_fields(base),
        description=_display_text(payload, base.content or "", "description"),
        fields=fields,
        form_url=form.form_url if form is not None else None,
        deadline=as_utc(form.deadline) if form is not None else None,
    )


def normalize_post(base: Post, side: SideDetail | None = None) -> PostVariant:
    """Merge ``base`` with at most one side row into a tagged variant.

    Never raises for data gaps: a typed post without usable side data is
    projected to :class:`GeneralPost` with ``degraded_from`` set, and
    unparseable JSON content is treated as literal text.
    """
    try:
        post_type = PostType(base.post_type)
    except ValueError:
        logger.warning("Post %s has unknown post_type %r", base.id, base.post_type)
        return _general(base)

    if post_type is PostType.EVENT:
        return _event(base, side)
    if post_type is PostType.POLL:
        return _poll(base, side)
    if post_type is PostType.FEEDBACK:
        return _feedback(base, side)
    return _general(base)


def normalize_row(post: Post) -> PostVariant:
    """Normalize an ORM post using its loaded side relationship."""
    return normalize_post(post, post.side_detail)
