# src/orgboard/services/views.py
"""Best-effort view counting, once per client session and post."""

from __future__ import annotations

import logging
import time
import uuid
from threading import Lock
from typing import Final

import redis

from orgboard.core.settings import settings
from orgboard.repositories.post_repo import PostRepository

logger = logging.getLogger(__name__)


class ViewTracker:
    """Increment ``view_count`` at most once per (session, post) marker.

    Markers live in Redis when ``REDIS_URL`` is configured and in an
    in-process cache otherwise. A client that discards its session key will be
    counted again; the dedup is not authoritative.
    """

    def __init__(self, repo: PostRepository, redis_url: str | None = None) -> None:
        self.repo = repo
        self._redis: redis.Redis | None = None
        url = redis_url if redis_url is not None else settings.redis_url
        if url:
            self._redis = redis.Redis.from_url(url)

    @staticmethod
    def marker_key(session_key: str, post_id: uuid.UUID) -> str:
        return f"viewed:{session_key}:{post_id}"

    def already_viewed(self, session_key: str, post_id: uuid.UUID) -> bool:
        key = self.marker_key(session_key, post_id)
        if self._redis is not None:
            try:
                return bool(self._redis.exists(key))
            except redis.RedisError:
                logger.warning("View marker lookup failed; using in-process cache", exc_info=True)
                self._redis = None

        now = time.monotonic()
        with _MARKER_LOCK:
            expiry = _MARKERS.get(key)
            if expiry is None:
                return False
            if expiry < now:
                _MARKERS.pop(key, None)
                return False
            return True

    def _mark(self, session_key: str, post_id: uuid.UUID) -> None:
        key = self.marker_key(session_key, post_id)
        ttl = settings.view_marker_ttl_seconds
        if self._redis is not None:
            try:
                self._redis.set(key, "1", ex=ttl)
                return
            except redis.RedisError:
                logger.warning("View marker write failed; using in-process cache", exc_info=True)
                self._redis = None

        now = time.monotonic()
        with _MARKER_LOCK:
            _sweep_markers(now)
            _MARKERS[key] = now + ttl

    def record_view(
        self,
        session_key: str,
        post_id: uuid.UUID,
        user_id: uuid.UUID | None = None,
    ) -> int | None:
        """Count a view unless this session already did.

        Returns:
            The new view count, or None when the view was deduplicated.
        """
        if self.already_viewed(session_key, post_id):
            logger.debug("Skipping repeat view of %s by session %s", post_id, session_key)
            return None
        count = self.repo.increment_view_count(post_id, user_id)
        self._mark(session_key, post_id)
        return count


MAX_MARKERS: Final = 10_000
_MARKERS: dict[str, float] = {}
_MARKER_LOCK: Final[Lock] = Lock()


def _sweep_markers(now: float) -> None:
    """Drop expired markers, then the soonest-expiring ones past MAX_MARKERS. Caller holds the lock."""
    for key in [key for key, expiry in _MARKERS.items() if expiry < now]:
        del _MARKERS[key]
    overflow = len(_MARKERS) - MAX_MARKERS + 1
    if overflow > 0:
        for key in sorted(_MARKERS, key=_MARKERS.__getitem__)[:overflow]:
            del _MARKERS[key]


def clear_view_markers() -> None:
    """Forget every in-process marker."""
    with _MARKER_LOCK:
        _MARKERS.clear()
