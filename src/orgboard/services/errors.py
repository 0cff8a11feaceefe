"""Typed failures surfaced by the gateway and the interaction layer.

Callers decide whether to toast, render inline or propagate; nothing here is
retried automatically.
"""

from __future__ import annotations


class OrgboardError(RuntimeError):
    """Base exception carrying a human-readable message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(OrgboardError):
    """Client-side validation failed; the operation was never sent.

    ``field_errors`` maps each offending field (form question, ``option_index``,
    ...) to its message so the caller can highlight it.
    """

    def __init__(self, message: str, field_errors: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.field_errors: dict[str, str] = dict(field_errors or {})


class ConstraintViolation(OrgboardError):
    """The backend (or a check-before-send) rejected a duplicate or conflicting write."""


class NetworkError(OrgboardError):
    """The request never completed, including backend timeouts."""


class NotFoundError(OrgboardError):
    """A referenced post, organization or user does not exist."""


class PermissionDenied(OrgboardError):
    """The viewer is not allowed to perform the operation."""
