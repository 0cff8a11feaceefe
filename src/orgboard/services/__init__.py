"""Business logic services for the Orgboard application."""

from .errors import (
    ConstraintViolation,
    NetworkError,
    NotFoundError,
    OrgboardError,
    PermissionDenied,
    ValidationError,
)

__all__ = [
    "OrgboardError",
    "ValidationError",
    "ConstraintViolation",
    "NetworkError",
    "NotFoundError",
    "PermissionDenied",
]
