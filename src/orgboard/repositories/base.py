"""Translation of backend failures into typed service errors."""
from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from orgboard.services.errors import ConstraintViolation, NetworkError

logger = logging.getLogger(__name__)


@contextmanager
def backend_call(session: Session, operation: str) -> Iterator[None]:
    """Run one backend round trip, surfacing failures as typed errors.

    Integrity failures become :class:`ConstraintViolation`; connectivity
    failures and timeouts become :class:`NetworkError`. The session is rolled
    back so the caller's pre-action state stays intact.
    """
    try:
        yield
    except IntegrityError as err:
        session.rollback()
        logger.warning("Backend rejected %s: %s", operation, err.orig)
        raise ConstraintViolation(f"Could not {operation}: conflicting record exists") from err
    except (OperationalError, PoolTimeoutError) as err:
        session.rollback()
        logger.error("Backend unavailable during %s: %s", operation, err)
        raise NetworkError(f"Could not {operation}: backend did not respond") from err
    except DBAPIError as err:
        session.rollback()
        if err.connection_invalidated:
            logger.error("Connection lost during %s: %s", operation, err)
            raise NetworkError(f"Could not {operation}: connection lost") from err
        raise
