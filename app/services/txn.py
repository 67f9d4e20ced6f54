import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.services.errors import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Raised when a concurrent writer got there first: a stale turn version,
# or a second pending approval hitting the partial unique index.
CONFLICT_ERRORS = (StaleDataError, IntegrityError)


def run_with_conflict_retry(db: Session, fn: Callable[[], T], attempts: int = 2) -> T:
    """Run a read-modify-write unit, retrying it once if a concurrent writer won.

    ``fn`` must re-read everything it depends on, since the session is rolled
    back between attempts.
    """
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except CONFLICT_ERRORS as exc:
            db.rollback()
            if attempt == attempts:
                raise ConflictError("The record was modified concurrently, please retry") from exc
            logger.info("Concurrent modification detected, retrying (attempt %d): %s", attempt, exc)
    raise AssertionError("unreachable")
