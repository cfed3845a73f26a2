"""Row locking and retry helpers for concurrent ledger and payment updates."""

import time
from typing import Callable, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Query
from sqlalchemy.orm.exc import StaleDataError

from budgetkit.database.base import Database
from budgetkit.domain.errors import ConflictError
from budgetkit.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def lock_for_update(query: Query) -> Query:
    """Apply row-level locking to a query.

    SQLite ignores SELECT ... FOR UPDATE; the version column on locked rows
    still detects lost updates there.
    """
    return query.with_for_update().populate_existing()


def run_with_retry(
    db: Database,
    func: Callable[[], T],
    *,
    attempts: int = 3,
    backoff_base: float = 0.05,
    operation: str = "update",
) -> T:
    """Run a database operation, retrying on concurrency failures.

    Retries on OperationalError (locked database, deadlock) and StaleDataError
    (optimistic version conflict). The session is rolled back before each retry
    so the next attempt re-reads current rows.

    Args:
        db: Database whose session is rolled back between attempts
        func: Operation to run; should be safe to repeat from scratch
        attempts: Maximum number of attempts (at least 1)
        backoff_base: Base delay in seconds, doubled after each failure
        operation: Name used in log events and the final error message

    Returns:
        Whatever func returns

    Raises:
        ConflictError: If every attempt fails with a concurrency error
    """
    attempts = max(1, attempts)
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.rollback()
            if attempt >= attempts - 1:
                logger.error("retry_exhausted", operation=operation, attempts=attempts, error=str(exc))
                raise ConflictError(
                    f"Concurrent update conflict during {operation}; gave up after {attempts} attempts"
                ) from exc
            delay = backoff_base * (2**attempt)
            logger.warning("retrying_after_conflict", operation=operation, attempt=attempt + 1, delay=delay)
            time.sleep(delay)
    # Unreachable: the loop either returns or raises
    raise ConflictError(f"Concurrent update conflict during {operation}")
