"""
Retry logic with backoff for handling transient store failures.

Provides a decorator for re-running an operation from scratch when it
fails with a retryable error, and the classifier that decides which
database errors are serialization conflicts.
"""

import time
import functools
from typing import Callable, Type, Tuple, Optional

from sqlalchemy.exc import DBAPIError

LINEAR = "linear"
EXPONENTIAL = "exponential"

# SQLSTATE codes: serialization_failure, deadlock_detected
CONFLICT_SQLSTATES = {"40001", "40P01"}


class RetryError(Exception):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


def backoff_delay(
    attempt: int,
    base_delay: float,
    strategy: str = LINEAR,
    exponential_base: float = 2.0,
    max_delay: float = 60.0,
) -> float:
    """
    Delay to wait after the given failed attempt (1-based).

    Linear: base_delay * attempt. Exponential: base_delay * base ** (attempt - 1).
    """
    if strategy == LINEAR:
        delay = base_delay * attempt
    elif strategy == EXPONENTIAL:
        delay = base_delay * (exponential_base ** (attempt - 1))
    else:
        raise ValueError(f"Unknown backoff strategy: {strategy}")
    return min(delay, max_delay)


def retry_with_backoff(
    max_attempts: int = 3,
    base_delay: float = 0.02,
    max_delay: float = 60.0,
    strategy: str = LINEAR,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    retry_if: Optional[Callable[[Exception], bool]] = None,
    on_retry: Optional[Callable] = None,
):
    """
    Decorator for retrying functions with backoff.

    Args:
        max_attempts: Total number of attempts, including the first (>= 1)
        base_delay: Delay in seconds after the first failure
        max_delay: Maximum delay between attempts in seconds
        strategy: LINEAR or EXPONENTIAL growth of the delay
        exponential_base: Growth factor for EXPONENTIAL
        exceptions: Tuple of exceptions to catch and retry
        retry_if: Optional predicate; caught exceptions it rejects are re-raised at once
        on_retry: Optional callback function(attempt, exception, delay)

    Example:
        @retry_with_backoff(max_attempts=3, base_delay=0.02, retry_if=is_serialization_conflict)
        def write_batch(session_factory, rows):
            ...
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if retry_if is not None and not retry_if(e):
                        raise

                    if attempt == max_attempts:
                        raise RetryError(
                            f"Failed after {max_attempts} attempts: {e}",
                            attempts=max_attempts,
                        ) from e

                    current_delay = backoff_delay(
                        attempt,
                        base_delay,
                        strategy=strategy,
                        exponential_base=exponential_base,
                        max_delay=max_delay,
                    )
                    if on_retry:
                        on_retry(attempt, e, current_delay)
                    time.sleep(current_delay)

        return wrapper
    return decorator


def _sqlstate(error: Exception) -> Optional[str]:
    # psycopg2 exposes pgcode, psycopg 3 exposes sqlstate.
    return getattr(error, "pgcode", None) or getattr(error, "sqlstate", None)


def is_serialization_conflict(exception: Exception) -> bool:
    """
    Determine if a store error means two transactions could not be serialized.

    Args:
        exception: Exception to check

    Returns:
        True for serialization failures, deadlocks, and SQLite lock contention
    """
    if not isinstance(exception, DBAPIError):
        return False

    if _sqlstate(exception.orig) in CONFLICT_SQLSTATES:
        return True

    error_str = str(exception.orig).lower()
    conflict_keywords = [
        'could not serialize',
        'deadlock detected',
        'database is locked',
    ]
    return any(keyword in error_str for keyword in conflict_keywords)
