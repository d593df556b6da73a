"""
Retry with exponential backoff for transient failures.

Used around backing-store queries and HTTP transmissions. Only the
failures a caller marks as retryable are retried; everything else is
raised on the first attempt so the full-sync driver can stop cleanly.

Usage:
    from utils.retry import retry_with_backoff

    @retry_with_backoff(max_retries=3, retryable_exceptions=(ConnectionError,))
    def post_chunk(session, url, body):
        return session.post(url, json=body, timeout=30)
"""

import logging
import random
import time
from collections.abc import Callable
from functools import wraps
from typing import Any

logger = logging.getLogger(__name__)

RetryCallback = Callable[[int, Exception, float], None]

RETRYABLE_DB_PATTERNS = (
    "connection",
    "timeout",
    "deadlock",
    "lock wait timeout",
    "server has gone away",
    "could not connect",
    "connection refused",
    "connection reset",
    "broken pipe",
    "communication link failure",
    "terminating connection",
)

RETRYABLE_DB_TYPES = ("operationalerror", "interfaceerror", "connectionerror", "timeouterror")


def compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> float:
    """
    Delay before retry number ``attempt`` (0-based).

    Exponential growth capped at ``max_delay``; jitter spreads it by +/-25%
    with a floor of 0.1s.
    """
    delay = min(base_delay * (exponential_base ** attempt), max_delay)
    if jitter:
        spread = delay * 0.25
        delay = max(0.1, delay + random.uniform(-spread, spread))
    return delay


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: tuple[type[Exception], ...] | None = None,
    should_retry: Callable[[Exception], bool] | None = None,
    on_retry: RetryCallback | None = None,
):
    """
    Decorator that retries a function with exponential backoff.

    Args:
        max_retries: Retries after the first attempt
        base_delay: Initial delay in seconds
        max_delay: Upper bound for a single delay
        exponential_base: Growth factor per attempt
        jitter: Randomize delays by +/-25%
        retryable_exceptions: Only these exception types are retried (default: all)
        should_retry: Extra predicate deciding whether an exception is transient
        on_retry: Called as ``on_retry(attempt, exception, delay)`` before sleeping

    Returns:
        Decorated function
    """
    def decorator(func: Callable) -> Callable:
        func_name = getattr(func, "__name__", "function")

        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    retryable = (
                        retryable_exceptions is None or isinstance(e, retryable_exceptions)
                    ) and (should_retry is None or should_retry(e))

                    if not retryable:
                        logger.error(
                            f"Non-retryable error in {func_name}: {type(e).__name__}: {e}"
                        )
                        raise

                    if attempt == max_retries:
                        logger.error(
                            f"Max retries ({max_retries}) exceeded for {func_name}: "
                            f"{type(e).__name__}: {e}"
                        )
                        raise

                    delay = compute_delay(
                        attempt, base_delay, max_delay, exponential_base, jitter
                    )
                    logger.warning(
                        f"Attempt {attempt + 1}/{max_retries + 1} failed for {func_name}: "
                        f"{type(e).__name__}: {e}. Retrying in {delay:.2f}s..."
                    )

                    if on_retry:
                        try:
                            on_retry(attempt + 1, e, delay)
                        except Exception as callback_error:
                            logger.error(f"Error in retry callback: {callback_error}")

                    time.sleep(delay)

            raise RuntimeError(f"Unexpected exit from retry loop in {func_name}")

        return wrapper
    return decorator


def is_retryable_db_exception(exception: Exception) -> bool:
    """
    True for transient database failures: lost connections, timeouts,
    deadlocks. Syntax errors and constraint violations are not retryable.
    """
    message = str(exception).lower()
    type_name = type(exception).__name__.lower()

    if type_name in RETRYABLE_DB_TYPES:
        return True

    return any(pattern in message or pattern in type_name for pattern in RETRYABLE_DB_PATTERNS)


def retry_database_operation(
    max_retries: int = 3,
    base_delay: float = 1.0,
    on_retry: RetryCallback | None = None,
):
    """
    Retry decorator for database calls that only retries transient errors.

    Example:
        @retry_database_operation(max_retries=2)
        def fetch_ids(cursor, query, params):
            cursor.execute(query, params)
            return cursor.fetchall()
    """
    return retry_with_backoff(
        max_retries=max_retries,
        base_delay=base_delay,
        should_retry=is_retryable_db_exception,
        on_retry=on_retry,
    )
