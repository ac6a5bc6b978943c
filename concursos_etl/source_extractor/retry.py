"""Retry logic for HTTP calls with exponential backoff.

This module provides a decorator to automatically retry failed calls,
useful for handling transient network errors on the scraped sites.
"""

import logging
import time
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

logger = logging.getLogger(__name__)


class RetryExhaustedError(Exception):
    """Raised when every attempt of a retried call has failed.

    The last underlying exception is kept in `last_error` and chained as
    `__cause__`.
    """

    def __init__(self, operation: str, attempts: int, last_error: BaseException):
        super().__init__(
            f"{operation} failed after {attempts} attempts. Last error: {last_error}"
        )
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


def retry_with_backoff(
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    exceptions: tuple[type[Exception], ...] = (ConnectionError, TimeoutError),
    sleep: Optional[Callable[[float], Any]] = None,
) -> Callable[[F], F]:
    """Decorator to retry a function with exponential backoff.

    The decorated function is called up to `max_attempts` times. After a failed
    attempt number `n` (1-based) the wrapper waits
    `initial_delay * backoff_factor ** (n - 1)` seconds before trying again.
    Exceptions outside `exceptions` propagate immediately without a retry.

    Args:
        max_attempts: Total number of attempts, including the first (default: 3)
        initial_delay: Delay in seconds after the first failure (default: 1.0)
        backoff_factor: Multiplier applied to the delay after each failure (default: 2.0)
        exceptions: Exception types that trigger a retry
        sleep: Function used to wait between attempts (default: time.sleep)

    Returns:
        Decorated function that raises RetryExhaustedError once all attempts fail

    Example:
        @retry_with_backoff(max_attempts=3, initial_delay=2.0)
        def fetch_region():
            response = requests.get("https://www.pciconcursos.com.br/concursos/sul/")
            response.raise_for_status()
            return response.text

    Backoff calculation (initial_delay=2.0, backoff_factor=2.0, max_attempts=3):
        Attempt 1: No delay (first try)
        Attempt 2: Wait 2 seconds (2.0 * 2^0)
        Attempt 3: Wait 4 seconds (2.0 * 2^1)
        Then RetryExhaustedError
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    wait = sleep or time.sleep

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            last_exception: Optional[BaseException] = None

            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e

                    if attempt < max_attempts:
                        delay = initial_delay * (backoff_factor ** (attempt - 1))

                        logger.warning(
                            "Function %s failed (attempt %d/%d): %s. Retrying in %.1f seconds...",
                            func.__name__,
                            attempt,
                            max_attempts,
                            e,
                            delay,
                            extra={
                                "function": func.__name__,
                                "retry_attempt": attempt,
                                "max_attempts": max_attempts,
                                "delay_seconds": delay,
                                "exception_type": type(e).__name__,
                            },
                        )

                        wait(delay)
                    else:
                        logger.warning(
                            "Function %s failed (attempt %d/%d): %s",
                            func.__name__,
                            attempt,
                            max_attempts,
                            e,
                            extra={
                                "function": func.__name__,
                                "retry_attempt": attempt,
                                "max_attempts": max_attempts,
                                "exception_type": type(e).__name__,
                            },
                        )

            logger.error(
                "Function %s failed after %d attempts",
                func.__name__,
                max_attempts,
                extra={
                    "function": func.__name__,
                    "total_attempts": max_attempts,
                    "exception_type": type(last_exception).__name__,
                },
            )
            raise RetryExhaustedError(func.__name__, max_attempts, last_exception) from last_exception

        return wrapper  # type: ignore

    return decorator
