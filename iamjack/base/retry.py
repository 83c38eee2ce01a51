"""
Retry utilities with configurable exponential backoff.

Only the transport wraps provider calls with :func:`retry`; the policy
and resolution layers above it never retry on their own.
"""

from __future__ import annotations

import time
import logging
from functools import wraps
from typing import Callable, Any

from iamjack.base.exceptions import ThrottlingError

logger = logging.getLogger("iamjack")

# Throttling is the only provider failure worth repeating as-is.
_DEFAULT_RETRYABLE: tuple[type[BaseException], ...] = (
    ThrottlingError,
    ConnectionError,
    TimeoutError,
)


def retry(
    max_attempts: int = 4,
    base_delay: float = 0.5,
    max_delay: float = 20.0,
    backoff_factor: float = 2.0,
    retryable_exceptions: tuple[type[BaseException], ...] | None = None,
) -> Callable:
    """Decorator: retry a function on transient exceptions with exponential backoff.

    Args:
        max_attempts: Maximum number of total attempts (including the first).
        base_delay: Initial delay in seconds before the first retry.
        max_delay: Cap on the delay between retries.
        backoff_factor: Multiplier applied to the delay after each retry.
        retryable_exceptions: Tuple of exception types that trigger a retry.
            Defaults to ThrottlingError, ConnectionError, TimeoutError.

    Returns:
        Decorated function that retries on transient failures.
    """
    if retryable_exceptions is None:
        retryable_exceptions = _DEFAULT_RETRYABLE

    def decorator(fn: Callable) -> Callable:
        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            delay = base_delay
            for attempt in range(1, max_attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except retryable_exceptions as exc:
                    if attempt == max_attempts:
                        logger.error(
                            "Giving up on %s after %d attempts: %s",
                            fn.__qualname__,
                            max_attempts,
                            exc,
                        )
                        raise
                    logger.warning(
                        "%s throttled on attempt %d/%d (%s), sleeping %.1fs",
                        fn.__qualname__,
                        attempt,
                        max_attempts,
                        exc,
                        delay,
                    )
                    time.sleep(delay)
                    delay = min(delay * backoff_factor, max_delay)
            raise RuntimeError("unreachable")  # pragma: no cover

        return wrapper

    return decorator
