"""Bounded retry with a short fixed delay.

Remote interactions run against a single shared UI session, so retries are
strictly sequential and never back off exponentially: a transient hiccup
either clears within a couple of seconds or the item is reported as failed.
"""

import time
from collections.abc import Callable
from typing import Any, TypeVar

from workorder_sync.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def call_with_retry(
    func: Callable[..., T],
    *args: Any,
    max_attempts: int = 3,
    delay: float = 1.0,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> T:
    """Call ``func`` until it succeeds or ``max_attempts`` is reached.

    Args:
        func: Callable to invoke
        *args: Positional arguments for ``func``
        max_attempts: Total number of attempts (at least 1)
        delay: Fixed delay between attempts, in seconds
        exceptions: Exception types that trigger another attempt
        sleep: Sleep function (injectable for tests)
        **kwargs: Keyword arguments for ``func``

    Returns:
        Whatever ``func`` returns

    Raises:
        The last caught exception once attempts are exhausted; anything not
        listed in ``exceptions`` propagates immediately.
    """
    attempts = max(1, max_attempts)
    retry_start_time = time.monotonic()
    name = getattr(func, "__name__", repr(func))

    for attempt in range(1, attempts + 1):
        try:
            result = func(*args, **kwargs)
        except exceptions as e:
            if attempt == attempts:
                logger.error(
                    "retry_exhausted",
                    func=name,
                    attempts=attempt,
                    error=str(e),
                    error_type=type(e).__name__,
                    total_retry_time=round(time.monotonic() - retry_start_time, 2),
                )
                raise
            logger.warning(
                "retry_attempt",
                func=name,
                attempt=attempt,
                max_attempts=attempts,
                delay=delay,
                error=str(e),
                error_type=type(e).__name__,
            )
            sleep(delay)
            continue

        if attempt > 1:
            logger.info(
                "retry_succeeded",
                func=name,
                attempt=attempt,
                total_retry_time=round(time.monotonic() - retry_start_time, 2),
            )
        return result

    raise AssertionError("unreachable")
