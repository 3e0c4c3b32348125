"""
Retry logic with exponential backoff and jitter for coroutine functions.

Used for short, idempotent reads such as slug existence probes. Uploads are
never retried automatically: retrying a write is the caller's decision.

Usage:
    from src.utils.retry import retry_with_backoff

    @retry_with_backoff(max_attempts=3, base_delay=0.2, exceptions=(SlugProbeError,))
    async def probe(slug):
        ...
"""

import asyncio
import functools
import random
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from src.utils.logging import get_logger

logger = get_logger(__name__)


def calculate_backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    multiplier: float,
    jitter: bool,
) -> float:
    """
    Calculate delay for exponential backoff with optional jitter.

    Formula:
        delay = min(base_delay * (multiplier ** attempt), max_delay)
        if jitter:
            delay = delay * random.uniform(0.5, 1.5)

    Example:
        >>> calculate_backoff_delay(2, base_delay=1.0, max_delay=60.0,
        ...                         multiplier=2.0, jitter=False)
        4.0
    """
    delay = min(base_delay * (multiplier ** attempt), max_delay)

    if jitter:
        delay = delay * random.uniform(0.5, 1.5)

    return delay


def retry_with_backoff(
    max_attempts: int = 3,
    base_delay: float = 0.2,
    max_delay: float = 5.0,
    backoff_multiplier: float = 2.0,
    jitter: bool = True,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable[[int, Exception, float], None]] = None,
):
    """
    Decorator retrying a coroutine function with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (including the first)
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries
        backoff_multiplier: Multiplier for exponential backoff
        jitter: Add randomness to prevent thundering herd
        exceptions: Exception types that trigger a retry
        on_retry: Optional callback ``(attempt, error, delay)`` before each retry

    Raises:
        The last exception once every attempt has failed.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1 (got: {max_attempts})")

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(max_attempts):
                try:
                    result = await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts - 1:
                        logger.error(
                            f"{func.__name__} failed after {max_attempts} attempts. "
                            f"Last error: {e}"
                        )
                        raise

                    delay = calculate_backoff_delay(
                        attempt=attempt,
                        base_delay=base_delay,
                        max_delay=max_delay,
                        multiplier=backoff_multiplier,
                        jitter=jitter,
                    )
                    logger.warning(
                        f"{func.__name__} failed on attempt {attempt + 1}: {e}. "
                        f"Retrying in {delay:.2f}s..."
                    )
                    if on_retry:
                        on_retry(attempt, e, delay)
                    await asyncio.sleep(delay)
                    continue

                if attempt > 0:
                    logger.info(f"{func.__name__} succeeded on attempt {attempt + 1}")
                return result

        return wrapper

    return decorator
