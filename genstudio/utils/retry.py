"""Retry decorator and delay helpers with exponential backoff."""

import asyncio
import logging
import random
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)
T = TypeVar("T")


def backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: Optional[float] = None,
    jitter: float = 0.0,
    rng: Optional[random.Random] = None,
) -> float:
    """
    Delay before retry number ``attempt`` (0-based): ``base_delay * 2**attempt``.

    Args:
        attempt: Zero-based attempt index
        base_delay: Delay for the first attempt in seconds
        max_delay: Upper bound applied before jitter
        jitter: Fraction in [0, 1]; the delay is scaled by a random factor
            drawn from [1 - jitter, 1 + jitter]
        rng: Random source, injectable for tests

    Returns:
        Delay in seconds
    """
    delay = base_delay * (2**attempt)
    if max_delay is not None:
        delay = min(delay, max_delay)
    if jitter:
        source = rng or random
        delay *= source.uniform(1.0 - jitter, 1.0 + jitter)
    return max(delay, 0.0)


def with_retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    jitter: float = 0.0,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for exponential backoff retry logic.

    Args:
        max_attempts: Maximum number of attempts
        base_delay: Base delay in seconds (doubles each attempt)
        exceptions: Tuple of exception types to catch
        jitter: Optional proportional jitter applied to each delay

    Returns:
        Decorated function with retry logic
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            last_exception: Exception | None = None

            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e
                    if attempt < max_attempts - 1:
                        delay = backoff_delay(attempt, base_delay, jitter=jitter)
                        logger.warning(
                            f"{func.__name__} attempt {attempt + 1}/{max_attempts} "
                            f"failed: {e}. Retrying in {delay:.2f}s..."
                        )
                        await asyncio.sleep(delay)
                    else:
                        logger.error(
                            f"{func.__name__}: all {max_attempts} attempts failed: {e}"
                        )

            raise last_exception  # type: ignore

        return wrapper  # type: ignore

    return decorator
