"""Async bounded exponential backoff retry decorator."""

from __future__ import annotations

import asyncio
import functools
import random
from typing import Any, Callable, TypeVar

from methodgraph.utils.logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def async_retry(
    max_attempts: int = 3,
    base_delay: float = 0.05,
    max_delay: float = 1.0,
    retryable_exceptions: tuple[type[Exception], ...] = (Exception,),
    jitter: bool = True,
) -> Callable[[F], F]:
    """Decorator for async functions with exponential backoff.

    The delay doubles per attempt and is capped at ``max_delay``. The last
    failure is re-raised once ``max_attempts`` is exhausted.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as exc:
                    if attempt == max_attempts:
                        logger.warning(
                            "retry_exhausted",
                            func=func.__name__,
                            attempts=attempt,
                            error=str(exc),
                        )
                        raise

                    delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
                    if jitter:
                        delay += random.uniform(0, delay * 0.5)
                    logger.debug(
                        "retry_attempt",
                        func=func.__name__,
                        attempt=attempt,
                        delay=round(delay, 3),
                        error=str(exc),
                    )
                    await asyncio.sleep(delay)

            raise RuntimeError(f"Exhausted retries for {func.__name__}")

        return wrapper  # type: ignore[return-value]

    return decorator
