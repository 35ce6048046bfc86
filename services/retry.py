"""Retry utilities with exponential backoff."""
from __future__ import annotations

import asyncio
import functools
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from services.errors import TransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    TransientError,
    ConnectionError,
    TimeoutError,
)


def backoff_delay(
    attempt: int,
    *,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> float:
    """Delay before retry number ``attempt`` (1-based): base, 2*base, 4*base, ... capped."""
    delay = min(base_delay * (exponential_base ** max(attempt - 1, 0)), max_delay)
    if jitter:
        # ±25% of delay
        delay = delay * (0.75 + random.random() * 0.5)
    return delay


def retry_with_backoff_async(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator that retries a coroutine function with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts (0 = no retries)
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries in seconds
        exponential_base: Base for exponential backoff calculation
        jitter: Whether to add random jitter to prevent thundering herd
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except RETRYABLE_EXCEPTIONS as e:
                    if attempt >= max_retries:
                        logger.error(
                            "[retry] %s failed after %s attempts: %s", func.__name__, max_retries + 1, e
                        )
                        raise

                    delay = backoff_delay(
                        attempt + 1,
                        base_delay=base_delay,
                        max_delay=max_delay,
                        exponential_base=exponential_base,
                        jitter=jitter,
                    )
                    logger.warning(
                        "[retry] %s attempt %s/%s failed: %s. Retrying in %.2fs",
                        func.__name__,
                        attempt + 1,
                        max_retries + 1,
                        e,
                        delay,
                    )

                    await asyncio.sleep(delay)

            raise RuntimeError("Unexpected retry loop exit")

        return wrapper

    return decorator
