"""Exponential backoff for idempotent backend reads.

Placing a call or updating a patient is never retried here: a repeated dial
is a real, billable phone call.

Usage:
    @retry(attempts=3, base_delay=0.5, retry_on=(httpx.TransportError,))
    async def get(self, path):
        ...
"""
from __future__ import annotations

import asyncio
import functools
import logging
import random
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float, max_delay: float, jitter: float = 0.1) -> float:
    """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
    delay = min(base_delay * 2 ** (attempt - 1), max_delay)
    return max(0.0, delay * (1 + random.uniform(-jitter, jitter)))


def retry(
    attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 5.0,
    retry_on: tuple[type[Exception], ...] = (Exception,),
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Retry an async read on ``retry_on`` errors.

    The final failure is re-raised unchanged, so callers map it exactly as
    they would a single failed attempt.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            attempt = 1
            while True:
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    if attempt >= attempts:
                        raise
                    delay = backoff_delay(attempt, base_delay, max_delay)
                    logger.warning(
                        "%s failed (%s: %s), attempt %d/%d, retrying in %.2fs",
                        func.__name__, type(e).__name__, e, attempt, attempts, delay,
                    )
                    await asyncio.sleep(delay)
                    attempt += 1

        return wrapper

    return decorator
