"""Retry helper for recoverable provider failures."""

import asyncio
from typing import Awaitable, Callable, TypeVar

from loguru import logger

from models.exceptions import ProviderUnavailable

T = TypeVar("T")


async def with_retries(
    operation: Callable[[], Awaitable[T]],
    attempts: int = 3,
    delay: float = 0.5,
    description: str = "operation",
) -> T:
    """Await ``operation()``, retrying on ProviderUnavailable with linear backoff.

    Any other exception propagates immediately. The last ProviderUnavailable
    is re-raised once ``attempts`` are exhausted.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except ProviderUnavailable as e:
            if attempt == attempts:
                logger.error(f"{description} failed after {attempts} attempts: {e}")
                raise
            wait = delay * attempt
            logger.warning(
                f"{description} unavailable (attempt {attempt}/{attempts}), "
                f"retrying in {wait:.2f}s: {e}"
            )
            await asyncio.sleep(wait)

    raise AssertionError("unreachable")
