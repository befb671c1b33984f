"""Async utility functions."""

import asyncio
from typing import Awaitable, Callable, Tuple, Type, TypeVar

T = TypeVar('T')


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    backoff_factor: float = 2.0,
    max_delay: float = 60.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> T:
    """Retry a function with exponential backoff.

    Only exceptions listed in ``retry_on`` are retried; anything else, and
    the last failure, propagate unchanged.
    """
    delay = base_delay

    for attempt in range(max_retries + 1):
        try:
            return await func()
        except retry_on:
            if attempt == max_retries:
                raise

            await asyncio.sleep(min(delay, max_delay))
            delay *= backoff_factor

    raise RuntimeError("unreachable")
