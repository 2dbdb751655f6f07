import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")


async def poll_until(
    check: Callable[[int], Awaitable[Optional[T]]],
    interval: float,
    max_attempts: int,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Optional[T]:
    """
    Bounded polling policy.

    Sleeps `interval` seconds, then calls `check(attempt)` (0-based), up to
    `max_attempts` times. The first non-None value returned by `check` ends
    the loop and is returned. Returns None when the attempts are exhausted.
    """
    for attempt in range(max_attempts):
        await sleep(interval)
        result = await check(attempt)
        if result is not None:
            return result
    return None
