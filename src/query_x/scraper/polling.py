"""Bounded polling primitive shared by the load-status wait and the scroll drive."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

#: Async sleep function taking seconds; injectable so tests run instantly.
SleepFn = Callable[[float], Awaitable[None]]

#: Monotonic clock returning seconds.
ClockFn = Callable[[], float]


async def poll_until(
    predicate: Callable[[], Awaitable[bool]],
    interval_ms: int,
    max_attempts: int,
    *,
    deadline_ms: int | None = None,
    sleep: SleepFn = asyncio.sleep,
    clock: ClockFn = time.monotonic,
) -> bool:
    """Call *predicate* until it returns ``True`` or a ceiling is reached.

    The predicate is evaluated at most *max_attempts* times with
    *interval_ms* between evaluations; there is no sleep after the last one.
    When *deadline_ms* is given, polling also stops once that much wall-clock
    time (measured with *clock*) has passed since the first evaluation.

    Exceptions raised by *predicate* propagate to the caller.

    Args:
        predicate: Async callable; a truthy result ends the poll.
        interval_ms: Delay between evaluations in milliseconds.
        max_attempts: Maximum number of evaluations (at least one is made).
        deadline_ms: Optional wall-clock budget in milliseconds.
        sleep: Async sleep taking seconds.
        clock: Monotonic clock returning seconds.

    Returns:
        ``True`` if the predicate succeeded, ``False`` if a ceiling was hit.
    """
    started = clock()
    attempts = max(1, max_attempts)
    for attempt in range(attempts):
        if await predicate():
            return True
        if attempt == attempts - 1:
            break
        if deadline_ms is not None:
            elapsed_ms = (clock() - started) * 1000
            if elapsed_ms >= deadline_ms:
                break
        await sleep(interval_ms / 1000)
    return False
