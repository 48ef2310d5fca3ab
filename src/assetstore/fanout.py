"""
Concurrent fan-out over independent asset operations.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Iterable, TypeVar


T = TypeVar("T")


async def gather_settled(aws: Iterable[Awaitable[T]]) -> list[T]:
    """
    Run awaitables concurrently and wait until every one of them has finished.

    Worker-thread copies cannot be cancelled, so nothing is cancelled on
    failure; callers may clean up scratch directories as soon as this returns
    or raises. A failure therefore surfaces only after the slowest sibling
    has finished, not at the moment it happens, and when several siblings
    fail the one raised is chosen by submission order rather than by time.

    Args:
        aws: Independent awaitables.

    Returns:
        Results in submission order.

    Raises:
        The first exception in submission order.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)
