"""Confirmed-state polling after a remote write.

The calendar provider is eventually consistent: a write may not show up
in the next listing. Rather than a fixed fan-out of delayed refetches,
poll once per attempt with exponential backoff until the listing shows
the expected state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from availability.config import settings

log = logging.getLogger("availability.refresh")

T = TypeVar("T")


@dataclass
class RefreshResult(Generic[T]):
    items: list[T] = field(default_factory=list)
    confirmed: bool = False
    attempts: int = 0


async def poll_until(
    fetch: Callable[[], Awaitable[list[T]]],
    predicate: Callable[[list[T]], bool],
    initial_delay: Optional[float] = None,
    backoff: Optional[float] = None,
    attempts: Optional[int] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> RefreshResult[T]:
    """Fetch until ``predicate(items)`` holds or the attempts run out.

    The last fetched items are returned either way; ``confirmed`` tells
    whether the expected state was ever observed. Fetch errors propagate.
    """
    delay = settings.refresh_initial_delay if initial_delay is None else initial_delay
    factor = settings.refresh_backoff if backoff is None else backoff
    limit = settings.refresh_attempts if attempts is None else attempts

    items: list[T] = []
    for attempt in range(1, limit + 1):
        await sleep(delay)
        items = await fetch()
        if predicate(items):
            log.debug("State confirmed after %d attempt(s)", attempt)
            return RefreshResult(items=items, confirmed=True, attempts=attempt)
        delay *= factor

    log.warning("State not confirmed after %d attempts; showing last fetch", limit)
    return RefreshResult(items=items, confirmed=False, attempts=limit)
