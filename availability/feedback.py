"""Per-grid feedback broadcaster for user-visible signals.

Validation failures, remote errors, success notices and haptic cues are
pushed to every subscriber's asyncio.Queue so the UI shell can render a
toast, vibrate, or lock native scrolling.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Optional, TypedDict

from availability.config import settings

log = logging.getLogger("availability.feedback")


class FeedbackEvent(TypedDict):
    type: str          # error | success | haptic | scroll_lock
    timestamp: float
    message: str
    data: dict


class FeedbackBroadcaster:
    """Event broadcaster using asyncio.Queue per subscriber."""

    def __init__(self, grid_id: str = "", log_size: Optional[int] = None) -> None:
        self._grid_id = grid_id
        self._subscribers: list[asyncio.Queue[FeedbackEvent]] = []
        # Most recent events only
        self._event_log: deque[FeedbackEvent] = deque(
            maxlen=log_size if log_size is not None else settings.feedback_log_size
        )

    def subscribe(self) -> asyncio.Queue[FeedbackEvent]:
        """Create a new subscriber queue and return it."""
        q: asyncio.Queue[FeedbackEvent] = asyncio.Queue(maxsize=200)
        self._subscribers.append(q)
        log.info("Feedback subscriber added for grid %s (total: %d)",
                 self._grid_id, len(self._subscribers))
        return q

    def unsubscribe(self, q: asyncio.Queue[FeedbackEvent]) -> None:
        """Remove a subscriber queue."""
        if q in self._subscribers:
            self._subscribers.remove(q)
        log.info("Feedback subscriber removed for grid %s (total: %d)",
                 self._grid_id, len(self._subscribers))

    def emit(self, event_type: str, message: str = "", data: dict | None = None) -> None:
        """Broadcast an event to all subscribers and record it in the event log."""
        event: FeedbackEvent = {
            "type": event_type,
            "timestamp": time.time(),
            "message": message,
            "data": data or {},
        }
        self._event_log.append(event)

        for q in self._subscribers:
            if q.full():
                # Drop oldest event to make room
                q.get_nowait()
            q.put_nowait(event)

    def error(self, message: str, **data) -> None:
        log.info("Grid %s error: %s", self._grid_id, message)
        self.emit("error", message, data)

    def success(self, message: str, **data) -> None:
        self.emit("success", message, data)

    @property
    def event_log(self) -> list[FeedbackEvent]:
        """Recent event history, oldest first."""
        return list(self._event_log)

    @property
    def messages(self) -> list[str]:
        return [e["message"] for e in self._event_log if e["message"]]

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
