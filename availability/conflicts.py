"""Overlap and wall-clock validation.

Every create, move and resize is gated by these checks against the
locally held snapshot before any remote call is made.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from availability.calendar_providers.base import ProviderEvent
from availability.config import settings
from availability.errors import IntervalValidationError
from availability.models.events import AvailabilityEvent


def has_overlap(
    day_index: int,
    start: int,
    duration: int,
    events: Iterable[AvailabilityEvent],
    exclude_id: Optional[str] = None,
) -> bool:
    """True iff ``[start, start + duration)`` intersects a same-day event."""
    end = start + duration
    for event in events:
        if event.day_index != day_index or event.id == exclude_id:
            continue
        if start < event.end_minutes and end > event.start_minutes:
            return True
    return False


def is_past(moment: datetime, now: datetime) -> bool:
    return moment < now


def validate_event_time(start: datetime, end: datetime, now: datetime) -> None:
    """Raise IntervalValidationError unless ``[start, end)`` is a bookable interval."""
    if is_past(start, now):
        raise IntervalValidationError("Cannot create events in the past", "past")

    if end <= start:
        raise IntervalValidationError("End time must be after start time", "order")

    minutes = (end - start).total_seconds() / 60
    if minutes < settings.min_duration_minutes:
        raise IntervalValidationError(
            f"Event must be at least {settings.min_duration_minutes} minutes long",
            "too_short",
        )

    if minutes > settings.max_duration_minutes:
        hours = settings.max_duration_minutes / 60
        raise IntervalValidationError(
            f"Event cannot be longer than {hours:g} hours", "too_long"
        )


def check_conflict(
    events: Iterable[ProviderEvent], start: datetime, end: datetime,
) -> bool:
    """Wall-clock overlap against provider events; events without times never conflict."""
    for event in events:
        if event.start is None or event.end is None:
            continue
        if start < event.end and end > event.start:
            return True
    return False
