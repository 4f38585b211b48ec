"""Time arithmetic between 12-hour labels and minute offsets.

Minutes are the integer unit wherever a value crosses the backend
boundary; fractional hours are only used to size rendered columns.
"""

from __future__ import annotations

from typing import Union

from availability.models.slots import LocalTimeLabel, TimeSlot

LabelLike = Union[LocalTimeLabel, str]


def _label(value: LabelLike) -> LocalTimeLabel:
    if isinstance(value, LocalTimeLabel):
        return value
    return LocalTimeLabel.parse(value)


def minutes_of(label: LabelLike) -> int:
    """``"2:30 PM"`` → 870."""
    return _label(label).minutes


def hours_of(label: LabelLike) -> float:
    """``"2:30 PM"`` → 14.5."""
    return minutes_of(label) / 60


def duration_hours(slot: TimeSlot) -> float:
    return hours_of(slot.end) - hours_of(slot.start)


def duration_minutes(slot: TimeSlot) -> int:
    return slot.end_minutes - slot.start_minutes


def format_minutes(minutes: int) -> str:
    """Minutes from midnight → ``"h:MM AM"``."""
    return str(LocalTimeLabel.from_minutes(minutes))


def format_duration(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes} min"
    hours, mins = divmod(minutes, 60)
    if mins == 0:
        return f"{hours} hr"
    return f"{hours} hr {mins} min"
