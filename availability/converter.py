"""Backend slot → day-column conversion.

Stored slots are ``(day_of_week, start_time, end_time)`` minute offsets.
The grid renders one contiguous column per calendar day, so a slot that
wraps past midnight is split into two display slots, one per day.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, Union
from zoneinfo import ZoneInfo

from availability.models.slots import (
    DAY_NAMES,
    MINUTES_PER_DAY,
    BackendSlot,
    DayAvailability,
    TimeSlot,
)

log = logging.getLogger("availability.converter")

LAST_MINUTE = MINUTES_PER_DAY - 1  # 11:59 PM

MinuteRange = tuple[int, int]


def day_of_week(d: date) -> int:
    """Sunday=0 … Saturday=6."""
    return (d.weekday() + 1) % 7


def zone(value: Union[str, tzinfo]) -> tzinfo:
    """IANA name (or a tzinfo) → tzinfo."""
    if not isinstance(value, str):
        return value
    if value.upper() in ("UTC", "Z", "ETC/UTC"):
        return timezone.utc
    return ZoneInfo(value)


def to_wall_clock(day: date, minutes: int, tz: tzinfo) -> datetime:
    """``minutes`` from midnight of ``day`` in the viewer's zone."""
    midnight = datetime.combine(day, time(0, 0)).replace(tzinfo=tz)
    return midnight + timedelta(minutes=minutes)


def offset_between(
    stored_tz: Union[str, tzinfo],
    viewer_tz: Union[str, tzinfo],
    on_date: date,
) -> int:
    """Minutes to add to a stored wall-clock time to express it in the viewer's frame."""
    probe = datetime.combine(on_date, time(12, 0))
    stored = probe.replace(tzinfo=zone(stored_tz)).utcoffset() or timedelta(0)
    viewer = probe.replace(tzinfo=zone(viewer_tz)).utcoffset() or timedelta(0)
    return int((viewer - stored).total_seconds() // 60)


def normalize_slot(slot: BackendSlot, offset_minutes: int = 0) -> tuple[int, int, int]:
    """Shift a stored slot by ``offset_minutes`` and fold it back into one day.

    The start carries the day change; the end is only folded into
    ``[0, 1440)``, so a shifted slot may come out crossing midnight.
    """
    day = slot.day_of_week
    start = slot.start_time + offset_minutes
    end = slot.end_time + offset_minutes

    if start < 0:
        start += MINUTES_PER_DAY
        day = (day - 1) % 7
    elif start >= MINUTES_PER_DAY:
        start -= MINUTES_PER_DAY
        day = (day + 1) % 7

    end %= MINUTES_PER_DAY
    return day, start, end


def split_slot(day: int, start: int, end: int) -> list[tuple[int, int, int]]:
    """Split a midnight-crossing range into ``[start, 23:59]`` and ``[00:00, end]``.

    Zero-length halves are dropped.
    """
    if end > start:
        return [(day, start, end)]

    parts = []
    if start < LAST_MINUTE:
        parts.append((day, start, LAST_MINUTE))
    if end > 0:
        parts.append(((day + 1) % 7, 0, end))
    return parts


def expand_slot_minutes(
    slots: Iterable[BackendSlot], offset_minutes: int = 0,
) -> dict[int, list[MinuteRange]]:
    """Group slots by day of week as ``(start, end)`` minute ranges, sorted by start."""
    by_day: dict[int, list[MinuteRange]] = {}
    for slot in slots:
        day, start, end = normalize_slot(slot, offset_minutes)
        for part_day, part_start, part_end in split_slot(day, start, end):
            by_day.setdefault(part_day, []).append((part_start, part_end))

    for ranges in by_day.values():
        ranges.sort()
    return by_day


def backend_slots_to_display(
    slots: Iterable[BackendSlot], offset_minutes: int = 0,
) -> dict[int, list[TimeSlot]]:
    """Convert stored slots to per-day display slots, each day ordered by start."""
    slots_by_day = {
        day: [TimeSlot.from_minutes(start, end) for start, end in ranges]
        for day, ranges in expand_slot_minutes(slots, offset_minutes).items()
    }
    log.debug(
        "Converted backend slots into display slots for days %s",
        sorted(slots_by_day),
    )
    return slots_by_day


def build_days(
    start_date: date,
    count: int,
    slots: Iterable[BackendSlot],
    offset_minutes: int = 0,
) -> list[DayAvailability]:
    """Build ``count`` consecutive day columns starting at ``start_date``."""
    slots_by_day = backend_slots_to_display(slots, offset_minutes)
    days: list[DayAvailability] = []

    for i in range(count):
        current = start_date + timedelta(days=i)
        dow = day_of_week(current)
        time_slots = list(slots_by_day.get(dow, []))
        days.append(
            DayAvailability(
                date=current,
                day_name=DAY_NAMES[dow],
                available=bool(time_slots),
                time_slots=time_slots,
            )
        )

    log.debug(
        "Built %d day columns from %s (%d available)",
        count, start_date, sum(1 for d in days if d.available),
    )
    return days
