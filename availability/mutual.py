"""Mutual availability between two people, and combined free/busy timelines.

All of this is derived, read-only data: recompute it whenever the slots,
the visible window or the busy blocks change.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Iterable, Sequence, TypeVar

from availability.calendar_providers.base import ProviderEvent
from availability.converter import (
    MinuteRange,
    day_of_week,
    expand_slot_minutes,
    to_wall_clock,
)
from availability.models.availability import BusyBlock
from availability.models.slots import MINUTES_PER_DAY, BackendSlot, TimeSlot

log = logging.getLogger("availability.mutual")

T = TypeVar("T")

BusyInterval = tuple[datetime, datetime]


@dataclass
class MutualDay:
    """Common free intervals for one calendar date, minutes from midnight."""

    date: date
    intervals: list[MinuteRange] = field(default_factory=list)

    @property
    def slots(self) -> list[TimeSlot]:
        return [
            TimeSlot.from_minutes(start, min(end, MINUTES_PER_DAY - 1))
            for start, end in self.intervals
            if min(end, MINUTES_PER_DAY - 1) > start
        ]

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "intervals": [{"start": s, "end": e} for s, e in self.intervals],
            "slots": [s.to_dict() for s in self.slots],
        }


@dataclass(frozen=True)
class StatusBlock:
    start: datetime
    end: datetime
    free: bool

    def to_dict(self) -> dict:
        return {
            "start": int(self.start.timestamp() * 1000),
            "end": int(self.end.timestamp() * 1000),
            "free": self.free,
        }


# ── Range algebra ───────────────────────────────────────────────────


def merge_ranges(ranges: Iterable[tuple[T, T]]) -> list[tuple[T, T]]:
    """Sort and merge overlapping or touching ranges."""
    merged: list[tuple[T, T]] = []
    for start, end in sorted(ranges):
        if merged and start <= merged[-1][1]:
            last_start, last_end = merged[-1]
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


def intersect_ranges(
    a: Iterable[MinuteRange], b: Iterable[MinuteRange],
) -> list[MinuteRange]:
    left, right = merge_ranges(a), merge_ranges(b)
    result: list[MinuteRange] = []
    i = j = 0
    while i < len(left) and j < len(right):
        start = max(left[i][0], right[j][0])
        end = min(left[i][1], right[j][1])
        if start < end:
            result.append((start, end))
        if left[i][1] < right[j][1]:
            i += 1
        else:
            j += 1
    return result


def subtract_ranges(
    ranges: Iterable[MinuteRange], busy: Iterable[MinuteRange],
) -> list[MinuteRange]:
    """``ranges`` minus every busy range; empty remainders are dropped."""
    blocked = merge_ranges(busy)
    result: list[MinuteRange] = []
    for start, end in merge_ranges(ranges):
        cursor = start
        for busy_start, busy_end in blocked:
            if busy_end <= cursor or busy_start >= end:
                continue
            if busy_start > cursor:
                result.append((cursor, busy_start))
            cursor = max(cursor, busy_end)
            if cursor >= end:
                break
        if cursor < end:
            result.append((cursor, end))
    return result


# ── Busy blocks ─────────────────────────────────────────────────────


def busy_from_blocks(blocks: Iterable[BusyBlock]) -> list[BusyInterval]:
    """Stored busy blocks (epoch milliseconds) → aware UTC intervals."""
    return [
        (
            datetime.fromtimestamp(b.start_time / 1000, tz=timezone.utc),
            datetime.fromtimestamp(b.end_time / 1000, tz=timezone.utc),
        )
        for b in blocks
        if b.end_time > b.start_time
    ]


def busy_from_events(events: Iterable[ProviderEvent]) -> list[BusyInterval]:
    """Provider events → busy intervals; events without times are skipped."""
    busy: list[BusyInterval] = []
    for event in events:
        if event.start is None or event.end is None:
            log.debug("Ignoring event %s without times for busy blocks", event.id)
            continue
        busy.append((event.start, event.end))
    return busy


def busy_minutes_on(day: date, busy: Iterable[BusyInterval], tz: tzinfo) -> list[MinuteRange]:
    """Busy intervals clipped to ``day`` in ``tz``, as wall-clock minute ranges."""
    day_start = to_wall_clock(day, 0, tz)
    day_end = day_start + timedelta(days=1)
    ranges: list[MinuteRange] = []
    for start, end in busy:
        # Same tzinfo on both sides: differences below are wall-clock
        start = max(start.astimezone(tz), day_start)
        end = min(end.astimezone(tz), day_end)
        if start >= end:
            continue
        ranges.append((
            math.floor((start - day_start).total_seconds() / 60),
            math.ceil((end - day_start).total_seconds() / 60),
        ))
    return ranges


# ── Mutual availability ─────────────────────────────────────────────


def mutual_availability(
    viewer_slots: Iterable[BackendSlot],
    owner_slots: Iterable[BackendSlot],
    week_start: date,
    week_end: date,
    busy: Iterable[BusyInterval] = (),
    tz: tzinfo = timezone.utc,
    viewer_offset: int = 0,
    owner_offset: int = 0,
) -> list[MutualDay]:
    """Common free intervals for every date in ``[week_start, week_end)``.

    Each day intersects the two weekly slot sets for that day of week and
    subtracts the busy blocks falling on it. A day where either side has
    no slots has no intervals. Each side is shifted into the viewer's frame by
    its own offset.
    """
    viewer = expand_slot_minutes(viewer_slots, viewer_offset)
    owner = expand_slot_minutes(owner_slots, owner_offset)
    busy = list(busy)

    days: list[MutualDay] = []
    current = week_start
    while current < week_end:
        dow = day_of_week(current)
        common = intersect_ranges(viewer.get(dow, []), owner.get(dow, []))
        if common:
            common = subtract_ranges(common, busy_minutes_on(current, busy, tz))
        days.append(MutualDay(date=current, intervals=common))
        current += timedelta(days=1)

    log.debug(
        "Mutual availability %s..%s: %d days with common time",
        week_start, week_end, sum(1 for d in days if d.intervals),
    )
    return days


def availability_summary(
    slot_sets: Iterable[Sequence[BackendSlot]],
    busy: Iterable[BusyInterval],
    start: datetime,
    end: datetime,
    tz: tzinfo = timezone.utc,
) -> list[StatusBlock]:
    """Combined free/busy timeline over ``[start, end)``.

    The union of every slot set is merged into availability blocks; busy
    intervals inside a block are reported as busy segments and the rest
    as free.
    """
    by_day = [expand_slot_minutes(slots) for slots in slot_sets]

    available: list[BusyInterval] = []
    current = start.astimezone(tz).date()
    last = end.astimezone(tz).date()
    while current <= last:
        dow = day_of_week(current)
        for ranges in by_day:
            for lo, hi in ranges.get(dow, []):
                block_start = max(to_wall_clock(current, lo, tz), start)
                block_end = min(to_wall_clock(current, hi, tz), end)
                if block_start < block_end:
                    available.append((block_start, block_end))
        current += timedelta(days=1)

    blocked = sorted(
        (max(s, start), min(e, end)) for s, e in busy if s < end and e > start
    )

    result: list[StatusBlock] = []
    for block_start, block_end in merge_ranges(available):
        cursor = block_start
        for busy_start, busy_end in blocked:
            if busy_end <= block_start or busy_start >= block_end:
                continue
            if cursor < busy_start:
                result.append(StatusBlock(cursor, busy_start, True))
            segment_start = max(cursor, busy_start)
            segment_end = min(block_end, busy_end)
            if segment_start < segment_end:
                result.append(StatusBlock(segment_start, segment_end, False))
            cursor = max(cursor, busy_end)
        if cursor < block_end:
            result.append(StatusBlock(cursor, block_end, True))

    return result
