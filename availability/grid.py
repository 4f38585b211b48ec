"""Day-column geometry and event placement.

Every column shares one pixels-per-hour constant so hour gridlines line up
across days whose windows differ in length; shorter windows are pushed
down by a leading spacer so that their hour labels stay aligned with the
globally earliest start.
"""

from __future__ import annotations

import logging
import math
from datetime import tzinfo
from typing import Iterable, Optional, Sequence

from availability.calendar_providers.base import ProviderEvent
from availability.config import settings
from availability.errors import EventDataError
from availability.models.events import CALENDAR_ID_PREFIX, AvailabilityEvent
from availability.models.slots import DayAvailability
from availability.timecalc import duration_hours, hours_of

log = logging.getLogger("availability.grid")


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


# ── Coordinate mapping ──────────────────────────────────────────────


def pixels_to_minutes(pixels: float, container_height: float, total_minutes: int) -> int:
    return _round_half_up(pixels / container_height * total_minutes)


def minutes_to_pixels(minutes: float, container_height: float, total_minutes: int) -> float:
    return minutes / total_minutes * container_height


class CoordinateMapper:
    """Pixel offset inside a column ⇄ minutes from the column's window start."""

    def __init__(self, container_height: float, total_minutes: int) -> None:
        if container_height <= 0:
            raise ValueError(f"container_height must be positive, got {container_height}")
        if total_minutes <= 0:
            raise ValueError(f"total_minutes must be positive, got {total_minutes}")
        self.container_height = container_height
        self.total_minutes = total_minutes

    def to_minutes(self, pixels: float) -> int:
        return pixels_to_minutes(pixels, self.container_height, self.total_minutes)

    def to_pixels(self, minutes: float) -> float:
        return minutes_to_pixels(minutes, self.container_height, self.total_minutes)

    def clamp(self, minutes: int) -> int:
        return max(0, min(self.total_minutes, minutes))

    def minutes_at(self, y: float) -> int:
        """Minutes under a pixel offset, clamped to the window."""
        return self.clamp(self.to_minutes(y))

    def event_bounds(self, event: AvailabilityEvent) -> tuple[float, float]:
        top = self.to_pixels(event.start_minutes)
        return top, top + self.to_pixels(event.duration_minutes)


def event_at(
    day_index: int,
    y: float,
    events: Iterable[AvailabilityEvent],
    mapper: CoordinateMapper,
) -> Optional[AvailabilityEvent]:
    """The event drawn under ``y`` in a column, if any (edges inclusive)."""
    for event in events:
        if event.day_index != day_index:
            continue
        top, bottom = mapper.event_bounds(event)
        if top <= y <= bottom:
            return event
    return None


# ── Column sizing ───────────────────────────────────────────────────


def day_total_minutes(day: Optional[DayAvailability]) -> int:
    if day is None:
        return 0
    return day.total_minutes


def column_height(day: DayAvailability, pixels_per_hour: int | None = None) -> int:
    window = day.window
    if window is None:
        return 0
    pph = pixels_per_hour or settings.pixels_per_hour
    return _round_half_up(duration_hours(window) * pph)


def earliest_start_hour(days: Sequence[DayAvailability]) -> Optional[float]:
    starts = [hours_of(d.window.start) for d in days if d.window is not None]
    return min(starts) if starts else None


def leading_spacer(
    day: DayAvailability,
    days: Sequence[DayAvailability],
    pixels_per_hour: int | None = None,
) -> int:
    """Pixels between the global earliest start and this day's window start."""
    window = day.window
    earliest = earliest_start_hour(days)
    if window is None or earliest is None:
        return 0
    pph = pixels_per_hour or settings.pixels_per_hour
    return _round_half_up((hours_of(window.start) - earliest) * pph)


# ── Event placement ─────────────────────────────────────────────────


def invitation_status(event: ProviderEvent) -> Optional[str]:
    """Summarise attendee responses; only meaningful with more than one attendee.

    The organizer always counts as accepted.
    """
    attendees = event.attendees
    if len(attendees) <= 1:
        return None

    def is_accepted(a) -> bool:
        return (
            a.response_status == "accepted"
            or a.organizer
            or (bool(event.organizer_email) and a.email == event.organizer_email)
        )

    has_declined = any(a.response_status == "declined" for a in attendees)
    has_pending = any(
        not is_accepted(a) and a.response_status != "declined" for a in attendees
    )

    if has_declined and has_pending:
        return "mixed"
    if has_declined:
        return "declined"
    if has_pending:
        return "pending"
    return "accepted"


def materialize_events(
    provider_events: Iterable[ProviderEvent],
    days: Sequence[DayAvailability],
    tz: tzinfo,
) -> list[AvailabilityEvent]:
    """Place provider events on the visible day columns.

    Events outside the visible dates, on unavailable days, or starting at
    or after the window end are left off the grid. Durations are clipped
    to the window.
    """
    placed: list[AvailabilityEvent] = []
    index_by_date = {day.date: i for i, day in enumerate(days)}

    for event in provider_events:
        try:
            start, end = event.require_times()
        except EventDataError as exc:
            log.warning("Skipping event on grid: %s", exc)
            continue

        local_start = start.astimezone(tz)
        day_index = index_by_date.get(local_start.date())
        if day_index is None:
            continue

        day = days[day_index]
        window = day.window
        if window is None:
            continue

        event_minutes = local_start.hour * 60 + local_start.minute + local_start.second / 60
        start_minutes = max(0, _round_half_up(event_minutes - window.start_minutes))
        duration = _round_half_up((end - start).total_seconds() / 60)
        total = day.total_minutes

        if not 0 <= start_minutes < total:
            continue

        placed.append(
            AvailabilityEvent(
                id=f"{CALENDAR_ID_PREFIX}{event.id}",
                day_index=day_index,
                start_minutes=start_minutes,
                duration_minutes=min(duration, total - start_minutes),
                title=event.summary or "Untitled Event",
                is_from_calendar=True,
                invitation_status=invitation_status(event),
                meet_link=event.hangout_link,
            )
        )

    log.debug("Placed %d events on %d day columns", len(placed), len(days))
    return placed
