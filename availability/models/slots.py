"""Weekly slot and day-column models.

``BackendSlot`` is the stored minute-offset shape; ``TimeSlot`` is the
12-hour display shape produced by the converter and consumed by the grid.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

MINUTES_PER_DAY = 24 * 60
DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

_LABEL_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])\s*$")


class BackendSlot(BaseModel):
    """One recurring weekly range, minutes from midnight (Sunday=0)."""

    day_of_week: int = Field(ge=0, le=6)
    start_time: int = Field(ge=0, le=MINUTES_PER_DAY - 1)
    end_time: int = Field(ge=0, le=MINUTES_PER_DAY - 1)

    @property
    def crosses_midnight(self) -> bool:
        return self.end_time <= self.start_time


@dataclass(frozen=True)
class LocalTimeLabel:
    """A 12-hour wall-clock label such as ``2:30 PM``."""

    hour: int
    minute: int
    meridiem: str = "AM"

    def __post_init__(self) -> None:
        if not 1 <= self.hour <= 12:
            raise ValueError(f"hour must be 1-12, got {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"minute must be 0-59, got {self.minute}")
        if self.meridiem not in ("AM", "PM"):
            raise ValueError(f"meridiem must be AM or PM, got {self.meridiem!r}")

    @classmethod
    def parse(cls, text: str) -> "LocalTimeLabel":
        match = _LABEL_PATTERN.match(text)
        if not match:
            raise ValueError(f"Invalid time label: {text!r}")
        hour, minute, meridiem = match.groups()
        return cls(int(hour), int(minute), meridiem.upper())

    @classmethod
    def from_minutes(cls, minutes: int) -> "LocalTimeLabel":
        if not 0 <= minutes < MINUTES_PER_DAY:
            raise ValueError(f"minutes must be 0-1439, got {minutes}")
        hours, mins = divmod(minutes, 60)
        meridiem = "PM" if hours >= 12 else "AM"
        return cls(hours % 12 or 12, mins, meridiem)

    @property
    def minutes(self) -> int:
        """Minutes from midnight (12 AM → 0, 12 PM stays 12, other PM +12)."""
        hours = self.hour % 12
        if self.meridiem == "PM":
            hours += 12
        return hours * 60 + self.minute

    def __str__(self) -> str:
        return f"{self.hour}:{self.minute:02d} {self.meridiem}"


@dataclass(frozen=True)
class TimeSlot:
    """A contiguous availability range on one calendar day."""

    start: LocalTimeLabel
    end: LocalTimeLabel

    def __post_init__(self) -> None:
        if self.end.minutes <= self.start.minutes:
            raise ValueError(
                f"TimeSlot end ({self.end}) must be after start ({self.start})"
            )

    @classmethod
    def from_minutes(cls, start: int, end: int) -> "TimeSlot":
        return cls(LocalTimeLabel.from_minutes(start), LocalTimeLabel.from_minutes(end))

    @classmethod
    def parse(cls, start: str, end: str) -> "TimeSlot":
        return cls(LocalTimeLabel.parse(start), LocalTimeLabel.parse(end))

    @property
    def start_minutes(self) -> int:
        return self.start.minutes

    @property
    def end_minutes(self) -> int:
        return self.end.minutes

    def to_dict(self) -> dict[str, str]:
        return {"start": str(self.start), "end": str(self.end)}


@dataclass
class DayAvailability:
    """One visible day column.

    ``window`` is the explicit anchor of the column: earliest slot start to
    latest slot end. Grid offsets (``AvailabilityEvent.start_minutes``) are
    relative to ``window.start``.
    """

    date: date
    day_name: str
    available: bool
    time_slots: list[TimeSlot] = field(default_factory=list)

    @property
    def window(self) -> Optional[TimeSlot]:
        if not self.available or not self.time_slots:
            return None
        start = min(self.time_slots, key=lambda s: s.start_minutes).start
        end = max(self.time_slots, key=lambda s: s.end_minutes).end
        return TimeSlot(start, end)

    @property
    def total_minutes(self) -> int:
        window = self.window
        if window is None:
            return 0
        return window.end_minutes - window.start_minutes

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "day_name": self.day_name,
            "available": self.available,
            "time_slots": [s.to_dict() for s in self.time_slots],
        }
