"""Grid-placed event model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

CALENDAR_ID_PREFIX = "calendar-"


@dataclass(frozen=True)
class AvailabilityEvent:
    """An event as placed on the day grid.

    ``start_minutes`` / ``duration_minutes`` are relative to the day
    column's window start, not to midnight. Instances are rebuilt on every
    render pass and never mutated; drags work on a preview copy.
    """

    id: str
    day_index: int
    start_minutes: int
    duration_minutes: int
    title: str
    is_from_calendar: bool = False
    invitation_status: Optional[str] = None
    meet_link: Optional[str] = None

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.duration_minutes

    @property
    def provider_id(self) -> str:
        """The calendar provider's id for this grid event."""
        if self.id.startswith(CALENDAR_ID_PREFIX):
            return self.id[len(CALENDAR_ID_PREFIX):]
        return self.id
