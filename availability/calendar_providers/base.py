"""Abstract base class for calendar providers.

Defines the interface for listing events and for creating, updating,
deleting and answering invitations. Any calendar backend (Google,
Outlook, etc.) implements this ABC.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional

from availability.errors import EventDataError


@dataclass
class Attendee:
    """One invitee on a calendar event."""

    email: str
    display_name: str = ""
    response_status: str = "needsAction"  # accepted | declined | tentative | needsAction
    organizer: bool = False
    is_self: bool = False


@dataclass
class EventDraft:
    """Represents a calendar event to be created or written back."""

    summary: str
    start: datetime
    end: datetime
    description: str = ""
    location: str = ""
    attendees: list[Attendee] = field(default_factory=list)
    conference: bool = False  # request a video-conference link

    def with_times(self, start: datetime, end: datetime) -> "EventDraft":
        return replace(self, start=start, end=end, attendees=list(self.attendees))


@dataclass
class ProviderEvent:
    """An event as fetched from the provider.

    ``start`` / ``end`` are ``None`` when the provider returned a missing or
    malformed timestamp; such events are skipped by the grid.
    """

    id: str
    summary: str = ""
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    attendees: list[Attendee] = field(default_factory=list)
    organizer_self: bool = False
    organizer_email: str = ""
    hangout_link: Optional[str] = None
    description: str = ""
    location: str = ""

    def require_times(self) -> tuple[datetime, datetime]:
        if self.start is None or self.end is None:
            raise EventDataError(f"Event {self.id} has no valid start/end time")
        return self.start, self.end

    def to_draft(self) -> EventDraft:
        """The full event payload, ready to be written back."""
        start, end = self.require_times()
        return EventDraft(
            summary=self.summary,
            start=start,
            end=end,
            description=self.description,
            location=self.location,
            attendees=[replace(a) for a in self.attendees],
            conference=bool(self.hangout_link),
        )


class CalendarProvider(ABC):
    """Abstract calendar backend.

    Subclasses must implement event listing, creation, update, deletion
    and invitation responses.
    """

    @abstractmethod
    async def list_events(
        self,
        calendar_id: str,
        start: datetime,
        end: datetime,
    ) -> list[ProviderEvent]:
        """Return the events overlapping ``[start, end)``."""

    @abstractmethod
    async def create_event(
        self, calendar_id: str, event: EventDraft
    ) -> dict:
        """Create a calendar event.

        Returns:
            Dict containing at least ``"event_id"`` and ``"html_link"``.
        """

    @abstractmethod
    async def update_event(
        self, calendar_id: str, event_id: str, event: EventDraft
    ) -> dict:
        """Overwrite an existing event with ``event``.

        Returns:
            Dict containing at least ``"event_id"``.
        """

    @abstractmethod
    async def delete_event(
        self, calendar_id: str, event_id: str
    ) -> bool:
        """Delete a calendar event.

        Returns:
            True if the event was successfully deleted.
        """

    @abstractmethod
    async def respond_to_invitation(
        self,
        calendar_id: str,
        event_id: str,
        attendee_email: str,
        accepted: bool,
    ) -> dict:
        """Accept or decline an invitation on behalf of ``attendee_email``."""
