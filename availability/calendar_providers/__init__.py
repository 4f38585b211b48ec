"""Calendar provider abstractions and implementations."""

from .base import Attendee, CalendarProvider, EventDraft, ProviderEvent

__all__ = ["Attendee", "CalendarProvider", "EventDraft", "ProviderEvent"]
