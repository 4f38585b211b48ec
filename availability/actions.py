"""Event actions: carry engine requests to the calendar provider.

Each write is followed by a confirmed-state poll so the caller can
re-render from a listing that already reflects the change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from availability.calendar_providers.base import CalendarProvider, EventDraft, ProviderEvent
from availability.config import settings
from availability.errors import RemoteError
from availability.feedback import FeedbackBroadcaster
from availability.interaction.payloads import (
    CreateRequest,
    DeleteRequest,
    EventRequest,
    UpdateRequest,
)
from availability.refresh import RefreshResult, poll_until

log = logging.getLogger("availability.actions")

Window = tuple[datetime, datetime]
Predicate = Callable[[list[ProviderEvent]], bool]


@dataclass
class ActionOutcome:
    event_id: str
    refresh: Optional[RefreshResult[ProviderEvent]] = None

    @property
    def confirmed(self) -> bool:
        return self.refresh is not None and self.refresh.confirmed


class EventActions:
    """Create, update, delete and RSVP through one calendar provider."""

    def __init__(
        self,
        provider: CalendarProvider,
        calendar_id: Optional[str] = None,
        feedback: Optional[FeedbackBroadcaster] = None,
        poll=poll_until,
    ) -> None:
        self._provider = provider
        self._calendar_id = calendar_id or settings.google_calendar_id
        self._feedback = feedback or FeedbackBroadcaster()
        self._poll = poll

    async def create(self, draft: EventDraft) -> ActionOutcome:
        try:
            result = await self._provider.create_event(self._calendar_id, draft)
        except Exception as exc:
            raise self._failed("create event", exc) from exc

        event_id = result["event_id"]
        log.info("Created event %s", event_id)
        self._feedback.success("Event created successfully!", event_id=event_id)
        refresh = await self._confirm(
            (draft.start, draft.end),
            lambda events: any(e.id == event_id for e in events),
        )
        return ActionOutcome(event_id, refresh)

    async def update(self, event_id: str, draft: EventDraft) -> ActionOutcome:
        try:
            await self._provider.update_event(self._calendar_id, event_id, draft)
        except Exception as exc:
            raise self._failed("update event", exc) from exc

        log.info("Updated event %s", event_id)
        self._feedback.success("Event updated successfully!", event_id=event_id)
        refresh = await self._confirm(
            (draft.start, draft.end),
            lambda events: any(
                e.id == event_id and e.start == draft.start and e.end == draft.end
                for e in events
            ),
        )
        return ActionOutcome(event_id, refresh)

    async def delete(
        self, event_id: str, title: str = "", window: Optional[Window] = None,
    ) -> ActionOutcome:
        try:
            deleted = await self._provider.delete_event(self._calendar_id, event_id)
        except Exception as exc:
            raise self._failed("delete event", exc) from exc
        if not deleted:
            raise self._failed("delete event", RemoteError("provider refused the delete"))

        log.info("Deleted event %s", event_id)
        self._feedback.success(f'"{title}" deleted' if title else "Event deleted", event_id=event_id)

        refresh = None
        if window is not None:
            refresh = await self._confirm(
                window, lambda events: all(e.id != event_id for e in events)
            )
        return ActionOutcome(event_id, refresh)

    async def respond(
        self,
        event_id: str,
        attendee_email: str,
        accepted: bool,
        title: str = "",
        window: Optional[Window] = None,
    ) -> ActionOutcome:
        verb = "accept" if accepted else "decline"
        try:
            await self._provider.respond_to_invitation(
                self._calendar_id, event_id, attendee_email, accepted
            )
        except Exception as exc:
            raise self._failed(f"{verb} invitation", exc) from exc

        status = "accepted" if accepted else "declined"
        log.info("Invitation %s %s", event_id, status)
        self._feedback.success(
            f'Invitation {status}: "{title}"' if title else f"Invitation {status}",
            event_id=event_id,
        )

        refresh = None
        if window is not None:
            refresh = await self._confirm(
                window,
                lambda events: any(
                    e.id == event_id
                    and any(
                        a.email == attendee_email and a.response_status == status
                        for a in e.attendees
                    )
                    for e in events
                ),
            )
        return ActionOutcome(event_id, refresh)

    async def dispatch(self, request: EventRequest) -> ActionOutcome:
        """Carry out a request emitted by the interaction engine."""
        if isinstance(request, CreateRequest):
            return await self.create(request.draft)
        if isinstance(request, UpdateRequest):
            return await self.update(request.event_id, request.draft)
        if isinstance(request, DeleteRequest):
            return await self.delete(request.event_id, request.title)
        raise TypeError(f"Unsupported request: {type(request).__name__}")

    # ── Helpers ─────────────────────────────────────────────────────

    def _failed(self, action: str, exc: Exception) -> RemoteError:
        message = f"Failed to {action}: {str(exc) or 'Unknown error'}"
        log.error(message)
        self._feedback.error(message)
        return RemoteError(message)

    async def _confirm(
        self, window: Window, predicate: Predicate,
    ) -> RefreshResult[ProviderEvent]:
        start, end = window
        start, end = start - timedelta(days=1), end + timedelta(days=1)

        async def fetch() -> list[ProviderEvent]:
            return await self._provider.list_events(self._calendar_id, start, end)

        result = await self._poll(fetch, predicate)
        if not result.confirmed:
            self._feedback.emit(
                "stale",
                "Calendar has not caught up yet; showing the last fetched events",
            )
        return result
