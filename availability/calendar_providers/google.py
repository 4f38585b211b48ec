"""Google Calendar provider implementation.

Uses a Google Cloud service account to interact with the Calendar API v3.
The service account JSON key path comes from ``settings.google_service_account_json``
(``GOOGLE_SERVICE_ACCOUNT_JSON`` in the environment or ``.env``).
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from functools import partial
from typing import Any, Optional

from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build

from availability.config import settings

from .base import Attendee, CalendarProvider, EventDraft, ProviderEvent

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]


def _parse_timestamp(value: dict | None) -> Optional[datetime]:
    """Parse a ``{"dateTime": ...}`` / ``{"date": ...}`` block, None if unusable."""
    if not value:
        return None
    raw = value.get("dateTime") or value.get("date")
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_event(item: dict[str, Any]) -> ProviderEvent:
    """Convert a raw Calendar API event resource into a ProviderEvent."""
    organizer = item.get("organizer") or {}
    attendees = [
        Attendee(
            email=a.get("email", ""),
            display_name=a.get("displayName", ""),
            response_status=a.get("responseStatus", "needsAction"),
            organizer=bool(a.get("organizer", False)),
            is_self=bool(a.get("self", False)),
        )
        for a in item.get("attendees", [])
    ]
    event = ProviderEvent(
        id=item["id"],
        summary=item.get("summary", ""),
        start=_parse_timestamp(item.get("start")),
        end=_parse_timestamp(item.get("end")),
        attendees=attendees,
        organizer_self=bool(organizer.get("self", False)),
        organizer_email=organizer.get("email", ""),
        hangout_link=item.get("hangoutLink"),
        description=item.get("description", ""),
        location=item.get("location", ""),
    )
    if event.start is None or event.end is None:
        logger.warning("Event %s has missing or malformed start/end", event.id)
    return event


class GoogleCalendarProvider(CalendarProvider):
    """CalendarProvider backed by Google Calendar API v3."""

    def __init__(self, service_account_path: str | None = None) -> None:
        sa_path = service_account_path or settings.google_service_account_json
        if not sa_path:
            raise ValueError(
                "Google service account JSON path must be provided via "
                "constructor argument or GOOGLE_SERVICE_ACCOUNT_JSON env var."
            )
        self._credentials = Credentials.from_service_account_file(
            sa_path, scopes=SCOPES
        )
        self._service = build(
            "calendar", "v3", credentials=self._credentials
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run_in_executor(self, func, *args, **kwargs) -> Any:
        """Run a synchronous Google API call in the default thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, partial(func, *args, **kwargs)
        )

    @staticmethod
    def _to_rfc3339(dt: datetime) -> str:
        """Convert a datetime to an RFC 3339 string with timezone."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.isoformat()

    def _event_body(self, event: EventDraft) -> dict[str, Any]:
        body: dict[str, Any] = {
            "summary": event.summary,
            "start": {"dateTime": self._to_rfc3339(event.start)},
            "end": {"dateTime": self._to_rfc3339(event.end)},
        }
        if event.description:
            body["description"] = event.description
        if event.location:
            body["location"] = event.location
        if event.attendees:
            body["attendees"] = [
                {"email": a.email, "displayName": a.display_name}
                if a.display_name else {"email": a.email}
                for a in event.attendees
            ]
        return body

    # ------------------------------------------------------------------
    # CalendarProvider interface
    # ------------------------------------------------------------------

    async def list_events(
        self,
        calendar_id: str,
        start: datetime,
        end: datetime,
    ) -> list[ProviderEvent]:
        """List single (expanded) events overlapping the window, in start order."""
        events: list[ProviderEvent] = []
        page_token: str | None = None

        while True:
            response = await self._run_in_executor(
                self._service.events()
                .list(
                    calendarId=calendar_id,
                    timeMin=self._to_rfc3339(start),
                    timeMax=self._to_rfc3339(end),
                    singleEvents=True,
                    orderBy="startTime",
                    pageToken=page_token,
                )
                .execute
            )
            for item in response.get("items", []):
                events.append(parse_event(item))

            page_token = response.get("nextPageToken")
            if not page_token:
                break

        logger.info(
            "Fetched %d events from calendar %s", len(events), calendar_id
        )
        return events

    async def create_event(
        self, calendar_id: str, event: EventDraft
    ) -> dict:
        """Insert an event into the Google Calendar.

        Sends email invitations to any attendees listed on the event and,
        when ``event.conference`` is set, asks for a Meet link.
        """
        body = self._event_body(event)
        if event.conference:
            body["conferenceData"] = {
                "createRequest": {
                    "requestId": uuid.uuid4().hex,
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            }

        result = await self._run_in_executor(
            self._service.events()
            .insert(
                calendarId=calendar_id,
                body=body,
                sendUpdates="all",
                conferenceDataVersion=1 if event.conference else 0,
            )
            .execute
        )

        logger.info("Created event %s on calendar %s", result["id"], calendar_id)

        return {
            "event_id": result["id"],
            "html_link": result.get("htmlLink", ""),
            "status": result.get("status", "confirmed"),
        }

    async def update_event(
        self, calendar_id: str, event_id: str, event: EventDraft
    ) -> dict:
        """Patch an event; fields not carried by the draft are left as they are."""
        result = await self._run_in_executor(
            self._service.events()
            .patch(
                calendarId=calendar_id,
                eventId=event_id,
                body=self._event_body(event),
                sendUpdates="all",
            )
            .execute
        )

        logger.info("Updated event %s on calendar %s", event_id, calendar_id)

        return {
            "event_id": result.get("id", event_id),
            "html_link": result.get("htmlLink", ""),
            "status": result.get("status", "confirmed"),
        }

    async def delete_event(
        self, calendar_id: str, event_id: str
    ) -> bool:
        """Delete an event from Google Calendar."""
        try:
            await self._run_in_executor(
                self._service.events()
                .delete(calendarId=calendar_id, eventId=event_id)
                .execute
            )
            logger.info(
                "Deleted event %s on calendar %s", event_id, calendar_id
            )
            return True
        except Exception:
            logger.exception(
                "Failed to delete event %s on calendar %s",
                event_id,
                calendar_id,
            )
            return False

    async def respond_to_invitation(
        self,
        calendar_id: str,
        event_id: str,
        attendee_email: str,
        accepted: bool,
    ) -> dict:
        """Set ``attendee_email``'s response status on the event."""
        item = await self._run_in_executor(
            self._service.events()
            .get(calendarId=calendar_id, eventId=event_id)
            .execute
        )

        status = "accepted" if accepted else "declined"
        attendees = item.get("attendees", [])
        for attendee in attendees:
            if attendee.get("email", "").lower() == attendee_email.lower():
                attendee["responseStatus"] = status
                break
        else:
            raise ValueError(
                f"{attendee_email} is not invited to event {event_id}"
            )

        await self._run_in_executor(
            self._service.events()
            .patch(
                calendarId=calendar_id,
                eventId=event_id,
                body={"attendees": attendees},
                sendUpdates="all",
            )
            .execute
        )

        logger.info(
            "Responded %s to event %s on calendar %s", status, event_id, calendar_id
        )
        return {"event_id": event_id, "response_status": status}
