"""Requests handed from the interaction engine to the event collaborator."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from availability.calendar_providers.base import Attendee, EventDraft
from availability.models.slots import LocalTimeLabel


@dataclass(frozen=True)
class Participant:
    email: str
    display_name: str = ""


@dataclass(frozen=True)
class CreateRequest:
    draft: EventDraft


@dataclass(frozen=True)
class UpdateRequest:
    event_id: str  # provider id
    draft: EventDraft


@dataclass(frozen=True)
class DeleteRequest:
    event_id: str  # provider id
    title: str


EventRequest = Union[CreateRequest, UpdateRequest, DeleteRequest]


def default_title(start: datetime) -> str:
    """``Meeting on Monday, November 10, 2025 at 10:00 AM``."""
    label = LocalTimeLabel.from_minutes(start.hour * 60 + start.minute)
    return (
        f"Meeting on {start:%A}, {start:%B} {start.day}, {start.year} at {label}"
    )


def build_attendees(
    viewer: Optional[Participant],
    owner: Optional[Participant],
    viewing_own: bool,
) -> list[Attendee]:
    """The acting user, plus the availability's owner when viewing someone else's."""
    attendees: list[Attendee] = []
    if viewer and viewer.email:
        attendees.append(Attendee(email=viewer.email, display_name=viewer.display_name))

    if (
        not viewing_own
        and owner is not None
        and owner.email
        and (viewer is None or owner.email != viewer.email)
    ):
        attendees.append(Attendee(email=owner.email, display_name=owner.display_name))

    return attendees
