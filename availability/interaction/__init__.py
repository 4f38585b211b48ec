"""Gesture state machines for the availability grid."""

from availability.interaction.engine import InteractionEngine, RequestSink
from availability.interaction.payloads import (
    CreateRequest,
    DeleteRequest,
    EventRequest,
    Participant,
    UpdateRequest,
    build_attendees,
    default_title,
)
from availability.interaction.session import (
    DragSession,
    GestureKind,
    GesturePhase,
    GridSurface,
    ListenerScope,
)

__all__ = [
    "CreateRequest",
    "DeleteRequest",
    "DragSession",
    "EventRequest",
    "GestureKind",
    "GesturePhase",
    "GridSurface",
    "InteractionEngine",
    "ListenerScope",
    "Participant",
    "RequestSink",
    "UpdateRequest",
    "build_attendees",
    "default_title",
]
