"""Data models for the availability grid."""

from .availability import (
    Availability,
    BusyBlock,
    CreateAvailabilityRequest,
    UpdateAvailabilityRequest,
)
from .events import AvailabilityEvent
from .slots import BackendSlot, DayAvailability, LocalTimeLabel, TimeSlot

__all__ = [
    "Availability",
    "AvailabilityEvent",
    "BackendSlot",
    "BusyBlock",
    "CreateAvailabilityRequest",
    "DayAvailability",
    "LocalTimeLabel",
    "TimeSlot",
    "UpdateAvailabilityRequest",
]
