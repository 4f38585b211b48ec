"""Error taxonomy for the availability grid.

Three families:

  - validation errors: local and recoverable, raised before any remote
    call is made (overlap, past time, duration bounds, malformed slots)
  - remote errors: a collaborator call failed or a record it should
    hold is missing
  - data errors: a fetched event cannot be placed on the grid
"""

from __future__ import annotations


class AvailabilityError(Exception):
    """Base class for every error raised by this package."""


# ── Validation ──────────────────────────────────────────────────────


class IntervalValidationError(AvailabilityError):
    """A proposed event interval was rejected.

    ``reason`` is one of ``overlap``, ``past``, ``past_event``, ``order``,
    ``too_short``, ``too_long``.
    """

    def __init__(self, message: str, reason: str) -> None:
        super().__init__(message)
        self.message = message
        self.reason = reason


class SlotValidationError(AvailabilityError):
    """A weekly slot set (or the availability holding it) is malformed."""


# ── Remote ──────────────────────────────────────────────────────────


class RemoteError(AvailabilityError):
    """A calendar provider or availability store operation failed."""


class EventNotFoundError(RemoteError):
    """The provider record backing a grid event is gone."""


class AvailabilityNotFoundError(RemoteError):
    """No availability with the requested id."""


class PermissionDeniedError(RemoteError):
    """The caller does not own the availability it tried to change."""


# ── Data ────────────────────────────────────────────────────────────


class EventDataError(AvailabilityError):
    """A fetched event has missing or malformed start/end timestamps."""
