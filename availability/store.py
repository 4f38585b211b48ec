"""Availability store: named weekly slot sets owned by users.

``AvailabilityStore`` is the narrow interface the grid needs (list and
save one owner's slots). ``MemoryAvailabilityStore`` is the full
in-process implementation behind the HTTP surface: CRUD with ownership
checks, search by owner email, favorites and uploaded busy times.
"""

from __future__ import annotations

import logging
import secrets
import time
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from availability.errors import (
    AvailabilityNotFoundError,
    PermissionDeniedError,
    SlotValidationError,
)
from availability.models.availability import (
    Availability,
    BusyBlock,
    CreateAvailabilityRequest,
    UpdateAvailabilityRequest,
)
from availability.models.slots import MINUTES_PER_DAY, BackendSlot

log = logging.getLogger("availability.store")

ID_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"
ID_LENGTH = 6
MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500


def redact_pii(value: str) -> str:
    """Mask PII for logging — show first 3 and last 2 chars only."""
    if not value or len(value) <= 5:
        return "***"
    return value[:3] + "***" + value[-2:]


def _hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


# ── Validation ──────────────────────────────────────────────────────


def validate_slot(slot: BackendSlot) -> None:
    if not 0 <= slot.day_of_week <= 6:
        raise SlotValidationError("day_of_week must be 0-6 (Sunday-Saturday)")
    if not 0 <= slot.start_time < MINUTES_PER_DAY:
        raise SlotValidationError("start_time must be 0-1439 (minutes in a day)")
    if not 0 <= slot.end_time < MINUTES_PER_DAY:
        raise SlotValidationError("end_time must be 0-1439 (minutes in a day)")
    if slot.crosses_midnight:
        raise SlotValidationError("start_time must be less than end_time")


def check_slot_overlaps(slots: Sequence[BackendSlot]) -> None:
    for i, first in enumerate(slots):
        for second in slots[i + 1:]:
            if first.day_of_week != second.day_of_week:
                continue
            if first.start_time < second.end_time and second.start_time < first.end_time:
                raise SlotValidationError(
                    f"Overlapping slots on day {first.day_of_week}: "
                    f"{_hhmm(first.start_time)}-{_hhmm(first.end_time)} and "
                    f"{_hhmm(second.start_time)}-{_hhmm(second.end_time)}"
                )


def validate_title(title: str) -> None:
    if not title or len(title) > MAX_TITLE_LENGTH:
        raise SlotValidationError("title must be 1-100 characters")


def validate_description(description: str) -> None:
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise SlotValidationError("description must be 0-500 characters")


def validate_slots(slots: Sequence[BackendSlot]) -> None:
    if not slots:
        raise SlotValidationError("at least 1 slot is required")
    for slot in slots:
        validate_slot(slot)
    check_slot_overlaps(slots)


# ── Interface ───────────────────────────────────────────────────────


class AvailabilityStore(ABC):
    """Where an owner's weekly slots live."""

    @abstractmethod
    async def list_slots(self, owner_id: str) -> list[BackendSlot]:
        """The owner's slots (their favorite availability), or ``[]``."""

    @abstractmethod
    async def save_slots(self, owner_id: str, slots: list[BackendSlot]) -> None:
        """Replace the owner's slots."""


class MemoryAvailabilityStore(AvailabilityStore):
    """In-process availability records, keyed by 6-character id."""

    def __init__(self, clock=time.time_ns) -> None:
        self._clock = clock
        self._availabilities: dict[str, Availability] = {}
        self._by_owner: dict[str, list[str]] = {}
        self._email_to_owner: dict[str, str] = {}

    # ── ids ──

    def _generate_id(self) -> str:
        while True:
            candidate = "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))
            if candidate not in self._availabilities:
                return candidate

    def _owned(self, caller: str, availability_id: str, action: str) -> Availability:
        availability = self.get(availability_id)
        if availability.owner != caller:
            raise PermissionDeniedError(f"Only the owner can {action}")
        return availability

    # ── CRUD ──

    def create(self, caller: str, req: CreateAvailabilityRequest) -> Availability:
        validate_title(req.title)
        validate_description(req.description)
        validate_slots(req.slots)

        now = self._clock()
        owned = self._by_owner.setdefault(caller, [])
        availability = Availability(
            id=self._generate_id(),
            owner=caller,
            owner_email=req.owner_email,
            owner_name=req.owner_name,
            title=req.title,
            description=req.description,
            slots=list(req.slots),
            timezone=req.timezone,
            created_at=now,
            updated_at=now,
            busy_times=req.busy_times,
            is_favorite=not owned,
            display_order=len(owned),
        )
        self._availabilities[availability.id] = availability
        owned.append(availability.id)
        if availability.owner_email:
            self._email_to_owner[availability.owner_email] = caller

        log.info("Created availability %s (%d slots)", availability.id, len(availability.slots))
        return availability.model_copy(deep=True)

    def get(self, availability_id: str) -> Availability:
        availability = self._availabilities.get(availability_id)
        if availability is None:
            raise AvailabilityNotFoundError("Availability not found")
        return availability.model_copy(deep=True)

    def update(
        self, caller: str, availability_id: str, req: UpdateAvailabilityRequest,
    ) -> Availability:
        availability = self._owned(caller, availability_id, "update this availability")

        if req.title is not None:
            validate_title(req.title)
            availability.title = req.title
        if req.description is not None:
            validate_description(req.description)
            availability.description = req.description
        if req.slots is not None:
            validate_slots(req.slots)
            availability.slots = list(req.slots)
        if req.timezone is not None:
            availability.timezone = req.timezone

        availability.updated_at = self._clock()
        self._availabilities[availability_id] = availability
        log.info("Updated availability %s", availability_id)
        return availability.model_copy(deep=True)

    def delete(self, caller: str, availability_id: str) -> None:
        self._owned(caller, availability_id, "delete this availability")
        del self._availabilities[availability_id]
        ids = self._by_owner.get(caller, [])
        if availability_id in ids:
            ids.remove(availability_id)
        log.info("Deleted availability %s", availability_id)

    def list_for_owner(self, owner: str) -> list[Availability]:
        ids = self._by_owner.get(owner, [])
        found = [self._availabilities[i] for i in ids if i in self._availabilities]
        found.sort(key=lambda a: a.display_order)
        return [a.model_copy(deep=True) for a in found]

    def search_by_email(self, email: str) -> list[Availability]:
        owner = self._email_to_owner.get(email)
        log.debug("Search by email %s → %s", redact_pii(email), "hit" if owner else "miss")
        if owner is None:
            return []
        return self.list_for_owner(owner)

    def search_by_emails(self, emails: Sequence[str]) -> list[list[Availability]]:
        return [self.search_by_email(email) for email in emails]

    def regenerate_id(self, caller: str, availability_id: str) -> str:
        availability = self._owned(
            caller, availability_id, "regenerate this availability ID"
        )
        new_id = self._generate_id()
        availability.id = new_id
        availability.updated_at = self._clock()

        del self._availabilities[availability_id]
        self._availabilities[new_id] = availability
        ids = self._by_owner.get(caller, [])
        ids[ids.index(availability_id)] = new_id
        log.info("Regenerated availability id %s -> %s", availability_id, new_id)
        return new_id

    def set_favorite(self, caller: str, availability_id: str) -> None:
        """Make one availability the favorite; the others follow in creation order."""
        self._owned(caller, availability_id, "set favorite")
        ids = self._by_owner.get(caller, [])
        if not ids:
            raise AvailabilityNotFoundError("No availabilities found")

        now = self._clock()
        order = 1
        for avail_id in ids:
            availability = self._availabilities[avail_id]
            availability.updated_at = now
            if avail_id == availability_id:
                availability.is_favorite = True
                availability.display_order = 0
            else:
                availability.is_favorite = False
                availability.display_order = order
                order += 1
        log.info("Set favorite availability %s", availability_id)

    def update_busy_times(
        self, caller: str, availability_id: str, busy_times: list[BusyBlock],
    ) -> None:
        availability = self._owned(caller, availability_id, "update busy times")
        availability.busy_times = list(busy_times)
        availability.updated_at = self._clock()
        self._availabilities[availability_id] = availability
        log.info(
            "Updated busy times for availability %s (%d blocks)",
            availability_id, len(busy_times),
        )

    # ── AvailabilityStore ──

    def _favorite(self, owner_id: str) -> Optional[Availability]:
        owned = self.list_for_owner(owner_id)
        for availability in owned:
            if availability.is_favorite:
                return availability
        return owned[0] if owned else None

    async def list_slots(self, owner_id: str) -> list[BackendSlot]:
        favorite = self._favorite(owner_id)
        return list(favorite.slots) if favorite else []

    async def save_slots(self, owner_id: str, slots: list[BackendSlot]) -> None:
        favorite = self._favorite(owner_id)
        if favorite is None:
            self.create(
                owner_id,
                CreateAvailabilityRequest(title="My availability", slots=slots),
            )
            return
        self.update(owner_id, favorite.id, UpdateAvailabilityRequest(slots=slots))
