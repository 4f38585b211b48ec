"""Typed mapping between store wire payloads and the pydantic models.

The store's wire shapes encode optional fields as ``[]`` / ``[value]``,
results as ``{"Ok": ...}`` / ``{"Err": "..."}``, and 64-bit integers as
big integers or numeric strings. One function per shape converts in each
direction; nothing is intercepted dynamically.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from availability.errors import RemoteError, SlotValidationError
from availability.models.availability import (
    Availability,
    BusyBlock,
    CreateAvailabilityRequest,
    UpdateAvailabilityRequest,
)
from availability.models.slots import BackendSlot


# ── Scalars ─────────────────────────────────────────────────────────


def to_int(value: Any, field: str) -> int:
    """Accept ints, integral floats and numeric strings; reject everything else."""
    if isinstance(value, bool):
        raise SlotValidationError(f"{field} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise SlotValidationError(f"{field} must be an integer, got {value!r}")


def unwrap_optional(value: Any) -> Any:
    """``[]`` → None, ``[x]`` → x; plain values pass through."""
    if isinstance(value, (list, tuple)):
        if len(value) > 1:
            raise SlotValidationError(f"Optional field holds {len(value)} values")
        return value[0] if value else None
    return value


def wrap_optional(value: Any) -> list:
    return [] if value is None else [value]


def unwrap_result(raw: Mapping[str, Any]) -> Any:
    if "Err" in raw:
        raise RemoteError(str(raw["Err"]))
    if "Ok" in raw:
        return raw["Ok"]
    raise RemoteError(f"Malformed store result: {sorted(raw)}")


# ── Slots & busy blocks ─────────────────────────────────────────────


def slot_from_wire(raw: Mapping[str, Any]) -> BackendSlot:
    return BackendSlot(
        day_of_week=to_int(raw["day_of_week"], "day_of_week"),
        start_time=to_int(raw["start_time"], "start_time"),
        end_time=to_int(raw["end_time"], "end_time"),
    )


def slot_to_wire(slot: BackendSlot) -> dict[str, int]:
    return {
        "day_of_week": slot.day_of_week,
        "start_time": slot.start_time,
        "end_time": slot.end_time,
    }


def busy_block_from_wire(raw: Mapping[str, Any]) -> BusyBlock:
    return BusyBlock(
        start_time=to_int(raw["start_time"], "start_time"),
        end_time=to_int(raw["end_time"], "end_time"),
    )


def busy_block_to_wire(block: BusyBlock) -> dict[str, int]:
    return {"start_time": block.start_time, "end_time": block.end_time}


def _busy_list(raw: Any) -> Optional[list[BusyBlock]]:
    blocks = unwrap_optional(raw)
    if blocks is None:
        return None
    return [busy_block_from_wire(b) for b in blocks]


# ── Availability ────────────────────────────────────────────────────


def availability_from_wire(raw: Mapping[str, Any]) -> Availability:
    return Availability(
        id=str(raw["id"]),
        owner=str(raw["owner"]),
        owner_email=unwrap_optional(raw.get("owner_email", [])),
        owner_name=unwrap_optional(raw.get("owner_name", [])),
        title=raw["title"],
        description=raw.get("description", ""),
        slots=[slot_from_wire(s) for s in raw.get("slots", [])],
        timezone=raw.get("timezone", "UTC"),
        created_at=to_int(raw.get("created_at", 0), "created_at"),
        updated_at=to_int(raw.get("updated_at", 0), "updated_at"),
        busy_times=_busy_list(raw.get("busy_times", [])),
        is_favorite=bool(raw.get("is_favorite", False)),
        display_order=to_int(raw.get("display_order", 0), "display_order"),
    )


def availability_to_wire(availability: Availability) -> dict[str, Any]:
    busy = availability.busy_times
    return {
        "id": availability.id,
        "owner": availability.owner,
        "owner_email": wrap_optional(availability.owner_email),
        "owner_name": wrap_optional(availability.owner_name),
        "title": availability.title,
        "description": availability.description,
        "slots": [slot_to_wire(s) for s in availability.slots],
        "timezone": availability.timezone,
        "created_at": availability.created_at,
        "updated_at": availability.updated_at,
        "busy_times": wrap_optional(
            None if busy is None else [busy_block_to_wire(b) for b in busy]
        ),
        "is_favorite": availability.is_favorite,
        "display_order": availability.display_order,
    }


def create_request_from_wire(raw: Mapping[str, Any]) -> CreateAvailabilityRequest:
    return CreateAvailabilityRequest(
        title=raw["title"],
        description=raw.get("description", ""),
        slots=[slot_from_wire(s) for s in raw.get("slots", [])],
        timezone=raw.get("timezone", "UTC"),
        owner_email=unwrap_optional(raw.get("owner_email", [])),
        owner_name=unwrap_optional(raw.get("owner_name", [])),
        busy_times=_busy_list(raw.get("busy_times", [])),
    )


def create_request_to_wire(req: CreateAvailabilityRequest) -> dict[str, Any]:
    busy = req.busy_times
    return {
        "title": req.title,
        "description": req.description,
        "slots": [slot_to_wire(s) for s in req.slots],
        "timezone": req.timezone,
        "owner_email": wrap_optional(req.owner_email),
        "owner_name": wrap_optional(req.owner_name),
        "busy_times": wrap_optional(
            None if busy is None else [busy_block_to_wire(b) for b in busy]
        ),
    }


def update_request_from_wire(raw: Mapping[str, Any]) -> UpdateAvailabilityRequest:
    slots = unwrap_optional(raw.get("slots", []))
    return UpdateAvailabilityRequest(
        title=unwrap_optional(raw.get("title", [])),
        description=unwrap_optional(raw.get("description", [])),
        slots=None if slots is None else [slot_from_wire(s) for s in slots],
        timezone=unwrap_optional(raw.get("timezone", [])),
    )
