"""Pydantic models for stored availabilities and their requests."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from availability.models.slots import BackendSlot


class BusyBlock(BaseModel):
    """An occupied interval, epoch milliseconds."""

    start_time: int
    end_time: int


class Availability(BaseModel):
    """A named set of weekly slots owned by one user."""

    id: str
    owner: str
    owner_email: Optional[str] = None
    owner_name: Optional[str] = None
    title: str
    description: str = ""
    slots: list[BackendSlot] = []
    timezone: str = "UTC"
    created_at: int = 0  # epoch nanoseconds
    updated_at: int = 0
    busy_times: Optional[list[BusyBlock]] = None
    is_favorite: bool = False
    display_order: int = 0


class CreateAvailabilityRequest(BaseModel):
    title: str
    description: str = ""
    slots: list[BackendSlot]
    timezone: str = "UTC"
    owner_email: Optional[str] = None
    owner_name: Optional[str] = None
    busy_times: Optional[list[BusyBlock]] = None


class UpdateAvailabilityRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    slots: Optional[list[BackendSlot]] = None
    timezone: Optional[str] = None
