"""Tests for the in-process availability store."""

import os
import sys
from itertools import count

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from availability.errors import (
    AvailabilityNotFoundError,
    PermissionDeniedError,
    SlotValidationError,
)
from availability.models.availability import (
    BusyBlock,
    CreateAvailabilityRequest,
    UpdateAvailabilityRequest,
)
from availability.models.slots import BackendSlot
from availability.store import (
    MemoryAvailabilityStore,
    check_slot_overlaps,
    redact_pii,
    validate_slot,
    validate_slots,
)


def slot(day, start, end):
    return BackendSlot(day_of_week=day, start_time=start, end_time=end)


def request(title="Office hours", slots=None, **kwargs):
    return CreateAvailabilityRequest(
        title=title, slots=slots or [slot(1, 540, 1020)], **kwargs
    )


@pytest.fixture
def store():
    ticks = count(1)
    return MemoryAvailabilityStore(clock=lambda: next(ticks))


# ── Validation ──────────────────────────────────────────────────────


class TestValidation:
    def test_day_of_week_range(self):
        with pytest.raises(SlotValidationError, match="day_of_week must be 0-6"):
            validate_slot(BackendSlot.model_construct(day_of_week=7, start_time=0, end_time=60))

    def test_minutes_range(self):
        with pytest.raises(SlotValidationError, match="end_time must be 0-1439"):
            validate_slot(BackendSlot.model_construct(day_of_week=1, start_time=0, end_time=1440))

    def test_start_before_end(self):
        with pytest.raises(SlotValidationError, match="start_time must be less than end_time"):
            validate_slot(slot(1, 1380, 60))

    def test_overlap_message(self):
        with pytest.raises(SlotValidationError) as exc_info:
            check_slot_overlaps([slot(1, 540, 720), slot(1, 700, 800)])
        assert str(exc_info.value) == (
            "Overlapping slots on day 1: 09:00-12:00 and 11:40-13:20"
        )

    def test_touching_and_other_day_slots_are_fine(self):
        validate_slots([slot(1, 540, 720), slot(1, 720, 800), slot(2, 540, 720)])

    def test_at_least_one_slot(self):
        with pytest.raises(SlotValidationError, match="at least 1 slot is required"):
            validate_slots([])

    def test_redact_pii(self):
        assert redact_pii("alice@example.com") == "ali***om"
        assert redact_pii("bob") == "***"


# ── CRUD ────────────────────────────────────────────────────────────


class TestCrud:
    def test_create_and_get(self, store):
        created = store.create("alice", request(owner_email="alice@example.com"))

        assert len(created.id) == 6
        assert created.owner == "alice"
        assert created.is_favorite
        assert created.display_order == 0
        assert created.created_at == created.updated_at == 1
        assert store.get(created.id) == created

    def test_second_availability_is_not_favorite(self, store):
        store.create("alice", request())
        second = store.create("alice", request("Evenings"))
        assert not second.is_favorite
        assert second.display_order == 1

    @pytest.mark.parametrize(
        "kwargs,message",
        [
            ({"title": ""}, "title must be 1-100 characters"),
            ({"title": "x" * 101}, "title must be 1-100 characters"),
            ({"description": "x" * 501}, "description must be 0-500 characters"),
        ],
    )
    def test_create_validation(self, store, kwargs, message):
        with pytest.raises(SlotValidationError, match=message):
            store.create("alice", request(**kwargs))

    def test_get_unknown(self, store):
        with pytest.raises(AvailabilityNotFoundError, match="Availability not found"):
            store.get("nope00")

    def test_returned_records_are_copies(self, store):
        created = store.create("alice", request())
        created.title = "Changed"
        assert store.get(created.id).title == "Office hours"

    def test_update(self, store):
        created = store.create("alice", request())
        updated = store.update(
            "alice", created.id,
            UpdateAvailabilityRequest(title="Mornings", slots=[slot(2, 480, 600)]),
        )
        assert updated.title == "Mornings"
        assert updated.slots == [slot(2, 480, 600)]
        assert updated.description == ""
        assert updated.updated_at > created.updated_at

    def test_update_rejects_bad_slots(self, store):
        created = store.create("alice", request())
        with pytest.raises(SlotValidationError):
            store.update("alice", created.id, UpdateAvailabilityRequest(slots=[slot(1, 600, 600)]))
        assert store.get(created.id).slots == [slot(1, 540, 1020)]

    def test_only_owner_may_change(self, store):
        created = store.create("alice", request())

        with pytest.raises(PermissionDeniedError, match="Only the owner can update this availability"):
            store.update("mallory", created.id, UpdateAvailabilityRequest(title="Mine"))
        with pytest.raises(PermissionDeniedError, match="Only the owner can delete this availability"):
            store.delete("mallory", created.id)
        with pytest.raises(PermissionDeniedError, match="Only the owner can set favorite"):
            store.set_favorite("mallory", created.id)
        with pytest.raises(PermissionDeniedError, match="Only the owner can update busy times"):
            store.update_busy_times("mallory", created.id, [])
        with pytest.raises(PermissionDeniedError, match="Only the owner can regenerate"):
            store.regenerate_id("mallory", created.id)

    def test_delete(self, store):
        created = store.create("alice", request())
        store.delete("alice", created.id)

        with pytest.raises(AvailabilityNotFoundError):
            store.get(created.id)
        assert store.list_for_owner("alice") == []


class TestOwnerQueries:
    def test_search_by_email(self, store):
        store.create("alice", request(owner_email="alice@example.com"))
        store.create("alice", request("Evenings"))

        found = store.search_by_email("alice@example.com")
        assert [a.title for a in found] == ["Office hours", "Evenings"]
        assert store.search_by_email("nobody@example.com") == []

    def test_search_by_emails_keeps_order(self, store):
        store.create("alice", request(owner_email="alice@example.com"))
        store.create("bob", request("Bob's", owner_email="bob@example.com"))

        results = store.search_by_emails(["bob@example.com", "x@example.com", "alice@example.com"])
        assert [[a.owner for a in r] for r in results] == [["bob"], [], ["alice"]]

    def test_set_favorite_reorders(self, store):
        first = store.create("alice", request("First"))
        second = store.create("alice", request("Second"))
        third = store.create("alice", request("Third"))

        store.set_favorite("alice", third.id)

        listed = store.list_for_owner("alice")
        assert [a.title for a in listed] == ["Third", "First", "Second"]
        assert [a.is_favorite for a in listed] == [True, False, False]
        assert [a.display_order for a in listed] == [0, 1, 2]
        assert first.id != second.id

    def test_update_busy_times(self, store):
        created = store.create("alice", request())
        blocks = [BusyBlock(start_time=1_000, end_time=2_000)]

        store.update_busy_times("alice", created.id, blocks)
        assert store.get(created.id).busy_times == blocks

    def test_regenerate_id(self, store):
        created = store.create("alice", request())

        new_id = store.regenerate_id("alice", created.id)
        assert new_id != created.id
        assert store.get(new_id).title == "Office hours"
        assert [a.id for a in store.list_for_owner("alice")] == [new_id]
        with pytest.raises(AvailabilityNotFoundError):
            store.get(created.id)


class TestSlotInterface:
    async def test_list_slots_of_favorite(self, store):
        store.create("alice", request(slots=[slot(1, 540, 600)]))
        store.create("alice", request("Other", slots=[slot(3, 540, 600)]))

        assert await store.list_slots("alice") == [slot(1, 540, 600)]
        assert await store.list_slots("bob") == []

    async def test_save_slots_creates_when_missing(self, store):
        await store.save_slots("bob", [slot(2, 600, 660)])

        listed = store.list_for_owner("bob")
        assert [a.title for a in listed] == ["My availability"]
        assert await store.list_slots("bob") == [slot(2, 600, 660)]

    async def test_save_slots_replaces_favorite(self, store):
        store.create("alice", request())
        await store.save_slots("alice", [slot(5, 60, 120)])
        assert await store.list_slots("alice") == [slot(5, 60, 120)]
