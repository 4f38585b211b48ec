"""Tests for store wire payload conversion."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from availability.adapters import (
    availability_from_wire,
    availability_to_wire,
    create_request_from_wire,
    create_request_to_wire,
    slot_from_wire,
    to_int,
    unwrap_optional,
    unwrap_result,
    update_request_from_wire,
    wrap_optional,
)
from availability.errors import RemoteError, SlotValidationError
from availability.models.availability import BusyBlock, CreateAvailabilityRequest
from availability.models.slots import BackendSlot

WIRE = {
    "id": "abc123",
    "owner": "alice",
    "owner_email": ["alice@example.com"],
    "owner_name": [],
    "title": "Office hours",
    "description": "",
    "slots": [{"day_of_week": 1, "start_time": "540", "end_time": 1020}],
    "timezone": "America/New_York",
    "created_at": "1762761600000000000",
    "updated_at": 1762761600000000000,
    "busy_times": [[{"start_time": "1000", "end_time": 2000}]],
    "is_favorite": True,
    "display_order": 0,
}


class TestScalars:
    @pytest.mark.parametrize("value,expected", [(5, 5), (5.0, 5), ("12", 12), (" 7 ", 7)])
    def test_to_int(self, value, expected):
        assert to_int(value, "n") == expected

    @pytest.mark.parametrize("value", [True, 1.5, "abc", None, [1]])
    def test_to_int_rejects(self, value):
        with pytest.raises(SlotValidationError, match="n must be an integer"):
            to_int(value, "n")

    def test_optional(self):
        assert unwrap_optional([]) is None
        assert unwrap_optional(["x"]) == "x"
        assert unwrap_optional("plain") == "plain"
        assert wrap_optional(None) == []
        assert wrap_optional(0) == [0]
        with pytest.raises(SlotValidationError):
            unwrap_optional([1, 2])

    def test_result(self):
        assert unwrap_result({"Ok": 3}) == 3
        with pytest.raises(RemoteError, match="Availability not found"):
            unwrap_result({"Err": "Availability not found"})
        with pytest.raises(RemoteError, match="Malformed"):
            unwrap_result({"Huh": 1})


class TestAvailability:
    def test_from_wire(self):
        availability = availability_from_wire(WIRE)

        assert availability.owner_email == "alice@example.com"
        assert availability.owner_name is None
        assert availability.slots == [BackendSlot(day_of_week=1, start_time=540, end_time=1020)]
        assert availability.created_at == 1762761600000000000
        assert availability.busy_times == [BusyBlock(start_time=1000, end_time=2000)]

    def test_to_wire_normalizes_integers(self):
        wire = availability_to_wire(availability_from_wire(WIRE))

        assert wire["slots"] == [{"day_of_week": 1, "start_time": 540, "end_time": 1020}]
        assert wire["created_at"] == 1762761600000000000
        assert wire["busy_times"] == [[{"start_time": 1000, "end_time": 2000}]]
        assert wire["owner_name"] == []

    def test_missing_busy_times(self):
        raw = dict(WIRE, busy_times=[])
        assert availability_from_wire(raw).busy_times is None
        assert availability_to_wire(availability_from_wire(raw))["busy_times"] == []

    def test_bad_slot_field(self):
        with pytest.raises(SlotValidationError, match="start_time"):
            slot_from_wire({"day_of_week": 1, "start_time": "nine", "end_time": 600})


class TestRequests:
    def test_create_request(self):
        req = CreateAvailabilityRequest(
            title="Evenings",
            slots=[BackendSlot(day_of_week=2, start_time=1080, end_time=1200)],
            owner_name="Alice",
        )
        wire = create_request_to_wire(req)

        assert wire["owner_email"] == []
        assert wire["owner_name"] == ["Alice"]
        assert wire["busy_times"] == []
        assert create_request_from_wire(wire) == req

    def test_update_request(self):
        req = update_request_from_wire({
            "title": ["Renamed"],
            "description": [],
            "slots": [[{"day_of_week": 3, "start_time": 60, "end_time": 120}]],
        })
        assert req.title == "Renamed"
        assert req.description is None
        assert req.timezone is None
        assert req.slots == [BackendSlot(day_of_week=3, start_time=60, end_time=120)]

    def test_update_request_without_slots(self):
        assert update_request_from_wire({}).slots is None
