"""Tests for backend slot → day column conversion."""

import os
import sys
from datetime import date, datetime, timedelta, timezone

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from availability.converter import (
    backend_slots_to_display,
    build_days,
    day_of_week,
    expand_slot_minutes,
    normalize_slot,
    offset_between,
    split_slot,
    to_wall_clock,
    zone,
)
from availability.models.slots import BackendSlot

SUNDAY = date(2025, 11, 9)
MONDAY = date(2025, 11, 10)


def slot(day, start, end):
    return BackendSlot(day_of_week=day, start_time=start, end_time=end)


class TestDayOfWeek:
    def test_sunday_is_zero(self):
        assert day_of_week(SUNDAY) == 0
        assert day_of_week(MONDAY) == 1
        assert day_of_week(SUNDAY + timedelta(days=6)) == 6


class TestMidnightSplit:
    def test_split_monday_night_into_tuesday(self):
        display = backend_slots_to_display([slot(1, 1380, 60)])

        assert [s.to_dict() for s in display[1]] == [
            {"start": "11:00 PM", "end": "11:59 PM"}
        ]
        assert [s.to_dict() for s in display[2]] == [
            {"start": "12:00 AM", "end": "1:00 AM"}
        ]

    def test_split_durations_lose_one_boundary_minute(self):
        display = backend_slots_to_display([slot(1, 1380, 60)])
        total = sum(s.end_minutes - s.start_minutes for d in display.values() for s in d)
        assert total == 120 - 1

    def test_saturday_wraps_to_sunday(self):
        assert split_slot(6, 1320, 120) == [(6, 1320, 1439), (0, 0, 120)]

    def test_zero_length_halves_are_dropped(self):
        assert split_slot(2, 1200, 0) == [(2, 1200, 1439)]
        assert split_slot(2, 1439, 60) == [(3, 0, 60)]

    def test_plain_slot_is_untouched(self):
        assert split_slot(3, 540, 1020) == [(3, 540, 1020)]


class TestRoundTrip:
    def test_display_labels_reproduce_minutes(self):
        slots = [slot(1, 540, 1020), slot(1, 1080, 1200), slot(3, 0, 30), slot(5, 615, 700)]
        display = backend_slots_to_display(slots)

        recovered = sorted(
            (day, s.start_minutes, s.end_minutes)
            for day, day_slots in display.items()
            for s in day_slots
        )
        assert recovered == sorted((s.day_of_week, s.start_time, s.end_time) for s in slots)


class TestOffset:
    def test_negative_offset_moves_start_to_previous_day(self):
        assert normalize_slot(slot(0, 30, 120), -60) == (6, 1410, 60)
        assert expand_slot_minutes([slot(0, 30, 120)], -60) == {
            6: [(1410, 1439)],
            0: [(0, 60)],
        }

    def test_positive_offset_moves_start_to_next_day(self):
        assert normalize_slot(slot(6, 1400, 1430), 60) == (0, 20, 50)

    def test_offset_between_fixed_zones(self):
        stored = timezone(timedelta(hours=-5))
        assert offset_between(stored, timezone.utc, MONDAY) == 300
        assert offset_between(timezone.utc, stored, MONDAY) == -300
        assert offset_between("UTC", "UTC", MONDAY) == 0

    def test_zone_names(self):
        assert zone("UTC") is timezone.utc
        assert zone(timezone.utc) is timezone.utc

    def test_wall_clock_minutes(self):
        eastern = timezone(timedelta(hours=-5))
        assert to_wall_clock(MONDAY, 600, eastern) == datetime(2025, 11, 10, 10, tzinfo=eastern)
        assert to_wall_clock(MONDAY, 1440, timezone.utc) == datetime(2025, 11, 11, tzinfo=timezone.utc)


class TestBuildDays:
    def test_week_columns(self):
        days = build_days(SUNDAY, 7, [slot(1, 540, 1080), slot(3, 600, 720)])

        assert [d.day_name for d in days] == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
        assert [d.available for d in days] == [False, True, False, True, False, False, False]
        assert days[1].date == MONDAY
        assert days[1].total_minutes == 540
        assert days[0].window is None
        assert days[0].total_minutes == 0

    def test_window_anchor_ignores_slot_order(self):
        days = build_days(MONDAY, 1, [slot(1, 780, 900), slot(1, 540, 660)])
        monday = days[0]

        assert [s.to_dict()["start"] for s in monday.time_slots] == ["9:00 AM", "1:00 PM"]
        assert str(monday.window.start) == "9:00 AM"
        assert str(monday.window.end) == "3:00 PM"
        assert monday.total_minutes == 360

    def test_to_dict(self):
        day = build_days(MONDAY, 1, [slot(1, 540, 600)])[0]
        assert day.to_dict() == {
            "date": "2025-11-10",
            "day_name": "Mon",
            "available": True,
            "time_slots": [{"start": "9:00 AM", "end": "10:00 AM"}],
        }
