"""
Tests for the constraint filter that turns candidate windows into meeting slots.
"""

import pendulum
import pytest

from calconnect.domain.candidates import CandidateGenerator
from calconnect.domain.constraint_filter import ConstraintFilter, align_to_interval, resolve_search_start
from calconnect.domain.models import WEEKEND_DAYS, TimeWindow, TravelBuffer
from calconnect.domain.templates import DEFAULT_TRAVEL_BUFFER

from conftest import TZ, slot

COFFEE_WINDOW = TimeWindow.parse("07:30", "10:30")
LUNCH_WINDOW = TimeWindow.parse("11:00", "14:00")
BUSINESS_HOURS = TimeWindow.parse("09:00", "17:00")


def _candidates(window: TimeWindow, start: str, end: str, allow_weekends: bool = False):
    return CandidateGenerator([window], TZ).generate(
        pendulum.parse(start, tz=TZ).date(),
        pendulum.parse(end, tz=TZ).date(),
        allow_weekends=allow_weekends,
    )


class TestConstraintFilter:
    """Tests for ConstraintFilter."""

    def test_coffee_slot_lies_inside_shrunk_window(self):
        """30 minute coffee with 30/30 buffer fits 08:00-08:30 on an empty morning."""
        slot_filter = ConstraintFilter(30, DEFAULT_TRAVEL_BUFFER, COFFEE_WINDOW)

        slots = slot_filter.apply(
            _candidates(COFFEE_WINDOW, "2024-01-08", "2024-01-12"),
            {"alice": [], "bob": []},
        )

        assert len(slots) == 5
        for found in slots:
            window = COFFEE_WINDOW.on(found.start.date(), TZ)
            assert found.start >= window.start.add(minutes=30)
            assert found.end <= window.end.subtract(minutes=30)
            assert found.duration_minutes() == 30
        assert slots[0] == slot("2024-01-08 08:00", "2024-01-08 08:30")

    def test_coffee_after_early_meeting(self):
        slot_filter = ConstraintFilter(30, DEFAULT_TRAVEL_BUFFER, COFFEE_WINDOW)

        slots = slot_filter.apply(
            _candidates(COFFEE_WINDOW, "2024-01-08", "2024-01-08"),
            {"alice": [slot("2024-01-08 07:00", "2024-01-08 09:00")], "bob": []},
        )

        assert slots == [slot("2024-01-08 09:30", "2024-01-08 10:00")]

    def test_buffer_that_no_longer_fits_removes_the_day(self):
        """One free hour cannot hold 30 minutes plus an hour of travel."""
        slot_filter = ConstraintFilter(30, DEFAULT_TRAVEL_BUFFER, COFFEE_WINDOW)

        slots = slot_filter.apply(
            _candidates(COFFEE_WINDOW, "2024-01-08", "2024-01-08"),
            {"alice": [slot("2024-01-08 07:00", "2024-01-08 09:30")]},
        )

        assert slots == []

    def test_lunch_inside_lunch_window(self):
        """Both free 11:00-14:00 gives a 60 minute lunch inside that window."""
        slot_filter = ConstraintFilter(60, DEFAULT_TRAVEL_BUFFER, LUNCH_WINDOW)
        busy = {
            "alice": [slot("2024-01-08 09:00", "2024-01-08 11:00")],
            "bob": [slot("2024-01-08 14:00", "2024-01-08 16:00")],
        }

        slots = slot_filter.apply(_candidates(LUNCH_WINDOW, "2024-01-08", "2024-01-08"), busy)

        assert slots == [slot("2024-01-08 11:30", "2024-01-08 12:30")]
        assert slots[0].duration_minutes() == 60

    def test_busy_interval_covering_window_removes_it(self):
        slot_filter = ConstraintFilter(60, None, LUNCH_WINDOW)

        slots = slot_filter.apply(
            _candidates(LUNCH_WINDOW, "2024-01-08", "2024-01-08"),
            {"alice": [slot("2024-01-08 10:00", "2024-01-08 15:00")], "bob": []},
        )

        assert slots == []

    def test_no_overlapping_free_time(self):
        """Each is free only while the other is busy."""
        slot_filter = ConstraintFilter(60, None, LUNCH_WINDOW)
        busy = {
            "alice": [slot("2024-01-08 11:00", "2024-01-08 12:30")],
            "bob": [slot("2024-01-08 12:30", "2024-01-08 14:00")],
        }

        assert slot_filter.apply(_candidates(LUNCH_WINDOW, "2024-01-08", "2024-01-08"), busy) == []

    def test_start_is_aligned_to_interval(self):
        slot_filter = ConstraintFilter(30, None, BUSINESS_HOURS)

        slots = slot_filter.apply(
            _candidates(BUSINESS_HOURS, "2024-01-08", "2024-01-08"),
            {"alice": [slot("2024-01-08 09:00", "2024-01-08 09:45")]},
        )

        assert slots == [slot("2024-01-08 10:00", "2024-01-08 10:30")]

    def test_one_slot_per_day_earliest_first(self):
        slot_filter = ConstraintFilter(30, None, BUSINESS_HOURS)

        slots = slot_filter.apply(
            _candidates(BUSINESS_HOURS, "2024-01-08", "2024-01-09"),
            {"alice": [slot("2024-01-08 09:00", "2024-01-08 12:00")]},
        )

        assert slots == [
            slot("2024-01-08 12:00", "2024-01-08 12:30"),
            slot("2024-01-09 09:00", "2024-01-09 09:30"),
        ]

    def test_past_time_is_skipped(self):
        """Today's window is clipped to now before fitting."""
        slot_filter = ConstraintFilter(30, DEFAULT_TRAVEL_BUFFER, COFFEE_WINDOW)
        now = pendulum.datetime(2024, 1, 8, 8, 10, tz=TZ)

        slots = slot_filter.apply(
            _candidates(COFFEE_WINDOW, "2024-01-08", "2024-01-08"),
            {},
            now=now,
        )

        assert slots == [slot("2024-01-08 09:00", "2024-01-08 09:30")]

    def test_weekends_never_appear_for_work_style_search(self):
        slot_filter = ConstraintFilter(30, None, BUSINESS_HOURS)

        slots = slot_filter.apply(_candidates(BUSINESS_HOURS, "2024-01-05", "2024-01-08"), {})

        assert [s.start.day for s in slots] == [5, 8]
        assert all(s.start.day_of_week not in WEEKEND_DAYS for s in slots)

    def test_no_two_slots_share_a_day(self):
        slot_filter = ConstraintFilter(45, TravelBuffer(15, 15), BUSINESS_HOURS)

        slots = slot_filter.apply(_candidates(BUSINESS_HOURS, "2024-01-01", "2024-01-31"), {})

        days = [s.start.date() for s in slots]
        assert len(days) == len(set(days))
        assert all(s.duration_minutes() == 45 for s in slots)

    def test_zero_duration_rejected(self):
        with pytest.raises(ValueError):
            ConstraintFilter(0)


class TestAlignment:
    """Tests for grid alignment."""

    @pytest.mark.parametrize(
        "clock,expected",
        [("08:00", "08:00"), ("08:10", "08:30"), ("08:30", "08:30"), ("08:45", "09:00")],
    )
    def test_align_to_half_hour(self, clock, expected):
        dt = pendulum.parse(f"2024-01-08 {clock}", tz=TZ)

        assert align_to_interval(dt, 30) == pendulum.parse(f"2024-01-08 {expected}", tz=TZ)

    def test_seconds_round_up(self):
        dt = pendulum.datetime(2024, 1, 8, 8, 59, 30, tz=TZ)

        assert align_to_interval(dt, 15) == pendulum.datetime(2024, 1, 8, 9, 0, tz=TZ)


class TestResolveSearchStart:
    """Tests for rolling the search forward once today's window has started."""

    def test_today_when_window_still_ahead(self):
        now = pendulum.datetime(2024, 1, 8, 6, 0, tz=TZ)

        assert resolve_search_start(now, COFFEE_WINDOW, TZ) == pendulum.date(2024, 1, 8)

    def test_tomorrow_once_window_started(self):
        now = pendulum.datetime(2024, 1, 8, 11, 0, tz=TZ)

        assert resolve_search_start(now, LUNCH_WINDOW, TZ) == pendulum.date(2024, 1, 9)

    def test_friday_rolls_to_monday(self):
        now = pendulum.datetime(2024, 1, 12, 15, 0, tz=TZ)

        assert resolve_search_start(now, LUNCH_WINDOW, TZ) == pendulum.date(2024, 1, 15)

    def test_friday_rolls_to_saturday_when_weekends_allowed(self):
        now = pendulum.datetime(2024, 1, 12, 15, 0, tz=TZ)

        assert resolve_search_start(now, LUNCH_WINDOW, TZ, allow_weekends=True) == pendulum.date(2024, 1, 13)

    def test_uses_local_date_of_timezone(self):
        """23:00 UTC on Monday is still Monday afternoon in Los Angeles."""
        now = pendulum.datetime(2024, 1, 8, 23, 0, tz="UTC")

        assert resolve_search_start(now, TimeWindow.parse("17:30", "20:30"), TZ) == pendulum.date(2024, 1, 8)
