"""
Shared fixtures: a small two-person config, a fixed clock and a stub calendar.
"""

from typing import Dict, List

import pendulum
import pytest

from calconnect.config import AppConfig, DayHoursConfig, UserProfile
from calconnect.domain.models import TimeSlot

TZ = "America/Los_Angeles"


def slot(start: str, end: str, tz: str = TZ) -> TimeSlot:
    return TimeSlot(start=pendulum.parse(start, tz=tz), end=pendulum.parse(end, tz=tz))


class StubCalendarClient:
    """Minimal stub matching CalendarClientProtocol."""

    def __init__(self, schedule: Dict[str, List[TimeSlot]] | None = None, error: Exception | None = None):
        self._schedule = schedule or {}
        self._error = error
        self.calls: List[Dict[str, object]] = []

    async def get_schedule(self, users, start_time, end_time, timezone):
        self.calls.append(
            {
                "users": tuple(user.id for user in users),
                "start": start_time,
                "end": end_time,
                "timezone": timezone,
            }
        )
        if self._error is not None:
            raise self._error
        return self._schedule


@pytest.fixture
def app_config() -> AppConfig:
    """Alice keeps the default 09-17 week, Bob starts at 10:00."""
    late_start = {
        day: DayHoursConfig(start="10:00", end="17:00")
        for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
    }
    return AppConfig(
        timezone=TZ,
        users=[
            UserProfile(id="alice", name="Alice", email="alice@example.com"),
            UserProfile(id="bob", name="Bob", email="bob@example.com", timezone=TZ, working_hours=late_start),
        ],
    )


@pytest.fixture
def monday_morning():
    """Clock frozen at Monday 2024-01-08 06:00 Los Angeles time."""
    now = pendulum.datetime(2024, 1, 8, 6, 0, tz=TZ)
    return lambda tz: now.in_timezone(tz)
