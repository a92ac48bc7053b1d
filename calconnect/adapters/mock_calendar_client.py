"""
Mock calendar client for demos and tests without Cal.com credentials.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence

import pendulum
from pendulum import DateTime

from ..config import UserProfile
from ..domain.models import TimeSlot, TimeWindow, weekday_index

logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = Path(__file__).parent / "mock_calendar_data.json"


class MockCalendarClient:
    """
    Mock client that simulates Cal.com busy-time responses.

    Events are loaded from a JSON list. Each entry belongs to a calendar
    (``calendarId``, matched against the user's Cal.com id or plain id) and is
    either a one-off event with ISO ``start``/``end`` or a weekly block with
    ``days`` plus ``startTime``/``endTime``.
    """

    def __init__(self, data_file: Path | None = None):
        self.data_file = data_file or DEFAULT_DATA_FILE
        self.calendar_events = self._load_calendar_data()

    def _load_calendar_data(self) -> List[Dict[str, Any]]:
        """Load mock calendar data from JSON file."""
        if not self.data_file.exists():
            logger.warning("Mock calendar data %s not found, every calendar is empty", self.data_file)
            return []

        with open(self.data_file, "r", encoding="utf-8") as f:
            return json.load(f)

    async def get_schedule(
        self,
        users: Sequence[UserProfile],
        start_time: DateTime,
        end_time: DateTime,
        timezone: str,
    ) -> Dict[str, List[TimeSlot]]:
        """
        Load busy times from the mock calendar data.

        Returns:
            Dictionary mapping user id -> list of busy TimeSlot objects
        """
        busy_times: Dict[str, List[TimeSlot]] = {}
        search_range = TimeSlot(start=start_time, end=end_time)

        for user in users:
            user_busy_times: List[TimeSlot] = []

            for event in self.calendar_events:
                if event.get("calendarId") != user.calendar_id():
                    continue

                try:
                    occurrences = self._expand_event(event, search_range, user.timezone or timezone)
                except (KeyError, ValueError) as e:
                    logger.warning("Skipping invalid mock event %r: %s", event, e)
                    continue

                user_busy_times.extend(o for o in occurrences if o.overlaps(search_range))

            busy_times[user.id] = sorted(user_busy_times, key=lambda s: s.start)

        return busy_times

    def _expand_event(self, event: Dict[str, Any], search_range: TimeSlot, timezone: str) -> List[TimeSlot]:
        if "days" not in event:
            return [
                TimeSlot(
                    start=pendulum.parse(event["start"], tz=timezone),
                    end=pendulum.parse(event["end"], tz=timezone),
                )
            ]

        weekdays = {weekday_index(day) for day in event["days"]}
        window = TimeWindow.parse(event["startTime"], event["endTime"])

        occurrences: List[TimeSlot] = []
        current = search_range.start.in_timezone(timezone).date()
        last = search_range.end.in_timezone(timezone).date()

        while current <= last:
            if current.day_of_week in weekdays:
                occurrences.append(window.on(current, timezone))
            current = current.add(days=1)

        return occurrences
