"""
Application services for finding mutual meeting slots.

The service coordinates fetching busy times via a calendar client adapter and
delegates the actual availability calculation to the domain-level
``CandidateGenerator`` and ``ConstraintFilter``. Both collaborators are plain
protocols so the Cal.com adapter, the mock adapter or a test stub can be
plugged in.
"""

from __future__ import annotations

import logging
import random
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

import pendulum
from pendulum import Date, DateTime

from ..config import UserProfile
from ..domain.candidates import CandidateGenerator, resolve_daypart
from ..domain.constraint_filter import ConstraintFilter, resolve_search_start
from ..domain.exceptions import InvalidRequestError
from ..domain.locations import suggest_location
from ..domain.models import (
    EventTemplate,
    SearchConstraints,
    Suggestion,
    TimeSlot,
    TimeWindow,
    TravelBuffer,
)
from ..domain.prompt_parser import parse_prompt
from ..domain.templates import get_default_travel_buffer

logger = logging.getLogger(__name__)

PROMPT_RESULT_LIMIT = 3


class CalendarClientProtocol(Protocol):
    """Protocol describing the calendar client behaviour needed by the service."""

    async def get_schedule(
        self,
        users: Sequence[UserProfile],
        start_time: DateTime,
        end_time: DateTime,
        timezone: str,
    ) -> Dict[str, List[TimeSlot]]:
        """Return busy slots per user id."""


class UserDirectoryProtocol(Protocol):
    """Protocol describing the user-preferences store."""

    def get_user(self, identifier: str) -> UserProfile | None:
        """Return the user or None if unknown."""


class AvailabilityService:
    """
    Orchestrates busy-time retrieval and slot calculation for two users.
    """

    def __init__(
        self,
        calendar_client: CalendarClientProtocol,
        user_directory: UserDirectoryProtocol,
        *,
        default_timezone: str = "UTC",
        horizon_days: int = 14,
        slot_interval_minutes: int = 30,
        max_results: int = 10,
        clock: Callable[[str], DateTime] = pendulum.now,
    ) -> None:
        self._calendar_client = calendar_client
        self._user_directory = user_directory
        self.default_timezone = default_timezone
        self.horizon_days = horizon_days
        self.slot_interval_minutes = slot_interval_minutes
        self.max_results = max_results
        self._clock = clock

    async def suggest_slot(
        self,
        *,
        user1_id: str,
        user2_id: str,
        template: EventTemplate,
        duration_minutes: Optional[int] = None,
        travel_buffer: Optional[TravelBuffer] = None,
        time_window: Optional[TimeWindow] = None,
        allow_weekends: bool = False,
        rng: Optional[random.Random] = None,
    ) -> Suggestion | None:
        """
        Earliest slot both users can make for an event template.

        Overrides fall back to the template's own values. Travel buffers only
        apply to in-person templates; working hours only to the others.

        Returns:
            Suggestion (with a venue for in-person templates) or None
        """
        buffer = None
        if template.is_in_person:
            buffer = travel_buffer or template.travel_buffer or get_default_travel_buffer(template.event_type)

        constraints = SearchConstraints(
            duration_minutes=duration_minutes or template.duration,
            travel_buffer=buffer,
            time_window=time_window or template.preferred_time_window,
            allow_weekends=allow_weekends or template.allow_weekends,
            respect_working_hours=not template.is_in_person,
        )

        slots = await self.find_common_times(
            user1_id=user1_id,
            user2_id=user2_id,
            constraints=constraints,
            limit=1,
        )

        if not slots:
            logger.info("No slot found for template %s (%s, %s)", template.id, user1_id, user2_id)
            return None

        location = suggest_location(template.intent, rng) if template.is_in_person else None
        return Suggestion(slot=slots[0], template_id=template.id, location=location)

    async def find_common_times(
        self,
        *,
        user1_id: str,
        user2_id: str,
        constraints: SearchConstraints,
        limit: Optional[int] = None,
    ) -> List[TimeSlot]:
        """
        Retrieve busy data for both users and compute mutual slots.

        Returns:
            Up to ``limit`` (default: ``max_results``) slots, earliest first,
            at most one per day
        """
        users = [
            self._require_user(user1_id, "user1Id"),
            self._require_user(user2_id, "user2Id"),
        ]
        timezone = self.timezone_for(users[0])
        now = self._clock(timezone)

        window = constraints.time_window or resolve_daypart(constraints.preferred_time)
        start_date, end_date = self._search_range(constraints, window, now, timezone)

        if end_date < start_date:
            return []

        busy_times = await self.fetch_busy_times(
            users=users,
            start_date=start_date,
            end_date=end_date,
            timezone=timezone,
        )

        if constraints.respect_working_hours:
            busy_times = self._add_off_hours(users, busy_times, start_date, end_date)

        slots = self.calculate_slots(
            start_date=start_date,
            end_date=end_date,
            busy_times=busy_times,
            constraints=constraints,
            time_window=window,
            timezone=timezone,
            now=now,
        )

        result = slots[: limit or self.max_results]
        logger.info(
            "Found %d mutual slot(s) for %s and %s between %s and %s",
            len(result),
            user1_id,
            user2_id,
            start_date,
            end_date,
        )
        return result

    async def find_times_for_prompt(
        self,
        *,
        user1_id: str,
        user2_id: str,
        prompt: str,
    ) -> Tuple[SearchConstraints, List[TimeSlot]]:
        """Parse a free-text request and return the top matching slots."""
        organizer = self._require_user(user1_id, "user1Id")
        constraints = parse_prompt(prompt, self._clock(self.timezone_for(organizer)))

        slots = await self.find_common_times(
            user1_id=user1_id,
            user2_id=user2_id,
            constraints=constraints,
            limit=PROMPT_RESULT_LIMIT,
        )
        return constraints, slots

    async def fetch_busy_times(
        self,
        *,
        users: Sequence[UserProfile],
        start_date: Date,
        end_date: Date,
        timezone: str,
    ) -> Dict[str, List[TimeSlot]]:
        """Fetch busy times for the requested users over whole days."""
        start_time = pendulum.datetime(start_date.year, start_date.month, start_date.day, tz=timezone)
        end_time = pendulum.datetime(end_date.year, end_date.month, end_date.day, tz=timezone).add(days=1)

        busy_times = await self._calendar_client.get_schedule(
            users=list(users),
            start_time=start_time,
            end_time=end_time,
            timezone=timezone,
        )

        return self._ensure_busy_time_entries([user.id for user in users], busy_times)

    def calculate_slots(
        self,
        *,
        start_date: Date,
        end_date: Date,
        busy_times: Dict[str, List[TimeSlot]],
        constraints: SearchConstraints,
        time_window: TimeWindow,
        timezone: str,
        now: Optional[DateTime] = None,
    ) -> List[TimeSlot]:
        """Calculate mutual slots from busy data."""
        candidates = CandidateGenerator([time_window], timezone).generate(
            start_date,
            end_date,
            allow_weekends=constraints.allow_weekends,
            avoid_weekdays=constraints.avoid_days,
        )

        slot_filter = ConstraintFilter(
            duration_minutes=constraints.duration_minutes,
            travel_buffer=constraints.travel_buffer,
            time_window=time_window,
            slot_interval_minutes=self.slot_interval_minutes,
        )
        return slot_filter.apply(candidates, busy_times, now=now)

    def timezone_for(self, user: UserProfile) -> str:
        return user.timezone or self.default_timezone

    def user_timezone(self, user_id: str) -> str:
        """Timezone results for ``user_id`` (as organizer) are expressed in."""
        return self.timezone_for(self._require_user(user_id, "user1Id"))

    def _search_range(
        self,
        constraints: SearchConstraints,
        window: TimeWindow,
        now: DateTime,
        timezone: str,
    ) -> Tuple[Date, Date]:
        today = now.in_timezone(timezone).date()
        earliest = resolve_search_start(now, window, timezone, constraints.allow_weekends)

        start_date = constraints.start_date or today
        if start_date < earliest:
            start_date = earliest

        end_date = constraints.end_date or today.add(days=self.horizon_days)
        return start_date, end_date

    def _add_off_hours(
        self,
        users: Sequence[UserProfile],
        busy_times: Dict[str, List[TimeSlot]],
        start_date: Date,
        end_date: Date,
    ) -> Dict[str, List[TimeSlot]]:
        """
        Treat time outside each user's working hours as busy.

        One day of margin on both sides covers users in other timezones.
        """
        combined = dict(busy_times)
        for user in users:
            working_hours = user.get_working_hours(self.default_timezone)
            off_hours = working_hours.off_hours(start_date.subtract(days=1), end_date.add(days=1))
            combined[user.id] = list(combined.get(user.id, [])) + off_hours
        return combined

    def _require_user(self, identifier: str, field: str) -> UserProfile:
        if not identifier:
            raise InvalidRequestError(f"Missing required parameter: {field}", field=field)

        user = self._user_directory.get_user(identifier)
        if user is None:
            raise InvalidRequestError(f"Unknown user for {field}: {identifier}", field=field)
        return user

    @staticmethod
    def _ensure_busy_time_entries(
        participants: Sequence[str],
        busy_times: Dict[str, List[TimeSlot]],
    ) -> Dict[str, List[TimeSlot]]:
        """
        Ensure every requested participant appears in the busy-time map.

        Some API responses might omit users if no events exist; we normalise
        that to an explicit empty list for deterministic downstream behaviour.
        """
        normalized: Dict[str, List[TimeSlot]] = {}

        for participant in participants:
            normalized[participant] = busy_times.get(participant, [])

        for participant, ranges in busy_times.items():
            if participant not in normalized:
                normalized[participant] = ranges

        return normalized
