"""
Domain models for meeting slots, event templates and scheduling preferences.
"""

from dataclasses import dataclass, field
from datetime import time
from enum import Enum
from typing import Any, Dict, List, Optional

import pendulum
from pendulum import Date, DateTime


WEEKDAY_NAMES = [
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
]
WEEKEND_DAYS = (5, 6)  # Saturday, Sunday


def parse_clock_time(value: str) -> time:
    """Parse an ``HH:mm`` string into a ``datetime.time``."""
    try:
        hours, minutes = value.strip().split(":")
        return time(hour=int(hours), minute=int(minutes))
    except (AttributeError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid time '{value}', expected HH:mm") from exc


def weekday_index(name: str) -> int:
    """Map a weekday name (or its three letter prefix) to 0=Monday .. 6=Sunday."""
    key = name.strip().lower()
    for index, weekday in enumerate(WEEKDAY_NAMES):
        if key == weekday or key == weekday[:3]:
            return index
    raise ValueError(f"Unknown weekday: '{name}'")


def at_time(day: Date, clock: time, timezone: str) -> DateTime:
    """Combine a calendar day and a wall-clock time in the given timezone."""
    return pendulum.datetime(
        day.year,
        day.month,
        day.day,
        clock.hour,
        clock.minute,
        tz=timezone,
    )


@dataclass(frozen=True)
class TimeSlot:
    """
    An immutable time interval with timezone-aware start and end.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeSlot") -> bool:
        """Check if this slot overlaps with another."""
        return self.start < other.end and self.end > other.start

    def intersect(self, other: "TimeSlot") -> "TimeSlot | None":
        """
        Calculate the intersection of two slots.
        Returns None if there is no overlap.
        """
        if not self.overlaps(other):
            return None

        return TimeSlot(start=max(self.start, other.start), end=min(self.end, other.end))

    def in_timezone(self, timezone: str) -> "TimeSlot":
        return TimeSlot(start=self.start.in_timezone(timezone), end=self.end.in_timezone(timezone))

    def to_dict(self) -> Dict[str, str]:
        return {
            "start": self.start.to_iso8601_string(),
            "end": self.end.to_iso8601_string(),
        }

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, MM/DD/YYYY | HH:mm - HH:mm (N min)
        """
        weekday = WEEKDAY_NAMES[self.start.day_of_week].capitalize()
        date_str = self.start.format("MM/DD/YYYY")
        time_str = f"{self.start.format('HH:mm')} - {self.end.format('HH:mm')}"
        return f"{weekday}, {date_str} | {time_str} ({self.duration_minutes()} min)"

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class TimeWindow:
    """
    A wall-clock window within a day, e.g. 11:00-14:00.

    Invariant: start must be before end (windows never wrap midnight).
    """
    start: time
    end: time

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(
                f"Window start {self.start.strftime('%H:%M')} must be before "
                f"end {self.end.strftime('%H:%M')}"
            )

    @classmethod
    def parse(cls, start: str, end: str) -> "TimeWindow":
        return cls(start=parse_clock_time(start), end=parse_clock_time(end))

    @classmethod
    def from_range(cls, value: str) -> "TimeWindow":
        """Parse a ``HH:mm-HH:mm`` range."""
        try:
            start, end = value.split("-")
        except ValueError as exc:
            raise ValueError(f"Invalid time window '{value}', expected HH:mm-HH:mm") from exc
        return cls.parse(start, end)

    def on(self, day: Date, timezone: str) -> TimeSlot:
        """Materialize the window on a concrete day."""
        return TimeSlot(start=at_time(day, self.start, timezone), end=at_time(day, self.end, timezone))

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start.strftime("%H:%M"), "end": self.end.strftime("%H:%M")}

    def __str__(self) -> str:
        return f"{self.start.strftime('%H:%M')}-{self.end.strftime('%H:%M')}"


@dataclass(frozen=True)
class TravelBuffer:
    """Commute time reserved around an in-person meeting."""
    before_minutes: int = 0
    after_minutes: int = 0

    def __post_init__(self):
        if self.before_minutes < 0 or self.after_minutes < 0:
            raise ValueError("Travel buffer minutes must not be negative")

    @property
    def total_minutes(self) -> int:
        return self.before_minutes + self.after_minutes


class EventType(str, Enum):
    VIDEO = "video"
    IN_PERSON = "in-person"


class Intent(str, Enum):
    COFFEE = "coffee"
    LUNCH = "lunch"
    DINNER = "dinner"
    QUICK_CALL = "quick-call"


@dataclass(frozen=True)
class EventTemplate:
    """Static description of a bookable meeting kind."""
    id: str
    title: str
    duration: int  # minutes
    event_type: EventType
    intent: Intent
    description: str = ""
    preferred_time_window: Optional[TimeWindow] = None
    travel_buffer: Optional[TravelBuffer] = None
    allow_weekends: bool = False

    @property
    def is_in_person(self) -> bool:
        return self.event_type is EventType.IN_PERSON


@dataclass(frozen=True)
class DayHours:
    """Working hours for a single weekday."""
    enabled: bool
    start: time
    end: time


@dataclass
class WorkingHours:
    """
    Per-weekday working hours of a single user.

    ``days`` maps 0=Monday .. 6=Sunday to the hours of that day; a missing
    weekday is treated as a day off.
    """
    days: Dict[int, DayHours]
    timezone: str = "UTC"

    def is_working_day(self, dt: Date) -> bool:
        """Check if a given date falls on a working day."""
        hours = self.days.get(dt.day_of_week)
        return hours is not None and hours.enabled

    def get_working_hours_for_day(self, date: Date) -> TimeSlot | None:
        """
        Get the working hours slot for a specific day.
        Returns None if it's not a working day.
        """
        if not self.is_working_day(date):
            return None

        hours = self.days[date.day_of_week]
        day = date.date() if isinstance(date, DateTime) else date
        return TimeSlot(
            start=at_time(day, hours.start, self.timezone),
            end=at_time(day, hours.end, self.timezone),
        )

    def off_hours(self, start_date: Date, end_date: Date) -> List[TimeSlot]:
        """
        Everything outside working hours between two dates (inclusive),
        expressed as busy slots.
        """
        busy: List[TimeSlot] = []
        current = start_date

        while current <= end_date:
            day_start = at_time(current, time(0, 0), self.timezone)
            next_day_start = at_time(current.add(days=1), time(0, 0), self.timezone)
            hours = self.get_working_hours_for_day(current)

            if hours is None:
                busy.append(TimeSlot(start=day_start, end=next_day_start))
            else:
                if day_start < hours.start:
                    busy.append(TimeSlot(start=day_start, end=hours.start))
                if hours.end < next_day_start:
                    busy.append(TimeSlot(start=hours.end, end=next_day_start))

            current = current.add(days=1)

        return busy


@dataclass
class SearchConstraints:
    """Everything that narrows a mutual availability search."""
    duration_minutes: int = 60
    travel_buffer: Optional[TravelBuffer] = None
    time_window: Optional[TimeWindow] = None
    preferred_time: Optional[str] = None  # morning | afternoon | evening
    avoid_days: List[int] = field(default_factory=list)
    start_date: Optional[Date] = None
    end_date: Optional[Date] = None
    allow_weekends: bool = False
    respect_working_hours: bool = False
    location: Optional[str] = None

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise ValueError("duration_minutes must be greater than zero")


@dataclass(frozen=True)
class Suggestion:
    """A suggested meeting slot, optionally with a venue for in-person meetings."""
    slot: TimeSlot
    template_id: str
    location: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = self.slot.to_dict()
        if self.location is not None:
            payload["location"] = self.location
        return payload
