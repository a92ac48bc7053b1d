"""
Turns a free-text request ("coffee next week in the morning, avoid friday")
into search constraints.
"""

import re
from typing import List, Optional, Sequence

from pendulum import DateTime

from .models import WEEKDAY_NAMES, EventType, SearchConstraints, TimeSlot, TimeWindow
from .templates import get_default_travel_buffer


DEFAULT_DURATION_MINUTES = 60

_BETWEEN_PATTERN = re.compile(r"between (\d{1,2}):?(\d{2})?\s*(?:-|and|to)\s*(\d{1,2}):?(\d{2})?")
_MINUTES_PATTERN = re.compile(r"\b(\d{1,3})\s*(?:m|min|mins|minutes?)\b")
_HOURS_PATTERN = re.compile(r"\b(\d+(?:\.\d+)?)\s*(?:h|hr|hrs|hours?)\b")

NEIGHBORHOODS = {
    "soma": "SOMA",
    "mission": "Mission",
    "financial district": "Financial District",
    "fidi": "Financial District",
}
IN_PERSON_KEYWORDS = ("in person", "meet up", "coffee", "lunch", "dinner")


def parse_prompt(prompt: str, now: DateTime) -> SearchConstraints:
    """
    Extract search constraints from a natural-language prompt.

    Args:
        prompt: Free text typed by the user
        now: Current time in the organizer's timezone, anchors relative dates

    Returns:
        SearchConstraints; unknown phrases are ignored
    """
    text = prompt.lower()
    constraints = SearchConstraints(duration_minutes=_parse_duration(text))

    for daypart in ("morning", "afternoon", "evening"):
        if daypart in text:
            constraints.preferred_time = daypart
            break

    if "avoid" in text:
        constraints.avoid_days = _parse_avoided_days(text)

    constraints.time_window = _parse_time_window(text)
    _apply_date_range(constraints, text, now)

    location = next((name for key, name in NEIGHBORHOODS.items() if key in text), None)
    if location or any(keyword in text for keyword in IN_PERSON_KEYWORDS):
        constraints.travel_buffer = get_default_travel_buffer(EventType.IN_PERSON)
        constraints.location = location

    return constraints


def _parse_duration(text: str) -> int:
    match = _MINUTES_PATTERN.search(text)
    if match and int(match.group(1)) > 0:
        return int(match.group(1))

    match = _HOURS_PATTERN.search(text)
    if match:
        minutes = int(float(match.group(1)) * 60)
        if minutes > 0:
            return minutes

    if "hour" in text:
        return 60

    return DEFAULT_DURATION_MINUTES


def _parse_avoided_days(text: str) -> List[int]:
    days: List[int] = []
    for index, name in enumerate(WEEKDAY_NAMES):
        if re.search(rf"\b{name[:3]}(?:{name[3:]})?s?\b", text):
            days.append(index)
    if "weekend" in text:
        days.extend(day for day in (5, 6) if day not in days)
    return sorted(days)


def _parse_time_window(text: str) -> Optional[TimeWindow]:
    match = _BETWEEN_PATTERN.search(text)
    if not match:
        return None

    start_hour, start_minute, end_hour, end_minute = match.groups()
    try:
        return TimeWindow.parse(
            f"{int(start_hour):02d}:{int(start_minute or 0):02d}",
            f"{int(end_hour):02d}:{int(end_minute or 0):02d}",
        )
    except ValueError:
        # "between 5-7" style ranges without a valid clock reading
        return None


def _apply_date_range(constraints: SearchConstraints, text: str, now: DateTime) -> None:
    if "next week" in text:
        start = now.start_of("day").add(days=7)
        constraints.start_date = start.date()
        constraints.end_date = start.add(days=7).date()

    if "this week" in text:
        constraints.start_date = now.date()
        constraints.end_date = now.end_of("week").date()

    if "tomorrow" in text:
        tomorrow = now.add(days=1).date()
        constraints.start_date = tomorrow
        constraints.end_date = tomorrow

    if "weekend" in text and "avoid" not in text:
        constraints.allow_weekends = True


def format_slot_label(slot: TimeSlot) -> str:
    """Label like ``Mon, Jan 8 11:30 AM - 12:30 PM``."""
    start = slot.start.format("ddd, MMM D h:mm A")
    end = slot.end.format("h:mm A")
    return f"{start} - {end}"


def build_response_message(slots: Sequence[TimeSlot], constraints: SearchConstraints) -> str:
    """Summarize what was searched for, in the words the user would use."""
    if not slots:
        return (
            "I couldn't find any available slots matching your criteria. "
            "Would you like to try different constraints?"
        )

    message = "I found these available times"

    if constraints.preferred_time:
        message += f" in the {constraints.preferred_time}"

    if constraints.time_window:
        window = constraints.time_window.to_dict()
        message += f" between {window['start']} and {window['end']}"

    if constraints.avoid_days:
        avoided = ", ".join(WEEKDAY_NAMES[day] for day in constraints.avoid_days)
        message += f" (avoiding {avoided})"

    if constraints.duration_minutes != DEFAULT_DURATION_MINUTES:
        message += f" for {constraints.duration_minutes} minutes"

    if constraints.location:
        message += f" near {constraints.location}"

    return message + ":"
