"""
Predefined event templates for quick scheduling.
"""

from typing import Optional, Tuple

from pendulum import DateTime

from .models import EventTemplate, EventType, Intent, TimeSlot, TimeWindow, TravelBuffer


DEFAULT_TRAVEL_BUFFER = TravelBuffer(before_minutes=30, after_minutes=30)

EVENT_TEMPLATES: Tuple[EventTemplate, ...] = (
    EventTemplate(
        id="quick-call-30",
        title="Video Call",
        duration=30,
        event_type=EventType.VIDEO,
        intent=Intent.QUICK_CALL,
        description="Quick video sync",
        preferred_time_window=TimeWindow.parse("09:00", "17:00"),
    ),
    EventTemplate(
        id="video-60",
        title="Video Call",
        duration=60,
        event_type=EventType.VIDEO,
        intent=Intent.QUICK_CALL,
        description="Extended video discussion",
        preferred_time_window=TimeWindow.parse("09:00", "17:00"),
    ),
    EventTemplate(
        id="coffee-30",
        title="Coffee Chat",
        duration=30,
        event_type=EventType.IN_PERSON,
        intent=Intent.COFFEE,
        description="Casual coffee meetup",
        preferred_time_window=TimeWindow.parse("07:30", "10:30"),
        travel_buffer=DEFAULT_TRAVEL_BUFFER,
    ),
    EventTemplate(
        id="lunch-60",
        title="Lunch",
        duration=60,
        event_type=EventType.IN_PERSON,
        intent=Intent.LUNCH,
        description="Lunch meeting",
        preferred_time_window=TimeWindow.parse("11:00", "14:00"),
        travel_buffer=DEFAULT_TRAVEL_BUFFER,
    ),
    EventTemplate(
        id="dinner-60",
        title="Dinner",
        duration=60,
        event_type=EventType.IN_PERSON,
        intent=Intent.DINNER,
        description="Dinner meeting",
        preferred_time_window=TimeWindow.parse("17:30", "20:30"),
        travel_buffer=DEFAULT_TRAVEL_BUFFER,
    ),
)


def get_event_template(template_id: str) -> Optional[EventTemplate]:
    for template in EVENT_TEMPLATES:
        if template.id == template_id:
            return template
    return None


def get_event_template_by_intent(intent: str) -> Optional[EventTemplate]:
    """Return the first template registered for an intent, if any."""
    for template in EVENT_TEMPLATES:
        if template.intent.value == intent:
            return template
    return None


def get_default_travel_buffer(event_type: EventType) -> Optional[TravelBuffer]:
    if event_type is EventType.IN_PERSON:
        return DEFAULT_TRAVEL_BUFFER
    return None


def calculate_total_duration(duration: int, travel_buffer: Optional[TravelBuffer] = None) -> int:
    """Duration of the meeting plus any travel time around it, in minutes."""
    if travel_buffer is None:
        return duration
    return duration + travel_buffer.total_minutes


def get_event_time_from_slot_with_buffer(
    slot_start: DateTime,
    duration: int,
    travel_buffer: Optional[TravelBuffer] = None,
) -> TimeSlot:
    """
    Get the actual meeting time from a slot that starts with the travel buffer.

    Example:
    Slot start: 11:00, buffer 30/30, duration 60
    Result: 11:30 - 12:30
    """
    event_start = slot_start.add(minutes=travel_buffer.before_minutes) if travel_buffer else slot_start
    return TimeSlot(start=event_start, end=event_start.add(minutes=duration))
