"""
Core business logic for narrowing candidate windows down to meeting slots.

Pure domain logic without any external dependencies (no API calls, no
database, no I/O).
"""

from typing import Dict, List, Optional, Sequence

from pendulum import Date, DateTime

from .models import WEEKEND_DAYS, TimeSlot, TimeWindow, TravelBuffer
from .templates import calculate_total_duration, get_event_time_from_slot_with_buffer


def align_to_interval(dt: DateTime, interval_minutes: int) -> DateTime:
    """Round a datetime up to the next multiple of ``interval_minutes`` past the hour."""
    remainder = dt.minute % interval_minutes
    if remainder == 0 and dt.second == 0 and dt.microsecond == 0:
        return dt
    return dt.set(second=0, microsecond=0).add(minutes=interval_minutes - remainder)


def resolve_search_start(
    now: DateTime,
    time_window: TimeWindow,
    timezone: str,
    allow_weekends: bool = False,
) -> Date:
    """
    First day worth searching.

    Today, unless today's window has already opened; then the next calendar
    day that is not a weekend.
    """
    local_now = now.in_timezone(timezone)
    today = local_now.date()

    if time_window.on(today, timezone).start > local_now:
        return today

    day = today.add(days=1)
    while not allow_weekends and day.day_of_week in WEEKEND_DAYS:
        day = day.add(days=1)
    return day


class ConstraintFilter:
    """
    Turns candidate windows into concrete meeting slots.

    Algorithm, per candidate window:
    1. Intersect with the preferred time window
    2. Drop whatever already lies in the past
    3. Subtract the busy times of every participant
    4. Fit the meeting plus travel buffers into the remaining free time,
       starting on the slot interval grid
    5. Keep the earliest fitting slot per day
    """

    def __init__(
        self,
        duration_minutes: int,
        travel_buffer: Optional[TravelBuffer] = None,
        time_window: Optional[TimeWindow] = None,
        slot_interval_minutes: int = 30,
    ):
        if duration_minutes <= 0:
            raise ValueError("duration_minutes must be greater than zero")
        self.duration_minutes = duration_minutes
        self.travel_buffer = travel_buffer
        self.time_window = time_window
        self.slot_interval_minutes = slot_interval_minutes

    def apply(
        self,
        candidates: Sequence[TimeSlot],
        busy_times: Dict[str, List[TimeSlot]],
        now: Optional[DateTime] = None,
    ) -> List[TimeSlot]:
        """
        Find the earliest valid meeting slot for each day.

        Args:
            candidates: Candidate windows in ascending order
            busy_times: Dict mapping participant id to their busy slots
            now: Current time; windows before it are ignored

        Returns:
            Meeting slots (exactly ``duration_minutes`` long), one per day at
            most, in ascending order. Empty if nothing fits.
        """
        busy = self._merge_adjacent_ranges(
            [slot for slots in busy_times.values() for slot in slots]
        )

        slots_by_day: Dict[Date, TimeSlot] = {}

        for candidate in sorted(candidates, key=lambda c: c.start):
            day = candidate.start.date()
            if day in slots_by_day:
                continue

            window = self._restrict_window(candidate, now)
            if window is None:
                continue

            overlapping_busy = [b for b in busy if window.overlaps(b)]
            free_ranges = (
                self._subtract_busy_from_block(window, overlapping_busy)
                if overlapping_busy
                else [window]
            )

            for free in free_ranges:
                slot = self._fit_meeting(free)
                if slot is not None:
                    slots_by_day[day] = slot
                    break

        return sorted(slots_by_day.values(), key=lambda s: s.start)

    def _restrict_window(self, candidate: TimeSlot, now: Optional[DateTime]) -> TimeSlot | None:
        window: TimeSlot | None = candidate

        if self.time_window is not None:
            tz = candidate.start.tzinfo
            window = candidate.intersect(self.time_window.on(candidate.start.date(), tz))
            if window is None:
                return None

        if now is not None:
            if window.end <= now:
                return None
            if window.start < now:
                window = TimeSlot(start=now.in_timezone(window.start.tzinfo), end=window.end)

        return window

    def _fit_meeting(self, free: TimeSlot) -> TimeSlot | None:
        """
        Place the meeting at the earliest grid-aligned start inside a free range.

        The travel buffers have to fit inside the free range as well, which
        shrinks the usable window by ``before + after`` minutes.
        """
        total = calculate_total_duration(self.duration_minutes, self.travel_buffer)
        slot_start = align_to_interval(free.start, self.slot_interval_minutes)

        if slot_start.add(minutes=total) > free.end:
            return None

        return get_event_time_from_slot_with_buffer(
            slot_start,
            self.duration_minutes,
            self.travel_buffer,
        )

    def _subtract_busy_from_block(
        self,
        block: TimeSlot,
        busy_ranges: List[TimeSlot]
    ) -> List[TimeSlot]:
        """
        Subtract busy times from a block, yielding free time ranges.

        Example:
        Block: 09:00 - 17:00
        Busy: [10:00-11:00, 14:00-15:00]
        Result: [09:00-10:00, 11:00-14:00, 15:00-17:00]
        """
        free_ranges: List[TimeSlot] = []
        current_start = block.start

        for busy in sorted(busy_ranges, key=lambda r: r.start):
            clipped_busy_start = max(busy.start, block.start)
            clipped_busy_end = min(busy.end, block.end)

            if current_start < clipped_busy_start:
                free_ranges.append(TimeSlot(start=current_start, end=clipped_busy_start))

            current_start = max(current_start, clipped_busy_end)

        if current_start < block.end:
            free_ranges.append(TimeSlot(start=current_start, end=block.end))

        return free_ranges

    def _merge_adjacent_ranges(self, ranges: List[TimeSlot]) -> List[TimeSlot]:
        """
        Merge overlapping or adjacent time ranges.

        Example: [09:00-10:00, 10:00-11:00] -> [09:00-11:00]
        """
        if not ranges:
            return []

        sorted_ranges = sorted(ranges, key=lambda r: r.start)
        merged: List[TimeSlot] = [sorted_ranges[0]]

        for current in sorted_ranges[1:]:
            last = merged[-1]

            if current.start <= last.end:
                merged[-1] = TimeSlot(start=last.start, end=max(last.end, current.end))
            else:
                merged.append(current)

        return merged
