"""
Candidate window generation.

Produces the raw daypart windows a meeting could fall into, before any
calendar data is looked at.
"""

from typing import Dict, Iterable, List, Optional, Sequence

from pendulum import Date

from .models import WEEKEND_DAYS, TimeSlot, TimeWindow


DEFAULT_DAYPART = TimeWindow.parse("09:00", "17:00")

DAYPARTS: Dict[str, TimeWindow] = {
    "morning": TimeWindow.parse("08:00", "12:00"),
    "afternoon": TimeWindow.parse("12:00", "17:00"),
    "evening": TimeWindow.parse("17:00", "22:00"),
}


def resolve_daypart(preferred_time: Optional[str]) -> TimeWindow:
    """Window for a named daypart, falling back to regular business hours."""
    if preferred_time is None:
        return DEFAULT_DAYPART
    return DAYPARTS.get(preferred_time.lower(), DEFAULT_DAYPART)


class CandidateGenerator:
    """
    Enumerates fixed daypart windows for every eligible day of a date range.

    Output is ordered by start time and never overlaps: dayparts that touch or
    overlap are merged when the generator is built.
    """

    def __init__(self, dayparts: Sequence[TimeWindow], timezone: str):
        if not dayparts:
            raise ValueError("At least one daypart is required")
        self.dayparts = self._merge_dayparts(dayparts)
        self.timezone = timezone

    def generate(
        self,
        start_date: Date,
        end_date: Date,
        allow_weekends: bool = False,
        avoid_weekdays: Iterable[int] = (),
    ) -> List[TimeSlot]:
        """
        Build candidate windows between two calendar dates (inclusive).

        Args:
            start_date: First day to consider
            end_date: Last day to consider
            allow_weekends: Keep Saturdays and Sundays
            avoid_weekdays: Additional weekdays to skip (0=Monday, 6=Sunday)

        Returns:
            List of TimeSlot objects, empty if end_date is before start_date
        """
        excluded = set(avoid_weekdays)
        if not allow_weekends:
            excluded.update(WEEKEND_DAYS)

        candidates: List[TimeSlot] = []
        current = start_date

        while current <= end_date:
            if current.day_of_week not in excluded:
                candidates.extend(
                    daypart.on(current, self.timezone) for daypart in self.dayparts
                )
            current = current.add(days=1)

        return candidates

    @staticmethod
    def _merge_dayparts(dayparts: Sequence[TimeWindow]) -> List[TimeWindow]:
        """
        Merge overlapping or adjacent dayparts.

        Example: [09:00-10:30, 10:00-12:00, 14:00-16:00] -> [09:00-12:00, 14:00-16:00]
        """
        ordered = sorted(dayparts, key=lambda window: window.start)
        merged: List[TimeWindow] = [ordered[0]]

        for current in ordered[1:]:
            last = merged[-1]
            if current.start <= last.end:
                merged[-1] = TimeWindow(start=last.start, end=max(last.end, current.end))
            else:
                merged.append(current)

        return merged
