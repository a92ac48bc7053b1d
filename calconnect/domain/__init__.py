"""
Domain layer - Pure business logic without external dependencies.
"""

from .candidates import CandidateGenerator
from .constraint_filter import ConstraintFilter
from .models import (
    EventTemplate,
    EventType,
    Intent,
    SearchConstraints,
    Suggestion,
    TimeSlot,
    TimeWindow,
    TravelBuffer,
    WorkingHours,
)

__all__ = [
    "CandidateGenerator",
    "ConstraintFilter",
    "EventTemplate",
    "EventType",
    "Intent",
    "SearchConstraints",
    "Suggestion",
    "TimeSlot",
    "TimeWindow",
    "TravelBuffer",
    "WorkingHours",
]
