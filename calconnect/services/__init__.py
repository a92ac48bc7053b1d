"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability import AvailabilityService, CalendarClientProtocol, UserDirectoryProtocol

__all__ = ["AvailabilityService", "CalendarClientProtocol", "UserDirectoryProtocol"]
