"""
Domain-specific exception hierarchy for calconnect.
"""


class CalConnectError(Exception):
    """Base class for all application-level errors."""


class InvalidRequestError(CalConnectError):
    """Raised when a request is missing a field or names something unknown."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class CalendarAPIError(CalConnectError):
    """Raised when calendar data cannot be fetched or parsed."""


class AuthenticationError(CalConnectError):
    """Raised when authentication or token handling fails."""
