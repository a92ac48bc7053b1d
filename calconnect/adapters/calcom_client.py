"""
Cal.com API client for fetching busy times.
"""

import asyncio
import logging
from typing import Any, Dict, List, Sequence

import pendulum
import requests
from pendulum import DateTime

from ..config import UserProfile
from ..domain.exceptions import CalendarAPIError
from ..domain.models import TimeSlot

logger = logging.getLogger(__name__)


class CalcomClient:
    """
    Client for Cal.com calendar operations.

    Uses the ``/busy`` endpoint to fetch busy intervals of a single user.
    Schedules of several users are fetched in parallel.
    """

    DEFAULT_API_URL = "https://api.cal.com/v1"

    def __init__(self, api_key: str, api_url: str = DEFAULT_API_URL, timeout: int = 30):
        """
        Initialize the Cal.com client.

        Args:
            api_key: Cal.com API key (platform key for managed users)
            api_url: Base URL of the Cal.com API
            timeout: Per-request timeout in seconds
        """
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json"
        }

    async def get_schedule(
        self,
        users: Sequence[UserProfile],
        start_time: DateTime,
        end_time: DateTime,
        timezone: str,
    ) -> Dict[str, List[TimeSlot]]:
        """
        Get busy times for several users at once.

        Every user is fetched in its own worker thread; the first failure
        fails the whole call.

        Returns:
            Dictionary mapping user id -> list of busy TimeSlot objects

        Raises:
            CalendarAPIError: If any of the API calls fails
        """
        results = await asyncio.gather(
            *(
                asyncio.to_thread(self.get_busy_times, user, start_time, end_time, timezone)
                for user in users
            )
        )
        return {user.id: busy for user, busy in zip(users, results)}

    def get_busy_times(
        self,
        user: UserProfile,
        start_time: DateTime,
        end_time: DateTime,
        timezone: str,
    ) -> List[TimeSlot]:
        """
        Get busy intervals of one user.

        Args:
            user: User whose calendar is queried
            start_time: Start of the time window
            end_time: End of the time window
            timezone: IANA timezone identifier

        Returns:
            List of busy TimeSlot objects

        Raises:
            CalendarAPIError: If the API call fails
        """
        url = f"{self.api_url}/busy"
        params = {
            "userId": user.calendar_id(),
            "dateFrom": start_time.to_iso8601_string(),
            "dateTo": end_time.to_iso8601_string(),
            "timeZone": timezone,
        }

        try:
            response = requests.get(url, headers=self.headers, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()

        except requests.exceptions.RequestException as e:
            raise CalendarAPIError(f"Failed to fetch busy times for {user.id} from Cal.com: {e}") from e

        return self._parse_busy_response(data, timezone)

    def _parse_busy_response(self, response_data: Any, timezone: str) -> List[TimeSlot]:
        """
        Parse the busy-times response into our domain model.

        Response format:
        {
            "busy": [
                {"start": "2024-01-15T09:00:00Z", "end": "2024-01-15T09:30:00Z", "title": "..."}
            ]
        }

        Some API versions wrap the list as ``{"status": "success", "data": [...]}``.
        """
        if not isinstance(response_data, dict):
            raise CalendarAPIError("Unexpected busy-times payload from Cal.com")

        items = response_data.get("busy")
        if items is None:
            items = response_data.get("data", [])

        if not isinstance(items, list):
            raise CalendarAPIError("Unexpected busy-times payload from Cal.com")

        busy_ranges: List[TimeSlot] = []

        for item in items:
            try:
                start = self._parse_datetime(item["start"], timezone)
                end = self._parse_datetime(item["end"], timezone)
                busy_ranges.append(TimeSlot(start=start, end=end))

            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Could not parse busy item %r: %s", item, e)
                continue

        return busy_ranges

    def _parse_datetime(self, datetime_str: str, timezone: str) -> DateTime:
        """
        Parse an ISO 8601 string to a pendulum DateTime in the given timezone.
        """
        dt = pendulum.parse(datetime_str)

        if isinstance(dt, DateTime):
            return dt.in_timezone(timezone)

        raise ValueError(f"Could not parse datetime: {datetime_str}")

    def test_connection(self) -> Dict[str, Any]:
        """
        Test the connection and API key by fetching the authenticated profile.

        Raises:
            CalendarAPIError: If connection test fails
        """
        url = f"{self.api_url}/me"

        try:
            response = requests.get(url, headers=self.headers, timeout=10)
            response.raise_for_status()
            return response.json()

        except requests.exceptions.RequestException as e:
            raise CalendarAPIError(f"Connection test failed: {e}") from e
