"""
Adapters layer - External integrations (Cal.com API, user store).
"""

from ..config import AppConfig
from .calcom_authenticator import CalcomAuthenticator
from .calcom_client import CalcomClient
from .mock_calendar_client import MockCalendarClient
from .user_directory import ConfigUserDirectory


def build_calendar_client(config: AppConfig, use_mock: bool = False) -> CalcomClient | MockCalendarClient:
    """Pick the calendar client the configuration asks for."""
    if use_mock or config.calendar_provider == "mock":
        return MockCalendarClient(data_file=config.mock_data_file)

    return CalcomClient(
        api_key=config.calcom.api_key,
        api_url=config.calcom.api_url,
        timeout=config.calcom.timeout_seconds,
    )


def build_authenticator(config: AppConfig) -> CalcomAuthenticator:
    return CalcomAuthenticator(
        client_id=config.calcom.client_id,
        client_secret=config.calcom.client_secret,
        token_url=config.calcom.oauth_token_url,
        timeout=config.calcom.timeout_seconds,
    )


__all__ = [
    "CalcomAuthenticator",
    "CalcomClient",
    "ConfigUserDirectory",
    "MockCalendarClient",
    "build_authenticator",
    "build_calendar_client",
]
