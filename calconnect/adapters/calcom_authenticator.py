"""
Cal.com OAuth token handling.
"""

import logging
from typing import Any, Dict

import requests

from ..domain.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class CalcomAuthenticator:
    """
    Exchanges Cal.com refresh tokens for fresh access tokens.

    The initial authorization (redirect + code exchange) happens in the
    provider's own flow; this class only keeps already linked accounts alive.
    """

    TOKEN_URL = "https://api.cal.com/v2/oauth/token"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str = TOKEN_URL,
        timeout: int = 30,
    ):
        """
        Initialize the authenticator.

        Args:
            client_id: Cal.com OAuth client ID
            client_secret: Cal.com OAuth client secret
            token_url: Token endpoint
            timeout: Request timeout in seconds
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.timeout = timeout

    def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        """
        Get a new access token for a linked account.

        Args:
            refresh_token: Refresh token issued with the previous access token

        Returns:
            Dict with ``access_token``, ``refresh_token`` and ``expires_in``

        Raises:
            AuthenticationError: If Cal.com rejects the refresh
        """
        if not self.client_id or not self.client_secret:
            raise AuthenticationError("Cal.com OAuth client credentials are not configured")

        payload = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }

        try:
            response = requests.post(self.token_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            token_data = response.json()

        except requests.exceptions.RequestException as e:
            raise AuthenticationError(f"Token refresh failed: {e}") from e

        if "access_token" not in token_data:
            error = token_data.get("error_description", "Unknown error")
            raise AuthenticationError(f"Token refresh failed: {error}")

        logger.info("Refreshed Cal.com access token")

        return {
            "access_token": token_data["access_token"],
            "refresh_token": token_data.get("refresh_token", refresh_token),
            "expires_in": token_data.get("expires_in"),
        }
