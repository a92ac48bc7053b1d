"""
User-preferences store backed by the application config.
"""

from typing import List

from ..config import AppConfig, UserProfile


class ConfigUserDirectory:
    """
    Looks up users and their scheduling preferences in ``AppConfig.users``.

    Accepts either the user id or the email address as identifier.
    """

    def __init__(self, config: AppConfig):
        self.config = config

    def get_user(self, identifier: str) -> UserProfile | None:
        user = self.config.find_user(identifier)
        if user is None and "@" in identifier:
            user = self.config.find_user_by_email(identifier)
        return user

    def list_users(self) -> List[UserProfile]:
        return list(self.config.users)
