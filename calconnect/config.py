"""
Configuration management using Pydantic models loaded from YAML.

Secrets (Cal.com API key and OAuth client secret) are read from the
environment, optionally via a ``.env`` file.
"""

import os
from pathlib import Path
from typing import Dict, List, Literal

import pendulum
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import WEEKDAY_NAMES, DayHours, WorkingHours, parse_clock_time, weekday_index

load_dotenv()

CONFIG_PATH_ENV = "CALCONNECT_CONFIG"


def _validate_timezone(value: str) -> str:
    try:
        pendulum.timezone(value)
    except Exception as exc:
        raise ValueError(f"Unknown timezone: {value}") from exc
    return value


class DayHoursConfig(BaseModel):
    """Working hours of one weekday."""
    enabled: bool = True
    start: str = "09:00"
    end: str = "17:00"

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, value: str) -> str:
        """Ensure the value is a valid HH:mm time."""
        parse_clock_time(value)
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "DayHoursConfig":
        if self.enabled and parse_clock_time(self.end) <= parse_clock_time(self.start):
            raise ValueError("end must be later than start")
        return self

    def to_domain(self) -> DayHours:
        return DayHours(
            enabled=self.enabled,
            start=parse_clock_time(self.start),
            end=parse_clock_time(self.end),
        )


def default_working_hours() -> Dict[str, DayHoursConfig]:
    """Monday to Friday, 09:00 - 17:00."""
    return {
        name: DayHoursConfig(enabled=index < 5)
        for index, name in enumerate(WEEKDAY_NAMES)
    }


class UserProfile(BaseModel):
    """A user of the scheduler together with their scheduling preferences."""
    id: str
    name: str
    email: str = ""
    timezone: str | None = None
    calcom_user_id: str = ""  # Optional: falls back to id
    working_hours: Dict[str, DayHoursConfig] = Field(default_factory=default_working_hours)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return _validate_timezone(value)

    @field_validator("working_hours")
    @classmethod
    def validate_weekdays(cls, value: Dict[str, DayHoursConfig]) -> Dict[str, DayHoursConfig]:
        """Normalize weekday keys to full lowercase names."""
        normalized: Dict[str, DayHoursConfig] = {}
        for day, hours in value.items():
            normalized[WEEKDAY_NAMES[weekday_index(day)]] = hours
        return normalized

    def display_name(self) -> str:
        return self.name

    def calendar_id(self) -> str:
        """Identifier of this user at the calendar provider."""
        return self.calcom_user_id or self.id

    def get_working_hours(self, default_timezone: str) -> WorkingHours:
        """Convert the configured hours into the domain model."""
        days = {
            weekday_index(day): hours.to_domain()
            for day, hours in self.working_hours.items()
        }
        return WorkingHours(days=days, timezone=self.timezone or default_timezone)


class CalcomConfig(BaseModel):
    """Cal.com connection settings."""
    api_url: str = "https://api.cal.com/v1"
    oauth_token_url: str = "https://api.cal.com/v2/oauth/token"
    client_id: str = Field(default_factory=lambda: os.getenv("CAL_OAUTH_CLIENT_ID", ""))
    api_key: str = Field(default_factory=lambda: os.getenv("CALCOM_API_KEY", ""))
    client_secret: str = Field(default_factory=lambda: os.getenv("CALCOM_CLIENT_SECRET", ""))
    timeout_seconds: int = 30


class SearchConfig(BaseModel):
    """Defaults for availability searches."""
    horizon_days: int = 14
    slot_interval_minutes: int = 30
    max_results: int = 10

    @field_validator("horizon_days", "max_results")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("slot_interval_minutes")
    @classmethod
    def validate_interval(cls, value: int) -> int:
        """Slots are aligned within the hour, so the interval must divide 60."""
        if value <= 0 or 60 % value != 0:
            raise ValueError(f"slot_interval_minutes must divide 60, got {value}")
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "America/Los_Angeles"
    calendar_provider: Literal["calcom", "mock"] = "calcom"
    mock_data_file: Path | None = None
    log_level: str = "INFO"
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    calcom: CalcomConfig = Field(default_factory=CalcomConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    users: List[UserProfile] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        return _validate_timezone(value)

    @field_validator("users")
    @classmethod
    def validate_users(cls, value: List[UserProfile]) -> List[UserProfile]:
        """Ensure user ids and emails are unique."""
        seen_ids: set[str] = set()
        seen_emails: set[str] = set()
        for user in value:
            email_key = user.email.lower()
            if user.id in seen_ids:
                raise ValueError(f"Duplicate user id detected: {user.id}")
            if email_key and email_key in seen_emails:
                raise ValueError(f"Duplicate user email detected: {user.email}")
            seen_ids.add(user.id)
            if email_key:
                seen_emails.add(email_key)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)

    def find_user(self, user_id: str) -> UserProfile | None:
        for user in self.users:
            if user.id == user_id:
                return user
        return None

    def find_user_by_email(self, email: str) -> UserProfile | None:
        for user in self.users:
            if user.email and user.email.lower() == email.lower():
                return user
        return None


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    override = os.getenv(CONFIG_PATH_ENV)
    if override:
        return Path(override)

    config_path = Path.cwd() / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
