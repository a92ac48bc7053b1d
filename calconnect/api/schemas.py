"""
Request and response models of the HTTP API.

Field names follow the JSON the web client sends (camelCase); Python code
uses the snake_case attribute names.
"""

from datetime import date
from typing import List, Optional

import pendulum
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..domain.models import (
    SearchConstraints,
    TimeWindow,
    TravelBuffer,
    parse_clock_time,
    weekday_index,
)


class RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class TimeWindowModel(RequestModel):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, value: str) -> str:
        parse_clock_time(value)
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "TimeWindowModel":
        self.to_domain()
        return self

    def to_domain(self) -> TimeWindow:
        return TimeWindow.parse(self.start, self.end)


class TravelBufferModel(RequestModel):
    before: int = Field(default=0, ge=0)
    after: int = Field(default=0, ge=0)

    def to_domain(self) -> TravelBuffer:
        return TravelBuffer(before_minutes=self.before, after_minutes=self.after)


class SuggestionRequest(RequestModel):
    """Body of ``POST /api/availability/suggestions``."""
    user1_id: str = Field(alias="user1Id", min_length=1)
    user2_id: str = Field(alias="user2Id", min_length=1)
    intent: str = Field(min_length=1)
    duration: Optional[int] = Field(default=None, gt=0)
    buffer_before: Optional[int] = Field(default=None, alias="bufferBefore", ge=0)
    buffer_after: Optional[int] = Field(default=None, alias="bufferAfter", ge=0)
    time_window: Optional[TimeWindowModel] = Field(default=None, alias="timeWindow")
    allow_weekends: bool = Field(default=False, alias="allowWeekends")


class SuggestedTimesRequest(RequestModel):
    """Body of ``POST /api/suggested-times``; either intent or template id."""
    user1_id: str = Field(alias="user1Id", min_length=1)
    user2_id: str = Field(alias="user2Id", min_length=1)
    intent: Optional[str] = None
    event_template_id: Optional[str] = Field(default=None, alias="eventTemplateId")
    custom_time_window: Optional[TimeWindowModel] = Field(default=None, alias="customTimeWindow")


class ConstraintsModel(RequestModel):
    start_date: Optional[date] = Field(default=None, alias="startDate")
    end_date: Optional[date] = Field(default=None, alias="endDate")
    duration: int = Field(default=60, gt=0)
    travel_buffer: Optional[TravelBufferModel] = Field(default=None, alias="travelBuffer")
    time_window: Optional[TimeWindowModel] = Field(default=None, alias="timeWindow")
    avoid_days: List[str] = Field(default_factory=list, alias="avoidDays")
    preferred_time: Optional[str] = Field(default=None, alias="preferredTime")
    allow_weekends: bool = Field(default=False, alias="allowWeekends")

    @field_validator("avoid_days")
    @classmethod
    def validate_avoid_days(cls, value: List[str]) -> List[str]:
        for day in value:
            weekday_index(day)
        return value

    def to_domain(self) -> SearchConstraints:
        travel_buffer = self.travel_buffer.to_domain() if self.travel_buffer else None
        return SearchConstraints(
            duration_minutes=self.duration,
            travel_buffer=travel_buffer,
            time_window=self.time_window.to_domain() if self.time_window else None,
            preferred_time=self.preferred_time,
            avoid_days=sorted({weekday_index(day) for day in self.avoid_days}),
            start_date=_to_pendulum_date(self.start_date),
            end_date=_to_pendulum_date(self.end_date),
            allow_weekends=self.allow_weekends,
            respect_working_hours=travel_buffer is None,
        )


class FindCommonTimesRequest(RequestModel):
    """Body of ``POST /api/find-common-times``."""
    user1_id: str = Field(alias="user1Id", min_length=1)
    user2_id: str = Field(alias="user2Id", min_length=1)
    constraints: ConstraintsModel = Field(default_factory=ConstraintsModel)


class CustomTimesRequest(RequestModel):
    """Body of ``POST /api/custom-ai-times``."""
    user1_id: str = Field(alias="user1Id", min_length=1)
    user2_id: str = Field(alias="user2Id", min_length=1)
    prompt: str = Field(min_length=1)


class RefreshTokenRequest(RequestModel):
    refresh_token: str = Field(alias="refreshToken", min_length=1)


def _to_pendulum_date(value: Optional[date]) -> Optional[pendulum.Date]:
    if value is None:
        return None
    return pendulum.date(value.year, value.month, value.day)
