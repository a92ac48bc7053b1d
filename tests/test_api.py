"""
Tests for the HTTP API.
"""

import random

import pendulum
import pytest
from fastapi.testclient import TestClient

from calconnect.api.app import create_app
from calconnect.api.routes import _template_for_request
from calconnect.api.schemas import SuggestedTimesRequest
from calconnect.domain.exceptions import AuthenticationError, CalendarAPIError, InvalidRequestError
from calconnect.domain.locations import LOCATIONS
from calconnect.domain.models import Intent

from conftest import TZ, StubCalendarClient, slot


class StubAuthenticator:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.tokens = []

    def refresh_access_token(self, refresh_token):
        self.tokens.append(refresh_token)
        if self.error is not None:
            raise self.error
        return {"access_token": "new-access", "refresh_token": refresh_token, "expires_in": 1800}


@pytest.fixture
def make_client(app_config, monday_morning):
    def factory(schedule=None, calendar_error=None, auth_error=None):
        app = create_app(
            app_config,
            calendar_client=StubCalendarClient(schedule, error=calendar_error),
            authenticator=StubAuthenticator(auth_error),
            clock=monday_morning,
            rng=random.Random(7),
        )
        return TestClient(app)

    return factory


def _start(payload):
    return pendulum.parse(payload["start"])


class TestAvailabilitySuggestions:
    """Tests for POST /api/availability/suggestions."""

    def test_coffee_suggestion_with_location(self, make_client):
        response = make_client().post(
            "/api/availability/suggestions",
            json={"user1Id": "alice", "user2Id": "bob", "intent": "coffee", "duration": 30},
        )

        assert response.status_code == 200
        suggestion = response.json()["slot"]
        assert _start(suggestion) == pendulum.datetime(2024, 1, 8, 8, 0, tz=TZ)
        assert pendulum.parse(suggestion["end"]) == pendulum.datetime(2024, 1, 8, 8, 30, tz=TZ)
        assert suggestion["location"] in LOCATIONS[Intent.COFFEE]

    def test_call_has_no_location(self, make_client):
        response = make_client().post(
            "/api/availability/suggestions",
            json={"user1Id": "alice", "user2Id": "bob", "intent": "quick-call"},
        )

        suggestion = response.json()["slot"]
        assert _start(suggestion) == pendulum.datetime(2024, 1, 8, 10, 0, tz=TZ)
        assert "location" not in suggestion

    def test_explicit_buffers_and_window(self, make_client):
        response = make_client().post(
            "/api/availability/suggestions",
            json={
                "user1Id": "alice",
                "user2Id": "bob",
                "intent": "coffee",
                "bufferBefore": 0,
                "bufferAfter": 0,
                "timeWindow": {"start": "08:00", "end": "09:00"},
            },
        )

        assert _start(response.json()["slot"]) == pendulum.datetime(2024, 1, 8, 8, 0, tz=TZ)

    def test_no_common_time(self, make_client):
        schedule = {"alice": [slot("2024-01-01 00:00", "2024-02-01 00:00")]}

        response = make_client(schedule).post(
            "/api/availability/suggestions",
            json={"user1Id": "alice", "user2Id": "bob", "intent": "lunch"},
        )

        assert response.status_code == 200
        assert response.json() == {"slot": None}

    def test_missing_user(self, make_client):
        response = make_client().post(
            "/api/availability/suggestions",
            json={"user2Id": "bob", "intent": "coffee"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required field: user1Id"}

    def test_blank_user(self, make_client):
        response = make_client().post(
            "/api/availability/suggestions",
            json={"user1Id": "alice", "user2Id": "  ", "intent": "coffee"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required field: user2Id"}

    def test_unknown_user(self, make_client):
        response = make_client().post(
            "/api/availability/suggestions",
            json={"user1Id": "alice", "user2Id": "mallory", "intent": "coffee"},
        )

        assert response.status_code == 400
        assert "mallory" in response.json()["error"]

    def test_unknown_intent(self, make_client):
        response = make_client().post(
            "/api/availability/suggestions",
            json={"user1Id": "alice", "user2Id": "bob", "intent": "brunch"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Unknown intent: brunch"}

    def test_invalid_duration(self, make_client):
        response = make_client().post(
            "/api/availability/suggestions",
            json={"user1Id": "alice", "user2Id": "bob", "intent": "coffee", "duration": 0},
        )

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid value for duration")

    def test_reversed_time_window(self, make_client):
        response = make_client().post(
            "/api/availability/suggestions",
            json={
                "user1Id": "alice",
                "user2Id": "bob",
                "intent": "lunch",
                "timeWindow": {"start": "14:00", "end": "11:00"},
            },
        )

        assert response.status_code == 400
        assert "timeWindow" in response.json()["error"]

    def test_calendar_failure_is_generic_500(self, make_client):
        response = make_client(calendar_error=CalendarAPIError("token expired for user 1001")).post(
            "/api/availability/suggestions",
            json={"user1Id": "alice", "user2Id": "bob", "intent": "coffee"},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch calendar availability"}


class TestSuggestedTimes:
    """Tests for POST /api/suggested-times."""

    def test_by_template_id(self, make_client):
        response = make_client().post(
            "/api/suggested-times",
            json={"user1Id": "alice", "user2Id": "bob", "eventTemplateId": "lunch-60"},
        )

        suggestion = response.json()["slot"]
        assert _start(suggestion) == pendulum.datetime(2024, 1, 8, 11, 30, tz=TZ)
        assert suggestion["location"] in LOCATIONS[Intent.LUNCH]

    def test_by_intent_with_custom_window(self, make_client):
        response = make_client().post(
            "/api/suggested-times",
            json={
                "user1Id": "alice",
                "user2Id": "bob",
                "intent": "dinner",
                "customTimeWindow": {"start": "19:00", "end": "22:00"},
            },
        )

        assert _start(response.json()["slot"]) == pendulum.datetime(2024, 1, 8, 19, 30, tz=TZ)

    def test_missing_template_and_intent(self, make_client):
        response = make_client().post("/api/suggested-times", json={"user1Id": "alice", "user2Id": "bob"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid event template or intent"}

    def test_unknown_intent_names_intent_field(self, make_client):
        response = make_client().post(
            "/api/suggested-times",
            json={"user1Id": "alice", "user2Id": "bob", "intent": "brunch"},
        )
        assert response.status_code == 400

        body = SuggestedTimesRequest(user1_id="alice", user2_id="bob", intent="brunch")
        with pytest.raises(InvalidRequestError) as excinfo:
            _template_for_request(body)

        assert excinfo.value.field == "intent"

    def test_unknown_template_id_names_template_field(self):
        body = SuggestedTimesRequest(user1_id="alice", user2_id="bob", event_template_id="brunch-90")

        with pytest.raises(InvalidRequestError) as excinfo:
            _template_for_request(body)

        assert excinfo.value.field == "eventTemplateId"


class TestFindCommonTimes:
    """Tests for POST /api/find-common-times."""

    def test_slots_in_range(self, make_client):
        response = make_client().post(
            "/api/find-common-times",
            json={
                "user1Id": "alice",
                "user2Id": "bob",
                "constraints": {"startDate": "2024-01-09", "endDate": "2024-01-10", "duration": 60},
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["timezone"] == TZ
        assert [_start(s) for s in body["slots"]] == [
            pendulum.datetime(2024, 1, 9, 10, 0, tz=TZ),
            pendulum.datetime(2024, 1, 10, 10, 0, tz=TZ),
        ]

    def test_travel_buffer_skips_working_hours(self, make_client):
        response = make_client().post(
            "/api/find-common-times",
            json={
                "user1Id": "alice",
                "user2Id": "bob",
                "constraints": {
                    "startDate": "2024-01-09",
                    "endDate": "2024-01-09",
                    "duration": 30,
                    "travelBuffer": {"before": 15, "after": 15},
                    "preferredTime": "morning",
                },
            },
        )

        assert [_start(s) for s in response.json()["slots"]] == [pendulum.datetime(2024, 1, 9, 8, 15, tz=TZ)]

    def test_invalid_avoided_day(self, make_client):
        response = make_client().post(
            "/api/find-common-times",
            json={"user1Id": "alice", "user2Id": "bob", "constraints": {"avoidDays": ["funday"]}},
        )

        assert response.status_code == 400
        assert "constraints.avoidDays" in response.json()["error"]


class TestCustomTimes:
    """Tests for POST /api/custom-ai-times."""

    def test_prompt_returns_labelled_slots(self, make_client):
        response = make_client().post(
            "/api/custom-ai-times",
            json={"user1Id": "alice", "user2Id": "bob", "prompt": "30 min call in the afternoon"},
        )

        body = response.json()
        assert response.status_code == 200
        assert body["message"] == "I found these available times in the afternoon for 30 minutes:"
        assert len(body["slots"]) == 3
        assert body["slots"][0]["label"] == "Mon, Jan 8 12:00 PM - 12:30 PM"

    def test_sub_minute_duration_falls_back_to_an_hour(self, make_client):
        response = make_client().post(
            "/api/custom-ai-times",
            json={"user1Id": "alice", "user2Id": "bob", "prompt": "quick sync for 0.01 hours"},
        )

        assert response.status_code == 200
        slots = response.json()["slots"]
        assert slots
        for item in slots:
            assert (pendulum.parse(item["end"]) - _start(item)).in_minutes() == 60

    def test_missing_prompt(self, make_client):
        response = make_client().post("/api/custom-ai-times", json={"user1Id": "alice", "user2Id": "bob"})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required field: prompt"}


class TestRefreshToken:
    """Tests for POST /api/cal/refresh."""

    def test_refresh(self, make_client):
        response = make_client().post("/api/cal/refresh", json={"refreshToken": "old-refresh"})

        assert response.status_code == 200
        assert response.json() == {"access_token": "new-access", "refresh_token": "old-refresh", "expires_in": 1800}

    def test_missing_token(self, make_client):
        response = make_client().post("/api/cal/refresh", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required field: refreshToken"}

    def test_rejected_token(self, make_client):
        response = make_client(auth_error=AuthenticationError("invalid_grant")).post(
            "/api/cal/refresh",
            json={"refreshToken": "old-refresh"},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to refresh token"}


def test_health(make_client):
    response = make_client().get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
