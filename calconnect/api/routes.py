"""
HTTP endpoints for availability suggestions and Cal.com token refresh.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from ..domain.exceptions import InvalidRequestError
from ..domain.models import EventTemplate, TravelBuffer
from ..domain.prompt_parser import build_response_message, format_slot_label
from ..domain.templates import get_event_template, get_event_template_by_intent
from ..services.availability import AvailabilityService
from .schemas import (
    CustomTimesRequest,
    FindCommonTimesRequest,
    RefreshTokenRequest,
    SuggestedTimesRequest,
    SuggestionRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Availability"])


def _service(request: Request) -> AvailabilityService:
    return request.app.state.service


def _template_for_intent(intent: Optional[str]) -> EventTemplate:
    template = get_event_template_by_intent(intent) if intent else None
    if template is None:
        raise InvalidRequestError(f"Unknown intent: {intent}", field="intent")
    return template


def _buffer_override(
    template: EventTemplate,
    before: Optional[int],
    after: Optional[int],
) -> Optional[TravelBuffer]:
    """Explicit buffers, with the template's value for whichever side is omitted."""
    if before is None and after is None:
        return None

    default = template.travel_buffer or TravelBuffer()
    return TravelBuffer(
        before_minutes=default.before_minutes if before is None else before,
        after_minutes=default.after_minutes if after is None else after,
    )


def _template_for_request(body: SuggestedTimesRequest) -> EventTemplate:
    if body.event_template_id:
        template, field = get_event_template(body.event_template_id), "eventTemplateId"
    elif body.intent:
        template, field = get_event_template_by_intent(body.intent), "intent"
    else:
        template, field = None, "eventTemplateId"

    if template is None:
        raise InvalidRequestError("Invalid event template or intent", field=field)
    return template


@router.post("/availability/suggestions")
async def availability_suggestions(body: SuggestionRequest, request: Request) -> Dict[str, Any]:
    """Next slot both users are free for the given intent."""
    template = _template_for_intent(body.intent)

    suggestion = await _service(request).suggest_slot(
        user1_id=body.user1_id,
        user2_id=body.user2_id,
        template=template,
        duration_minutes=body.duration,
        travel_buffer=_buffer_override(template, body.buffer_before, body.buffer_after),
        time_window=body.time_window.to_domain() if body.time_window else None,
        allow_weekends=body.allow_weekends,
        rng=request.app.state.rng,
    )

    return {"slot": suggestion.to_dict() if suggestion else None}


@router.post("/suggested-times")
async def suggested_times(body: SuggestedTimesRequest, request: Request) -> Dict[str, Any]:
    """Next slot for an event template, picked by id or by intent."""
    template = _template_for_request(body)

    logger.info("Suggesting %s for %s and %s", template.id, body.user1_id, body.user2_id)

    suggestion = await _service(request).suggest_slot(
        user1_id=body.user1_id,
        user2_id=body.user2_id,
        template=template,
        time_window=body.custom_time_window.to_domain() if body.custom_time_window else None,
        rng=request.app.state.rng,
    )

    return {"slot": suggestion.to_dict() if suggestion else None}


@router.post("/find-common-times")
async def find_common_times(body: FindCommonTimesRequest, request: Request) -> Dict[str, Any]:
    """All mutual slots in the search range, one per day."""
    service = _service(request)

    slots = await service.find_common_times(
        user1_id=body.user1_id,
        user2_id=body.user2_id,
        constraints=body.constraints.to_domain(),
    )

    return {
        "slots": [slot.to_dict() for slot in slots],
        "timezone": service.user_timezone(body.user1_id),
    }


@router.post("/custom-ai-times")
async def custom_ai_times(body: CustomTimesRequest, request: Request) -> Dict[str, Any]:
    """Slots for a free-text request such as "coffee next week, avoid friday"."""
    constraints, slots = await _service(request).find_times_for_prompt(
        user1_id=body.user1_id,
        user2_id=body.user2_id,
        prompt=body.prompt,
    )

    return {
        "message": build_response_message(slots, constraints),
        "slots": [
            {**slot.to_dict(), "label": format_slot_label(slot)}
            for slot in slots
        ],
    }


@router.post("/cal/refresh")
def refresh_token(body: RefreshTokenRequest, request: Request) -> Dict[str, Any]:
    """Exchange a Cal.com refresh token for a new access token."""
    return request.app.state.authenticator.refresh_access_token(body.refresh_token)
