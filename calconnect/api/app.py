"""
FastAPI application factory.
"""

import logging
import random
from typing import Callable, Optional

import pendulum
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pendulum import DateTime

from .. import __version__
from ..adapters import ConfigUserDirectory, build_authenticator, build_calendar_client
from ..adapters.calcom_authenticator import CalcomAuthenticator
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import AuthenticationError, CalendarAPIError, InvalidRequestError
from ..services.availability import AvailabilityService, CalendarClientProtocol
from .routes import router

logger = logging.getLogger(__name__)

_MISSING_ERROR_TYPES = {"missing", "string_too_short"}


def create_app(
    config: Optional[AppConfig] = None,
    *,
    calendar_client: Optional[CalendarClientProtocol] = None,
    authenticator: Optional[CalcomAuthenticator] = None,
    clock: Optional[Callable[[str], DateTime]] = None,
    rng: Optional[random.Random] = None,
    use_mock: bool = False,
) -> FastAPI:
    """
    Build the web application.

    Args:
        config: Application config; loaded from the default path if omitted
        calendar_client: Overrides the client picked from the config
        authenticator: Overrides the Cal.com token refresher
        clock: ``clock(timezone)`` returning "now", for deterministic runs
        rng: Random source for venue picks
        use_mock: Force the mock calendar client
    """
    if config is None:
        config = AppConfig.load_from_yaml(get_default_config_path())

    app = FastAPI(title="calconnect", version=__version__)

    app.state.config = config
    app.state.rng = rng
    app.state.authenticator = authenticator or build_authenticator(config)
    app.state.service = AvailabilityService(
        calendar_client or build_calendar_client(config, use_mock=use_mock),
        ConfigUserDirectory(config),
        default_timezone=config.timezone,
        horizon_days=config.search.horizon_days,
        slot_interval_minutes=config.search.slot_interval_minutes,
        max_results=config.search.max_results,
        clock=clock or pendulum.now,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)
    app.include_router(router)

    @app.get("/")
    def root():
        return {"status": "ok", "version": __version__}

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(InvalidRequestError)
    async def invalid_request_handler(request: Request, exc: InvalidRequestError):
        logger.warning("Rejected request to %s: %s", request.url.path, exc)
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        message = _validation_message(exc)
        logger.warning("Validation error for %s: %s", request.url.path, message)
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(CalendarAPIError)
    async def calendar_error_handler(request: Request, exc: CalendarAPIError):
        logger.error("Calendar lookup failed for %s", request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Failed to fetch calendar availability"})

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(request: Request, exc: AuthenticationError):
        logger.error("Token refresh failed for %s", request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Failed to refresh token"})


def _validation_message(exc: RequestValidationError) -> str:
    """Turn the first pydantic error into a message naming the field."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"

    error = errors[0]
    location = [str(part) for part in error.get("loc", ()) if part != "body"]
    field = ".".join(location)

    if error.get("type") == "json_invalid":
        return "Request body is not valid JSON"

    if not field:
        return "Missing request body"

    if error.get("type") in _MISSING_ERROR_TYPES:
        return f"Missing required field: {field}"

    return f"Invalid value for {field}: {error.get('msg', 'invalid')}"
