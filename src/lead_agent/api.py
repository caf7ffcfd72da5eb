"""FastAPI application exposing the chat, walkthrough and scheduling endpoints."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, suppress
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

import httpx
import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, Field, field_validator

from . import __version__
from .availability import AvailabilityBroker
from .booking import BookingConfirmer
from .calendly_client import CalendlyClient
from .chat import MAX_MESSAGE_LENGTH, answer_message
from .config import Settings
from .errors import ConfigurationError, LeadAgentError, ValidationError
from .extraction import LeadExtractor, find_user_email
from .models import BookingConfirmation, LeadReport, SlotSearchResult, WalkthroughAnswer
from .notifications import NotificationDispatcher
from .openai_client import CompletionClient
from .rate_limit import FixedWindowRateLimiter, client_identifier
from .resend_client import EmailClient
from .time_window import normalize_timezone

LOGGER = structlog.get_logger(__name__)

_rate_limiter: Optional[FixedWindowRateLimiter] = None


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_http_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport used by outbound clients; None selects httpx's default."""
    return None


def get_rate_limiter(settings: Settings = Depends(get_settings)) -> FixedWindowRateLimiter:
    """Process-wide limiter shared by every AI-backed chat request."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = FixedWindowRateLimiter(
            window_seconds=settings.rate_limit_window_seconds,
            max_requests=settings.rate_limit_max,
        )
    return _rate_limiter


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the rate-limit eviction sweep for the lifetime of the app."""
    settings = get_settings()
    limiter = get_rate_limiter(settings)
    sweeper = asyncio.create_task(limiter.run_sweeper(settings.rate_limit_sweep_seconds))
    LOGGER.info("app.startup", version=__version__)
    try:
        yield
    finally:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
        LOGGER.info("app.shutdown")


app = FastAPI(title="Lead Agent", version=__version__, lifespan=lifespan)


class ChatRequest(BaseModel):
    message: Optional[str] = None

    @field_validator("message", mode="before")
    @classmethod
    def coerce_scalar(cls, value: object) -> object:
        """Accept numbers and booleans as text; falsy scalars count as missing."""
        if isinstance(value, (bool, int, float)):
            return str(value) if value else None
        return value


class ChatResponse(BaseModel):
    reply: str


class WalkthroughRequest(BaseModel):
    answers: Optional[List[WalkthroughAnswer]] = None


class WalkthroughResponse(LeadReport):
    """Lead report plus the delivery outcome of both notification emails."""

    emailed_to: str = ""
    email_error: str = ""
    owner_notified: bool = False
    owner_email_error: str = ""


class ScheduleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None
    goals: Optional[str] = None
    times: Optional[str] = None
    company: Optional[str] = None
    timezone: Optional[str] = None
    start_after: Optional[str] = Field(default=None, alias="startAfter")


class ConfirmRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None
    event_type_uri: Optional[str] = Field(default=None, alias="eventTypeUri")
    start_time: Optional[str] = Field(default=None, alias="startTime")
    timezone: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    version: str


@app.exception_handler(LeadAgentError)
async def handle_lead_agent_error(request: Request, exc: LeadAgentError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    LOGGER.info("request.invalid", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(status_code=400, content={"error": "Invalid request body."})


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.exception("request.unhandled", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"error": "Internal server error."})


@app.get("/api/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


@app.post("/api/chat", response_model=ChatResponse)
async def chat(
    payload: ChatRequest,
    request: Request,
    settings: Settings = Depends(get_settings),
    limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
) -> ChatResponse:
    """Answer one visitor question with the website assistant prompt."""

    client = CompletionClient.from_settings(settings, transport)
    if client is None:
        raise ConfigurationError("Missing OPEN_AI_KEY.")

    limiter.check(client_identifier(request))

    message = (payload.message or "").strip()
    if not message:
        raise ValidationError("Message is required.")
    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValidationError("Message is too long.")

    reply = await answer_message(client, message)
    return ChatResponse(reply=reply)


@app.post("/api/walkthrough", response_model=WalkthroughResponse)
async def walkthrough(
    payload: WalkthroughRequest,
    settings: Settings = Depends(get_settings),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
) -> WalkthroughResponse:
    """Build a lead report from walkthrough answers and send notifications."""

    answers = payload.answers or []
    if not answers:
        raise ValidationError("Answers are required.")

    LOGGER.info("walkthrough.received", answers=len(answers))
    extractor = LeadExtractor(CompletionClient.from_settings(settings, transport))
    report = await extractor.extract(answers)

    dispatcher = NotificationDispatcher(
        EmailClient.from_settings(settings, transport),
        owner_email=settings.lead_notify_email,
    )
    outcome = await dispatcher.notify(report, answers, find_user_email(answers))

    return WalkthroughResponse(
        **report.model_dump(),
        emailed_to=outcome.user_emailed,
        email_error=outcome.user_error,
        owner_notified=outcome.owner_notified,
        owner_email_error=outcome.owner_error,
    )


@app.post("/api/schedule", response_model=SlotSearchResult)
async def schedule(
    payload: ScheduleRequest,
    settings: Settings = Depends(get_settings),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
) -> SlotSearchResult:
    """Suggest up to three open intro-call slots inside the requested hours."""

    _require_fields(payload, ("name", "email", "goals", "times"))
    client = CalendlyClient.from_settings(settings, transport)
    if client is None:
        raise ConfigurationError("Missing CALENDLY_TOKEN.")

    timezone_name = normalize_timezone(payload.timezone, settings.default_timezone)
    LOGGER.info(
        "schedule.request",
        name=payload.name,
        company=payload.company,
        goals=payload.goals,
        times=payload.times,
        timezone=timezone_name,
    )
    broker = AvailabilityBroker(client)
    return await broker.find_slots(payload.times, timezone_name, payload.start_after)


@app.post("/api/schedule/confirm", response_model=BookingConfirmation)
async def confirm_schedule(
    payload: ConfirmRequest,
    settings: Settings = Depends(get_settings),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport),
) -> BookingConfirmation:
    """Book a slot previously returned by /api/schedule."""

    _require_fields(payload, ("name", "email", "event_type_uri", "start_time"))
    client = CalendlyClient.from_settings(settings, transport)
    if client is None:
        raise ConfigurationError("Missing CALENDLY_TOKEN.")

    timezone_name = normalize_timezone(payload.timezone, settings.default_timezone)
    confirmer = BookingConfirmer(client)
    return await confirmer.confirm(
        name=payload.name.strip(),
        email=payload.email.strip(),
        timezone_name=timezone_name,
        event_type_uri=payload.event_type_uri.strip(),
        start_time=payload.start_time.strip(),
    )


def _require_fields(payload: BaseModel, names: tuple[str, ...]) -> None:
    missing = [name for name in names if not (getattr(payload, name) or "").strip()]
    if missing:
        fields = type(payload).model_fields
        labels = [fields[name].alias or name for name in missing]
        raise ValidationError(f"Missing required fields: {', '.join(labels)}.")


def _mount_static(application: FastAPI, settings: Settings) -> None:
    """Serve the marketing site from STATIC_DIR after the API routes."""
    if not settings.static_dir:
        return
    directory = Path(settings.static_dir)
    if not directory.is_dir():
        LOGGER.warning("static.missing", directory=str(directory))
        return
    application.mount("/", StaticFiles(directory=directory, html=True), name="static")


_mount_static(app, get_settings())
