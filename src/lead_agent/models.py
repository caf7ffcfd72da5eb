"""Pydantic models shared by the walkthrough and scheduling flows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN = "unknown"

SERVICE_CATALOG = (
    "AI Strategy Assessment",
    "AI Integration",
    "Custom AI Development",
    "AI Training & Enablement",
    "Ongoing AI Support",
    "Talks & Presentations",
)


class WalkthroughAnswer(BaseModel):
    """One free-text question/answer pair from the walkthrough."""

    key: Optional[str] = None
    question: Optional[str] = None
    answer: str


class ExtractedFields(BaseModel):
    """Structured business details. Missing values use the ``unknown`` sentinel."""

    industry: str = UNKNOWN
    team_size: str = UNKNOWN
    pain_points: str = UNKNOWN
    tools: str = UNKNOWN
    goals: str = UNKNOWN
    timeline: str = UNKNOWN
    budget: str = UNKNOWN


class LeadReport(BaseModel):
    """Summary and service recommendations derived from walkthrough answers."""

    summary: str
    extracted: ExtractedFields = Field(default_factory=ExtractedFields)
    recommended_services: List[str] = Field(default_factory=list)
    suggested_next_step: str


class AvailabilitySlot(BaseModel):
    """An open calendar slot offered to the user."""

    start_time: str
    end_time: Optional[str] = None
    label: str


class SlotSearchResult(BaseModel):
    """Suggested slots for one event type, with a message for the user."""

    model_config = ConfigDict(populate_by_name=True)

    suggestions: List[AvailabilitySlot] = Field(default_factory=list)
    event_type_uri: str = Field(alias="eventTypeUri")
    summary: str


class BookingConfirmation(BaseModel):
    """Outcome of a confirmed booking, with links to manage it."""

    model_config = ConfigDict(populate_by_name=True)

    summary: str
    reschedule_url: Optional[str] = Field(default=None, alias="rescheduleUrl")
    cancel_url: Optional[str] = Field(default=None, alias="cancelUrl")


@dataclass
class NotificationResult:
    """Per-recipient delivery outcome of a walkthrough notification."""

    owner_notified: bool = False
    owner_error: str = ""
    user_emailed: str = ""
    user_error: str = ""
