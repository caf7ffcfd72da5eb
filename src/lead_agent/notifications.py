"""Owner and lead notification emails for completed walkthroughs."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import List, Optional, Sequence

import structlog

from .errors import UpstreamError
from .models import ExtractedFields, LeadReport, NotificationResult, WalkthroughAnswer, UNKNOWN
from .resend_client import EmailClient

LOGGER = structlog.get_logger(__name__)

MISSING_KEY_ERROR = "Missing RESEND_API_KEY."
BOOKING_URL = "https://rossapplied.ai/book-call/"

FIELD_LABELS = {
    "industry": "Industry",
    "team_size": "Team size",
    "pain_points": "Pain points",
    "tools": "Current tools",
    "goals": "Goals",
    "timeline": "Timeline",
    "budget": "Budget",
}


@dataclass
class EmailMessage:
    subject: str
    html: str
    text: str


def compose_owner_email(
    report: LeadReport, answers: Sequence[WalkthroughAnswer], user_email: Optional[str]
) -> EmailMessage:
    """Internal notification with the full report and every answer."""
    industry = report.extracted.industry
    subject = "New walkthrough lead" if industry == UNKNOWN else f"New walkthrough lead: {industry}"
    contact = user_email or "not provided"

    text_lines: List[str] = [
        "A new walkthrough was submitted.",
        "",
        f"Contact email: {contact}",
        "",
        "Summary:",
        report.summary,
        "",
        "Extracted details:",
    ]
    text_lines.extend(f"- {label}: {value}" for label, value in _field_rows(report.extracted))
    text_lines.extend(["", "Recommended services:"])
    text_lines.extend(f"- {service}" for service in report.recommended_services)
    text_lines.extend(["", f"Suggested next step: {report.suggested_next_step}", "", "Answers:"])
    for index, item in enumerate(answers, start=1):
        text_lines.append(f"{index}. {_question_text(item, index)}")
        text_lines.append(f"   {item.answer.strip()}")

    html_parts = [
        "<h2>New walkthrough lead</h2>",
        f"<p><strong>Contact email:</strong> {escape(contact)}</p>",
        f"<p>{escape(report.summary)}</p>",
        "<h3>Extracted details</h3>",
        "<ul>",
        *(f"<li><strong>{label}:</strong> {escape(value)}</li>" for label, value in _field_rows(report.extracted)),
        "</ul>",
        "<h3>Recommended services</h3>",
        _html_list(report.recommended_services),
        f"<p><strong>Suggested next step:</strong> {escape(report.suggested_next_step)}</p>",
        "<h3>Answers</h3>",
        "<ol>",
        *(
            f"<li><strong>{escape(_question_text(item, index))}</strong><br>{escape(item.answer.strip())}</li>"
            for index, item in enumerate(answers, start=1)
        ),
        "</ol>",
    ]
    return EmailMessage(subject=subject, html="\n".join(html_parts), text="\n".join(text_lines))


def compose_user_email(report: LeadReport) -> EmailMessage:
    """Summary sent back to the lead."""
    subject = "Your AI walkthrough summary"
    text_lines = [
        "Thanks for completing the Ross Applied AI walkthrough.",
        "",
        report.summary,
        "",
        "Services we'd suggest exploring:",
        *(f"- {service}" for service in report.recommended_services),
        "",
        f"Next step: {report.suggested_next_step}",
        "",
        f"Book a free intro call: {BOOKING_URL}",
    ]
    html_parts = [
        "<h2>Your AI walkthrough summary</h2>",
        "<p>Thanks for completing the Ross Applied AI walkthrough.</p>",
        f"<p>{escape(report.summary)}</p>",
        "<h3>Services we'd suggest exploring</h3>",
        _html_list(report.recommended_services),
        f"<p><strong>Next step:</strong> {escape(report.suggested_next_step)}</p>",
        f'<p><a href="{BOOKING_URL}">Book a free intro call</a></p>',
    ]
    return EmailMessage(subject=subject, html="\n".join(html_parts), text="\n".join(text_lines))


class NotificationDispatcher:
    """Sends the owner and lead emails independently of each other."""

    def __init__(self, mailer: Optional[EmailClient], owner_email: str):
        self._mailer = mailer
        self._owner_email = owner_email

    async def notify(
        self,
        report: LeadReport,
        answers: Sequence[WalkthroughAnswer],
        user_email: Optional[str],
    ) -> NotificationResult:
        result = NotificationResult()

        if self._mailer is None:
            LOGGER.warning("notify.skipped", reason=MISSING_KEY_ERROR)
            result.owner_error = MISSING_KEY_ERROR
            result.user_error = MISSING_KEY_ERROR
            return result

        owner_message = compose_owner_email(report, answers, user_email)
        try:
            await self._mailer.send(
                [self._owner_email],
                owner_message.subject,
                owner_message.html,
                owner_message.text,
                reply_to=user_email,
            )
            result.owner_notified = True
        except UpstreamError as exc:
            LOGGER.error("notify.owner.failed", error=exc.message)
            result.owner_error = exc.message

        if not user_email:
            LOGGER.info("notify.user.skipped", reason="no email address in answers")
            return result

        user_message = compose_user_email(report)
        try:
            await self._mailer.send([user_email], user_message.subject, user_message.html, user_message.text)
            result.user_emailed = user_email
        except UpstreamError as exc:
            LOGGER.error("notify.user.failed", error=exc.message)
            result.user_error = exc.message

        return result


def _field_rows(extracted: ExtractedFields) -> List[tuple[str, str]]:
    values = extracted.model_dump()
    return [(label, values[name]) for name, label in FIELD_LABELS.items()]


def _question_text(item: WalkthroughAnswer, index: int) -> str:
    return (item.question or item.key or f"Question {index}").strip()


def _html_list(items: Sequence[str]) -> str:
    return "<ul>" + "".join(f"<li>{escape(item)}</li>" for item in items) + "</ul>"
