"""Turn free-text walkthrough answers into a structured lead report."""

from __future__ import annotations

import json
import re
import textwrap
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import structlog

from .errors import UpstreamError
from .models import SERVICE_CATALOG, UNKNOWN, ExtractedFields, LeadReport, WalkthroughAnswer
from .openai_client import CompletionClient
from .utils import normalise_whitespace

LOGGER = structlog.get_logger(__name__)

BASELINE_SERVICE = "AI Strategy Assessment"
DEFAULT_NEXT_STEP = "Book a free intro call to review these findings and agree on first steps."

# Extracted field -> keyword looked for in the walkthrough question text.
FALLBACK_FIELD_KEYWORDS = (
    ("industry", "business"),
    ("team_size", "team"),
    ("pain_points", "bottleneck"),
    ("tools", "tools"),
    ("goals", "outcome"),
    ("timeline", "timeline"),
    ("budget", "budget"),
)

SERVICE_KEYWORDS = (
    ("AI Integration", ("manual", "spreadsheet", "crm")),
    ("Custom AI Development", ("automate", "repetitive", "admin")),
    ("AI Training & Enablement", ("training", "adoption")),
    ("Ongoing AI Support", ("support", "maintenance")),
)

EMAIL_PATTERN = re.compile(r"[^\s@<>()\[\],;:\"']+@[^\s@<>()\[\],;:\"']+\.[A-Za-z]{2,}")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

SYSTEM_PROMPT = textwrap.dedent(
    f"""
    You analyse intake answers for Ross Applied AI Consulting, a firm that helps
    small and mid-sized businesses adopt AI. Only respond with a single valid JSON
    object matching this schema, with no prose before or after it:
    {{
      "summary": string,
      "extracted": {{
        "industry": string,
        "team_size": string,
        "pain_points": string,
        "tools": string,
        "goals": string,
        "timeline": string,
        "budget": string
      }},
      "recommended_services": [string, ...],
      "suggested_next_step": string
    }}

    Requirements:
    - "summary" is two or three sentences describing the business and its main pain points.
    - Use "{UNKNOWN}" for any extracted field the answers do not mention.
    - "recommended_services" must only contain names from this list:
      {", ".join(SERVICE_CATALOG)}.
    - "suggested_next_step" is one concrete sentence.
    """
).strip()


@dataclass
class ExtractionAttempt:
    """Outcome of the AI path: either a report or the reason it was not used."""

    report: Optional[LeadReport] = None
    error: Optional[str] = None


class LeadExtractor:
    """Prefers AI extraction and degrades to keyword matching."""

    def __init__(self, client: Optional[CompletionClient]):
        self._client = client

    async def extract(self, answers: Sequence[WalkthroughAnswer]) -> LeadReport:
        """Return a lead report; never raises for AI or parse failures."""
        attempt = await self._extract_with_ai(answers)
        if attempt.report is not None:
            LOGGER.info("extraction.ai.success", services=attempt.report.recommended_services)
            return attempt.report

        # The AI error is discarded here after logging; the fallback always succeeds.
        LOGGER.warning("extraction.fallback", reason=attempt.error)
        return build_fallback_report(answers)

    async def _extract_with_ai(self, answers: Sequence[WalkthroughAnswer]) -> ExtractionAttempt:
        if self._client is None:
            return ExtractionAttempt(error="AI client not configured")

        try:
            return await self._request_report(self._client, answers)
        except UpstreamError as exc:
            return ExtractionAttempt(error=exc.message)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("extraction.ai.error", error=str(exc))
            return ExtractionAttempt(error=f"unexpected AI extraction error: {type(exc).__name__}")

    async def _request_report(
        self, client: CompletionClient, answers: Sequence[WalkthroughAnswer]
    ) -> ExtractionAttempt:
        raw_text = await client.complete(SYSTEM_PROMPT, render_answers(answers))
        if not raw_text:
            return ExtractionAttempt(error="empty AI response")

        data = parse_report_json(raw_text)
        if data is None:
            return ExtractionAttempt(error="AI response was not valid JSON")

        try:
            return ExtractionAttempt(report=coerce_report(data))
        except ValueError as exc:
            return ExtractionAttempt(error=f"AI response did not match the report shape: {exc}")


def render_answers(answers: Sequence[WalkthroughAnswer]) -> str:
    """Format answers as numbered Q/A pairs for the model."""
    blocks: List[str] = []
    for index, item in enumerate(answers, start=1):
        question = item.question or item.key or f"Question {index}"
        blocks.append(f"{index}. Q: {normalise_whitespace(question)}\n   A: {item.answer.strip()}")
    return "Walkthrough answers:\n\n" + "\n\n".join(blocks)


def parse_report_json(raw_text: str) -> Optional[Dict[str, Any]]:
    """Parse the model output directly, then retry on the outermost braces.

    Oversized integers and pathological nesting count as unparseable.
    """
    candidate = raw_text.strip()
    try:
        parsed = json.loads(candidate)
    except (ValueError, RecursionError):
        match = _JSON_OBJECT.search(candidate)
        if not match:
            return None
        try:
            parsed = json.loads(match.group(0))
        except (ValueError, RecursionError):
            LOGGER.warning("extraction.json_decode_failed", preview=candidate[:200])
            return None
    return parsed if isinstance(parsed, dict) else None


def coerce_report(data: Dict[str, Any]) -> LeadReport:
    """Normalise a decoded model payload into a LeadReport.

    Raises ValueError when there is no usable summary.
    """
    summary = data.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        raise ValueError("missing summary")

    raw_fields = data.get("extracted")
    if not isinstance(raw_fields, dict):
        raw_fields = {}
    extracted = ExtractedFields(
        **{name: _coerce_field(raw_fields.get(name)) for name in ExtractedFields.model_fields}
    )

    services = _canonical_services(data.get("recommended_services"))
    if not services:
        services = [BASELINE_SERVICE]

    next_step = data.get("suggested_next_step")
    if not isinstance(next_step, str) or not next_step.strip():
        next_step = DEFAULT_NEXT_STEP

    return LeadReport(
        summary=summary.strip(),
        extracted=extracted,
        recommended_services=services,
        suggested_next_step=next_step.strip(),
    )


def build_fallback_report(answers: Sequence[WalkthroughAnswer]) -> LeadReport:
    """Deterministic keyword-based report used when the AI path is unavailable."""
    fields = {
        name: _answer_for_keyword(answers, keyword)
        for name, keyword in FALLBACK_FIELD_KEYWORDS
    }
    extracted = ExtractedFields(**fields)

    haystack = " ".join((extracted.pain_points, extracted.goals, extracted.tools)).lower()
    services = [BASELINE_SERVICE]
    for service, keywords in SERVICE_KEYWORDS:
        if any(keyword in haystack for keyword in keywords):
            services.append(service)

    summary = (
        f"Business in {extracted.industry} exploring AI to streamline operations, "
        f"with a timeline of {extracted.timeline}."
    )
    return LeadReport(
        summary=summary,
        extracted=extracted,
        recommended_services=services,
        suggested_next_step=DEFAULT_NEXT_STEP,
    )


def find_user_email(answers: Sequence[WalkthroughAnswer]) -> Optional[str]:
    """Locate the lead's email address in the raw answers.

    Priority: an answer keyed ``email``, then a question mentioning email, then
    any answer containing an address.
    """
    keyed = [item for item in answers if (item.key or "").strip().lower() == "email"]
    asked = [item for item in answers if "email" in (item.question or "").lower()]
    for group in (keyed, asked, list(answers)):
        for item in group:
            match = EMAIL_PATTERN.search(item.answer)
            if match:
                return match.group(0)
    return None


def _answer_for_keyword(answers: Sequence[WalkthroughAnswer], keyword: str) -> str:
    for item in answers:
        if keyword in (item.question or "").lower():
            return item.answer.strip() or UNKNOWN
    return UNKNOWN


def _coerce_field(value: Any) -> str:
    if value is None:
        return UNKNOWN
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(part).strip() for part in value if str(part).strip())
    text = str(value).strip()
    return text or UNKNOWN


def _canonical_services(value: Any) -> List[str]:
    """Keep catalog names only, in model order, without duplicates."""
    if not isinstance(value, list):
        return []
    lookup = {name.lower(): name for name in SERVICE_CATALOG}
    services: List[str] = []
    for item in value:
        name = lookup.get(str(item).strip().lower())
        if name and name not in services:
            services.append(name)
    return services
