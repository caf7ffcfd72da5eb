"""Tests for the lead extraction engine and email discovery."""

import json

import pytest

from lead_agent.extraction import (
    LeadExtractor,
    build_fallback_report,
    coerce_report,
    find_user_email,
    parse_report_json,
)
from lead_agent.models import UNKNOWN, WalkthroughAnswer
from lead_agent.openai_client import CompletionClient

from .conftest import MockUpstream, openai_reply

ANSWERS = [
    WalkthroughAnswer(key="business", question="What does your business do?", answer="Residential plumbing"),
    WalkthroughAnswer(key="team", question="How big is your team?", answer="12 people"),
    WalkthroughAnswer(
        key="bottleneck",
        question="What's your biggest bottleneck?",
        answer="Manual data entry in spreadsheets and repetitive admin work",
    ),
    WalkthroughAnswer(key="tools", question="Which tools do you use today?", answer="QuickBooks, Google Sheets"),
    WalkthroughAnswer(key="outcome", question="What outcome would make this a win?", answer="Better staff adoption"),
    WalkthroughAnswer(key="timeline", question="What's your timeline?", answer="Next quarter"),
    WalkthroughAnswer(key="email", question="Where should we send your summary?", answer="jo@plumbco.com"),
]

AI_PAYLOAD = {
    "summary": "A 12-person plumbing company buried in manual admin.",
    "extracted": {
        "industry": "Plumbing",
        "team_size": "12",
        "pain_points": ["manual data entry", "scheduling"],
        "tools": "QuickBooks",
        "goals": "Save admin time",
        "timeline": "Next quarter",
    },
    "recommended_services": ["AI Integration", "ai integration", "Crystal Ball Consulting", "Ongoing AI Support"],
    "suggested_next_step": "Book an intro call.",
}


def _client(upstream: MockUpstream) -> CompletionClient:
    return CompletionClient("sk-test", model="gpt-5-mini", transport=upstream.transport)


class TestFallbackReport:
    def test_fields_are_matched_by_question_keyword(self):
        report = build_fallback_report(ANSWERS)
        assert report.extracted.industry == "Residential plumbing"
        assert report.extracted.team_size == "12 people"
        assert report.extracted.tools == "QuickBooks, Google Sheets"
        assert report.extracted.goals == "Better staff adoption"
        assert report.extracted.timeline == "Next quarter"
        assert report.extracted.budget == UNKNOWN

    def test_services_follow_keywords(self):
        report = build_fallback_report(ANSWERS)
        assert report.recommended_services == [
            "AI Strategy Assessment",
            "AI Integration",
            "Custom AI Development",
            "AI Training & Enablement",
        ]

    def test_bottleneck_example(self):
        answers = [
            WalkthroughAnswer(
                question="What's your biggest bottleneck?",
                answer="manual data entry in spreadsheets",
            )
        ]
        report = build_fallback_report(answers)
        assert "AI Strategy Assessment" in report.recommended_services
        assert "AI Integration" in report.recommended_services

    def test_no_matches_uses_sentinel_everywhere(self):
        report = build_fallback_report([WalkthroughAnswer(question="Anything else?", answer="Nope")])
        assert set(report.extracted.model_dump().values()) == {UNKNOWN}
        assert report.recommended_services == ["AI Strategy Assessment"]
        assert "unknown" in report.summary

    def test_is_deterministic(self):
        first = build_fallback_report(ANSWERS).model_dump_json()
        second = build_fallback_report(ANSWERS).model_dump_json()
        assert first == second


class TestParsing:
    def test_direct_json(self):
        assert parse_report_json(json.dumps({"summary": "x"})) == {"summary": "x"}

    def test_json_wrapped_in_prose(self):
        raw = "Here you go:\n```json\n" + json.dumps({"summary": "x"}) + "\n```\nThanks!"
        assert parse_report_json(raw) == {"summary": "x"}

    def test_unparseable(self):
        assert parse_report_json("no json at all") is None
        assert parse_report_json("{not: valid}") is None

    def test_non_object_is_rejected(self):
        assert parse_report_json("[1, 2, 3]") is None

    def test_coerce_fills_sentinels_and_filters_services(self):
        report = coerce_report(AI_PAYLOAD)
        assert report.extracted.pain_points == "manual data entry, scheduling"
        assert report.extracted.budget == UNKNOWN
        assert report.recommended_services == ["AI Integration", "Ongoing AI Support"]

    def test_coerce_requires_summary(self):
        with pytest.raises(ValueError):
            coerce_report({"extracted": {}})


class TestLeadExtractor:
    @pytest.mark.asyncio
    async def test_uses_ai_report(self):
        upstream = MockUpstream(
            {("POST", "/v1/responses"): (200, openai_reply("Sure!\n" + json.dumps(AI_PAYLOAD)))}
        )
        report = await LeadExtractor(_client(upstream)).extract(ANSWERS)

        assert report.summary == AI_PAYLOAD["summary"]
        assert report.extracted.industry == "Plumbing"
        request = upstream.requests[0]
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = MockUpstream.body(request)
        assert body["input"][0]["role"] == "system"
        assert "Residential plumbing" in body["input"][1]["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_falls_back_without_client(self):
        report = await LeadExtractor(None).extract(ANSWERS)
        assert report == build_fallback_report(ANSWERS)

    @pytest.mark.asyncio
    async def test_falls_back_on_upstream_error(self):
        upstream = MockUpstream({("POST", "/v1/responses"): (503, {"error": "overloaded"})})
        report = await LeadExtractor(_client(upstream)).extract(ANSWERS)
        assert report == build_fallback_report(ANSWERS)

    @pytest.mark.asyncio
    async def test_falls_back_on_garbage(self):
        upstream = MockUpstream({("POST", "/v1/responses"): (200, openai_reply("I cannot help with that."))})
        report = await LeadExtractor(_client(upstream)).extract(ANSWERS)
        assert report == build_fallback_report(ANSWERS)

    @pytest.mark.asyncio
    async def test_falls_back_on_empty_reply(self):
        upstream = MockUpstream({("POST", "/v1/responses"): (200, {"output": []})})
        report = await LeadExtractor(_client(upstream)).extract(ANSWERS)
        assert report == build_fallback_report(ANSWERS)


class TestFindUserEmail:
    def test_keyed_answer_wins(self):
        answers = [
            WalkthroughAnswer(question="Anything else?", answer="cc boss@corp.com"),
            WalkthroughAnswer(question="Your email?", answer="asked@corp.com"),
            WalkthroughAnswer(key="email", answer="keyed@corp.com"),
        ]
        assert find_user_email(answers) == "keyed@corp.com"

    def test_question_mentioning_email(self):
        answers = [
            WalkthroughAnswer(question="Anything else?", answer="cc boss@corp.com"),
            WalkthroughAnswer(question="What's the best Email for you?", answer=" asked@corp.com "),
        ]
        assert find_user_email(answers) == "asked@corp.com"

    def test_any_answer_with_an_address(self):
        answers = [
            WalkthroughAnswer(question="Name?", answer="Jo"),
            WalkthroughAnswer(question="Anything else?", answer="Reach me at jo@plumbco.com, thanks"),
        ]
        assert find_user_email(answers) == "jo@plumbco.com"

    def test_none_found(self):
        assert find_user_email([WalkthroughAnswer(question="Name?", answer="Jo")]) is None


class TestHostileReplies:
    def test_oversized_integer_is_unparseable(self):
        assert parse_report_json('{"summary": "x", "budget": ' + "9" * 5000 + "}") is None

    def test_deep_nesting_is_unparseable(self):
        assert parse_report_json("[" * 100000 + "]" * 100000) is None

    @pytest.mark.asyncio
    async def test_oversized_integer_falls_back(self):
        reply = 'Report: {"summary": "x", "budget": ' + "9" * 5000 + "}"
        upstream = MockUpstream({("POST", "/v1/responses"): (200, openai_reply(reply))})
        report = await LeadExtractor(_client(upstream)).extract(ANSWERS)
        assert report == build_fallback_report(ANSWERS)

    @pytest.mark.asyncio
    async def test_deep_nesting_falls_back(self):
        upstream = MockUpstream(
            {("POST", "/v1/responses"): (200, openai_reply("[" * 100000 + "]" * 100000))}
        )
        report = await LeadExtractor(_client(upstream)).extract(ANSWERS)
        assert report == build_fallback_report(ANSWERS)

    @pytest.mark.asyncio
    async def test_unexpected_client_error_falls_back(self):
        class BrokenClient:
            async def complete(self, system_prompt, user_message):
                raise RuntimeError("socket exploded")

        report = await LeadExtractor(BrokenClient()).extract(ANSWERS)
        assert report == build_fallback_report(ANSWERS)
