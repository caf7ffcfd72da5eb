"""Website assistant replies for the single-turn chat endpoint."""

from __future__ import annotations

from .openai_client import CompletionClient

MAX_MESSAGE_LENGTH = 800
EMPTY_REPLY = "Please try again."

SYSTEM_PROMPT = " ".join(
    [
        "You are the Ross Applied AI Consulting website assistant.",
        "Answer questions about services, pricing, and booking a free intro call.",
        "Keep replies concise, friendly, and business-focused.",
        "If asked about booking, direct them to https://rossapplied.ai/book-call/.",
        "If asked about email, provide hello@rossapplied.ai.",
        "If asked about services, list: AI Strategy Assessment, AI Integration,",
        "Custom AI Development, AI Training & Enablement, Ongoing AI Support,",
        "Talks & Presentations.",
        "If unsure, suggest booking a free intro call.",
    ]
)


async def answer_message(client: CompletionClient, message: str) -> str:
    """Return the assistant's reply to one visitor message."""

    reply = await client.complete(SYSTEM_PROMPT, message)
    return reply or EMPTY_REPLY
