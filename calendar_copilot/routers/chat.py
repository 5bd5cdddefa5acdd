"""Chat API route — runs the tool orchestrator and streams the final answer.

Out-of-band signals travel as response headers, available before the first
chunk arrives:
- ``X-Calendar-Modified: true|false``: a mutating tool was called
- ``X-Draft-Data``: URL-encoded JSON list of ``{to, subject, body}`` drafts
"""
import json
import logging
from typing import AsyncIterator, Callable, Optional
from urllib.parse import quote

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, StreamingResponse
from sqlalchemy.orm import Session
from starlette.background import BackgroundTask

from calendar_copilot.agent.completion import CompletionClient, OpenAICompletionClient
from calendar_copilot.agent.context import ToolContext
from calendar_copilot.agent.orchestrator import ToolOrchestrator
from calendar_copilot.agent.registry import ToolRegistry
from calendar_copilot.config import settings
from calendar_copilot.database import get_session_factory
from calendar_copilot.errors import CompletionError
from calendar_copilot.integrations.amadeus import AmadeusClient
from calendar_copilot.integrations.open_meteo import OpenMeteoClient
from calendar_copilot.schemas.chat import ChatRequest
from calendar_copilot.services.preferences import (
    build_preferences_context,
    working_hours_from_preferences,
)
from calendar_copilot.services.timezone_clock import get_timezone

logger = logging.getLogger(__name__)
router = APIRouter()

TEXT_PLAIN = "text/plain; charset=utf-8"

NOT_CONFIGURED_REPLY = (
    "I'd love to help with your calendar! However, the AI assistant isn't "
    "configured yet. Please add your OpenAI API key to the `.env` file to "
    "enable it.\n\nIn the meantime, you can use the calendar directly to "
    "create, move and delete events."
)
COMPLETION_FAILED_REPLY = "I'm having trouble connecting to the AI service right now. Please try again in a moment."
STREAM_INTERRUPTED_REPLY = "\n\nSorry, my response was interrupted. Please try again."


def get_completion_client() -> Optional[CompletionClient]:
    """FastAPI dependency: the OpenAI client, or ``None`` when no key is configured."""
    if not settings.OPENAI_API_KEY or settings.OPENAI_API_KEY == "your-api-key-here":
        return None
    return OpenAICompletionClient(api_key=settings.OPENAI_API_KEY, model=settings.OPENAI_MODEL)


async def _relay(stream: AsyncIterator[str]) -> AsyncIterator[str]:
    try:
        async for chunk in stream:
            yield chunk
    except CompletionError as e:
        logger.error("Final stream failed: %s", e)
        yield STREAM_INTERRUPTED_REPLY
    finally:
        await stream.aclose()


@router.post("/chat")
async def chat(
    payload: ChatRequest,
    request: Request,
    completion: Optional[CompletionClient] = Depends(get_completion_client),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    """Send the conversation to the agent and stream its reply as plain text."""
    timezone = payload.timezone or settings.DEFAULT_TIMEZONE
    get_timezone(timezone)

    if completion is None:
        logger.warning("OpenAI API key not configured — returning placeholder response")
        return PlainTextResponse(NOT_CONFIGURED_REPLY, headers={"X-Calendar-Modified": "false"})

    preferences_context = payload.preferences_context
    if preferences_context is None and payload.preferences is not None:
        preferences_context = build_preferences_context(payload.preferences)

    http_client = httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS)
    context = ToolContext(
        session_factory=session_factory,
        timezone=timezone,
        working_hours=working_hours_from_preferences(payload.preferences, timezone),
        flights=AmadeusClient(
            api_key=settings.AMADEUS_API_KEY,
            api_secret=settings.AMADEUS_API_SECRET,
            base_url=settings.AMADEUS_BASE_URL,
            token_cache=request.app.state.flight_token_cache,
            http_client=http_client,
        ),
        weather=OpenMeteoClient(
            geocoding_url=settings.OPEN_METEO_GEOCODING_URL,
            forecast_url=settings.OPEN_METEO_FORECAST_URL,
            http_client=http_client,
        ),
        default_slot_minutes=settings.DEFAULT_SLOT_MINUTES,
        max_free_slots=settings.MAX_FREE_SLOTS,
    )
    orchestrator = ToolOrchestrator(
        completion=completion,
        registry=ToolRegistry(),
        context=context,
        max_iterations=settings.MAX_TOOL_ITERATIONS,
    )

    history = [message.model_dump() for message in payload.messages]
    try:
        outcome = await orchestrator.run(history, timezone, preferences_context)
    except CompletionError as e:
        http_client.close()
        logger.error("Chat request failed: %s", e)
        return PlainTextResponse(COMPLETION_FAILED_REPLY, status_code=502)

    headers = {"X-Calendar-Modified": "true" if outcome.calendar_modified else "false"}
    if outcome.pending_drafts:
        drafts = [draft.to_dict() for draft in outcome.pending_drafts]
        headers["X-Draft-Data"] = quote(json.dumps(drafts))

    session_log = outcome.session_log
    logger.info(
        "Agent session %s: %d iterations, %d tokens, %dms, modified=%s, drafts=%d",
        session_log.get("session_id", "?"),
        len(session_log.get("iterations", [])),
        session_log.get("total_tokens", 0),
        session_log.get("latency_ms", 0),
        outcome.calendar_modified,
        len(outcome.pending_drafts),
    )

    return StreamingResponse(
        _relay(outcome.final_stream),
        media_type=TEXT_PLAIN,
        headers=headers,
        background=BackgroundTask(http_client.close),
    )
