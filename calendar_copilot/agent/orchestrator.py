"""Tool orchestrator — bounded Think -> Act -> Observe loop, then one streamed answer.

    AWAITING_MODEL -> EXECUTING_TOOLS -> AWAITING_MODEL ... -> STREAMING -> DONE

Each model turn that requests tools (while under the iteration cap) has all
of its calls dispatched concurrently, one worker thread and one database
session per call, and their results appended in call order.  When the model
stops asking for tools, or the cap is hit, a final tool-free completion is
streamed back to the caller.

Session logging: every run records session_id, per-iteration tool calls,
token usage and latency for observability.
"""
import asyncio
import enum
import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone as dt_timezone
from typing import Any, AsyncIterator, Optional

from calendar_copilot.agent.completion import CompletionClient, ToolCall
from calendar_copilot.agent.context import ToolContext
from calendar_copilot.agent.registry import DRAFT_TOOL, ToolRegistry
from calendar_copilot.config import settings
from calendar_copilot.errors import describe_error
from calendar_copilot.services.timezone_clock import to_local

logger = logging.getLogger(__name__)

# ── System prompt ──────────────────────────────────────────────────
SYSTEM_PROMPT = """You are a helpful calendar assistant. Today is {today}. The user's timezone is {timezone}.

FINDING FREE TIME
When a user asks about availability or finding time to schedule something, call get_free_slots first, never guess. Pass timezone "{timezone}". Default duration is 30 minutes if unspecified.

DATE VALIDATION (IMPORTANT)
Before passing any date to a tool, verify it is a real calendar date:
- February has 28 days in non-leap years and 29 only in leap years. {year} is {leap_note}.
- April, June, September, and November have 30 days. All other months have 31 days (except February).
- If a user says "tomorrow" or a relative day, compute the exact date from today ({today}) before calling any tool.
- Never invent or guess a date. If unsure, ask the user to confirm.

CREATING EVENTS
Use create_calendar_event. Pass datetimes as YYYY-MM-DDTHH:MM:SS in local time with no timezone suffix. If the user doesn't specify an end time, default to 1 hour after the start.

UPDATING EVENTS
Call get_events first to find the event_id, then call update_calendar_event with only the fields that should change.

DELETING EVENTS
Call get_events to find the event, confirm with the user, then call delete_calendar_event only after they confirm.

DRAFTING EMAILS
Write the full draft in your response, then call prepare_email_draft with the recipient, subject and body.

TRAVEL
Use search_flights for flight options and get_weather_forecast for conditions and packing advice at a destination."""


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def build_system_prompt(
    timezone: str,
    preferences_context: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """System turn: today's date in the user's timezone, calendar rules and preferences."""
    local_now = to_local(now or datetime.now(dt_timezone.utc), timezone)
    leap_note = (
        "a leap year (Feb has 29 days)" if is_leap_year(local_now.year)
        else "not a leap year (Feb has 28 days)"
    )
    prompt = SYSTEM_PROMPT.format(
        today=f"{local_now:%A, %B} {local_now.day}, {local_now.year}",
        timezone=timezone,
        year=local_now.year,
        leap_note=leap_note,
    )
    if preferences_context:
        prompt = f"{prompt}\n\n{preferences_context}"
    return prompt


class OrchestratorState(str, enum.Enum):
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    STREAMING = "streaming"
    DONE = "done"


@dataclass
class DraftData:
    subject: str
    body: str
    to: Optional[str] = None

    @classmethod
    def from_arguments(cls, args: dict[str, Any]) -> "DraftData":
        return cls(
            subject=str(args.get("subject") or ""),
            body=str(args.get("body") or ""),
            to=args.get("to") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class OrchestrationOutcome:
    """What the caller needs before and while streaming the reply.

    ``calendar_modified`` and ``pending_drafts`` are final by the time the
    outcome is returned, so they can go out as response headers ahead of
    the first text chunk.
    """

    final_stream: AsyncIterator[str]
    calendar_modified: bool = False
    pending_drafts: list[DraftData] = field(default_factory=list)
    session_log: dict[str, Any] = field(default_factory=dict)


class ToolOrchestrator:
    """Runs one chat request: the tool loop, then the streamed answer."""

    def __init__(
        self,
        completion: CompletionClient,
        registry: ToolRegistry,
        context: ToolContext,
        max_iterations: int = settings.MAX_TOOL_ITERATIONS,
    ):
        if max_iterations < 0:
            raise ValueError(f"max_iterations must not be negative, got {max_iterations}")
        self.completion = completion
        self.registry = registry
        self.context = context
        self.max_iterations = max_iterations
        self.state = OrchestratorState.AWAITING_MODEL

    async def run(
        self,
        history: list[dict[str, Any]],
        timezone: Optional[str] = None,
        preferences_context: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> OrchestrationOutcome:
        """Drive the loop for ``history`` and return the outcome with its open stream.

        Raises ``CompletionError`` if any completion, including the opening
        of the final stream, fails.
        """
        timezone = timezone or self.context.timezone
        session_id = str(uuid.uuid4())
        session_log: dict[str, Any] = {
            "session_id": session_id,
            "started_at": datetime.now(dt_timezone.utc).isoformat(),
            "timezone": timezone,
            "tools": self.registry.names,
            "iterations": [],
            "total_tokens": 0,
            "latency_ms": 0,
        }
        start_time = time.time()

        messages: list[dict[str, Any]] = [
            {"role": "system", "content": build_system_prompt(timezone, preferences_context, now)}
        ]
        messages.extend(history)

        calendar_modified = False
        pending_drafts: list[DraftData] = []
        tools = self.registry.schemas()

        # ── Tool loop ──────────────────────────────────────────────
        for iteration in range(self.max_iterations):
            self.state = OrchestratorState.AWAITING_MODEL
            turn = await self.completion.complete(messages, tools)
            session_log["total_tokens"] += turn.total_tokens

            if not turn.tool_calls:
                break

            self.state = OrchestratorState.EXECUTING_TOOLS
            messages.append(turn.to_message())

            for call in turn.tool_calls:
                if self.registry.is_mutating(call.name):
                    calendar_modified = True
                if call.name == DRAFT_TOOL:
                    pending_drafts.append(DraftData.from_arguments(call.arguments))

            results = await asyncio.gather(*(self._dispatch(session_id, call) for call in turn.tool_calls))

            iter_log: dict[str, Any] = {"iteration": iteration + 1, "tool_calls": []}
            for call, (content, error) in zip(turn.tool_calls, results):
                iter_log["tool_calls"].append({"tool": call.name, "args": call.arguments, "error": error})
                messages.append({"role": "tool", "tool_call_id": call.id, "content": content})
            session_log["iterations"].append(iter_log)
        else:
            if self.max_iterations:
                logger.warning("[Session %s] Hit max iterations (%d)", session_id, self.max_iterations)

        # ── Final streamed answer ──────────────────────────────────
        self.state = OrchestratorState.STREAMING
        upstream = self.completion.stream(messages)
        try:
            first_chunk: Optional[str] = await anext(upstream)
        except StopAsyncIteration:
            first_chunk = None
        except Exception:
            self.state = OrchestratorState.DONE
            raise

        session_log["latency_ms"] = int((time.time() - start_time) * 1000)
        logger.info(
            "[Session %s] Agent finished tool phase in %d iterations, %d tokens, %d ms",
            session_id,
            len(session_log["iterations"]),
            session_log["total_tokens"],
            session_log["latency_ms"],
        )

        return OrchestrationOutcome(
            final_stream=self._forward(upstream, first_chunk),
            calendar_modified=calendar_modified,
            pending_drafts=pending_drafts,
            session_log=session_log,
        )

    async def _dispatch(self, session_id: str, call: ToolCall) -> tuple[str, Optional[str]]:
        """Run one tool call in a worker thread; failures become ``{"error": ...}``."""
        logger.info("[Session %s] Tool call: %s(%s)", session_id, call.name, call.arguments)
        try:
            result = await asyncio.to_thread(self.registry.execute, call.name, call.arguments, self.context)
        except Exception as e:
            message = describe_error(e)
            logger.error("[Session %s] Tool %s error: %s", session_id, call.name, message)
            return json.dumps({"error": message}), message
        error = result.get("error") if isinstance(result, dict) else None
        return json.dumps(result, default=str), error

    async def _forward(self, upstream: AsyncIterator[str], first_chunk: Optional[str]) -> AsyncIterator[str]:
        try:
            if first_chunk is not None:
                yield first_chunk
            async for chunk in upstream:
                yield chunk
        finally:
            aclose = getattr(upstream, "aclose", None)
            if aclose is not None:
                await aclose()
            self.state = OrchestratorState.DONE

