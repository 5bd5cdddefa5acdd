"""Tool registry — the fixed catalog the model may call.

Each tool lives in its own module under ``agent/tools`` and exposes a
``TOOL_SCHEMA`` (OpenAI function-calling format) plus ``execute(ctx, args)``.
Dispatch is by name; unknown names come back as an error payload instead of
raising, so the model can recover on its next turn.
"""
import logging
from typing import Any, Callable, Iterable, Optional

from calendar_copilot.agent.context import ToolContext
from calendar_copilot.agent.tools import (
    create_calendar_event,
    delete_calendar_event,
    get_events,
    get_free_slots,
    get_weather_forecast,
    prepare_email_draft,
    search_flights,
    update_calendar_event,
)

logger = logging.getLogger(__name__)

ToolHandler = Callable[[ToolContext, dict[str, Any]], Any]

DEFAULT_TOOLS = (
    get_events,
    create_calendar_event,
    update_calendar_event,
    delete_calendar_event,
    get_free_slots,
    prepare_email_draft,
    search_flights,
    get_weather_forecast,
)

MUTATING_TOOLS = frozenset({
    "create_calendar_event",
    "update_calendar_event",
    "delete_calendar_event",
})

DRAFT_TOOL = "prepare_email_draft"


class ToolRegistry:
    """Name -> (schema, handler) lookup.

    ``handlers`` replaces the handler of an already-registered tool while
    keeping its schema, which is how tests stub out individual tools.
    """

    def __init__(
        self,
        tools: Optional[Iterable[Any]] = None,
        handlers: Optional[dict[str, ToolHandler]] = None,
    ):
        self._schemas: dict[str, dict[str, Any]] = {}
        self._handlers: dict[str, ToolHandler] = {}
        for module in tools if tools is not None else DEFAULT_TOOLS:
            name = module.TOOL_SCHEMA["function"]["name"]
            self._schemas[name] = module.TOOL_SCHEMA
            self._handlers[name] = module.execute
        for name, handler in (handlers or {}).items():
            if name not in self._schemas:
                raise ValueError(f"Cannot override unknown tool: {name}")
            self._handlers[name] = handler

    @property
    def names(self) -> list[str]:
        return list(self._schemas)

    def schemas(self) -> list[dict[str, Any]]:
        """Schemas in registration order, ready to pass as ``tools=``."""
        return list(self._schemas.values())

    def is_mutating(self, name: str) -> bool:
        return name in MUTATING_TOOLS

    def execute(self, name: str, args: dict[str, Any], context: ToolContext) -> Any:
        """Run a handler. Handler exceptions propagate to the caller."""
        handler = self._handlers.get(name)
        if handler is None:
            logger.warning("Model requested unknown tool %s", name)
            return {"error": f"Unknown tool: {name}"}
        return handler(context, args)
