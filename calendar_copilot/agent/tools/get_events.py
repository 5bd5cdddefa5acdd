"""get_events tool — read-only listing of calendar events for a date range."""
from typing import Any

from calendar_copilot.agent.context import ToolContext
from calendar_copilot.services import event_service
from calendar_copilot.services.timezone_clock import parse_date

MAX_EVENTS_FOR_AGENT = 50

TOOL_SCHEMA = {
    "type": "function",
    "function": {
        "name": "get_events",
        "description": (
            "Fetch calendar events (with their IDs, titles, and times) for a date range. "
            "Always call this before update_calendar_event or delete_calendar_event so you "
            "have the correct event_id."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "start_date": {
                    "type": "string",
                    "description": "Start of range, YYYY-MM-DD.",
                },
                "end_date": {
                    "type": "string",
                    "description": "End of range, YYYY-MM-DD (inclusive).",
                },
            },
            "required": ["start_date", "end_date"],
        },
    },
}


def execute(ctx: ToolContext, args: dict[str, Any]) -> dict[str, Any]:
    """List events in the user's timezone, times rendered with explicit offsets."""
    start = parse_date(args["start_date"])
    end = parse_date(args["end_date"])
    with ctx.session() as db:
        events = event_service.list_events(db, start, end, ctx.timezone, limit=MAX_EVENTS_FOR_AGENT)
        return {
            "timezone": ctx.timezone,
            "events": [event_service.event_to_dict(ev, ctx.timezone) for ev in events],
        }
