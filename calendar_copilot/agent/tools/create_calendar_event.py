"""create_calendar_event tool — mutating."""
from typing import Any

from calendar_copilot.agent.context import ToolContext
from calendar_copilot.services import event_service
from calendar_copilot.services.timezone_clock import parse_local_datetime

TOOL_SCHEMA = {
    "type": "function",
    "function": {
        "name": "create_calendar_event",
        "description": "Create a new event on the user's calendar.",
        "parameters": {
            "type": "object",
            "properties": {
                "summary": {"type": "string", "description": "Event title."},
                "start_datetime": {
                    "type": "string",
                    "description": "Start time in YYYY-MM-DDTHH:MM:SS (local time, no timezone suffix).",
                },
                "end_datetime": {
                    "type": "string",
                    "description": "End time in YYYY-MM-DDTHH:MM:SS (local time, no timezone suffix).",
                },
                "description": {
                    "type": "string",
                    "description": "Optional event description or notes.",
                },
                "location": {"type": "string", "description": "Optional location."},
            },
            "required": ["summary", "start_datetime", "end_datetime"],
        },
    },
}


def execute(ctx: ToolContext, args: dict[str, Any]) -> dict[str, Any]:
    """Create the event in the user's timezone and echo it back."""
    with ctx.session() as db:
        event = event_service.create_event(
            db=db,
            summary=args["summary"],
            start_time=parse_local_datetime(args["start_datetime"], ctx.timezone),
            end_time=parse_local_datetime(args["end_datetime"], ctx.timezone),
            description=args.get("description") or None,
            location=args.get("location") or None,
        )
        created = event_service.event_to_dict(event, ctx.timezone)
    return {
        "success": True,
        "event_id": created["event_id"],
        "summary": created["summary"],
        "start": created["start"],
        "end": created["end"],
    }
