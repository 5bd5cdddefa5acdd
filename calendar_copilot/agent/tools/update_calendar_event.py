"""update_calendar_event tool — mutating, partial update."""
from typing import Any

from calendar_copilot.agent.context import ToolContext
from calendar_copilot.services import event_service
from calendar_copilot.services.timezone_clock import parse_local_datetime

TOOL_SCHEMA = {
    "type": "function",
    "function": {
        "name": "update_calendar_event",
        "description": (
            "Update fields on an existing calendar event. Requires event_id; call get_events "
            "first if you don't have it. Only the fields you provide will be changed."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "event_id": {
                    "type": "string",
                    "description": "ID of the event to update.",
                },
                "summary": {"type": "string", "description": "New event title."},
                "start_datetime": {
                    "type": "string",
                    "description": "New start time, YYYY-MM-DDTHH:MM:SS (local time).",
                },
                "end_datetime": {
                    "type": "string",
                    "description": "New end time, YYYY-MM-DDTHH:MM:SS (local time).",
                },
                "description": {"type": "string", "description": "New description."},
                "location": {"type": "string", "description": "New location."},
            },
            "required": ["event_id"],
        },
    },
}


def execute(ctx: ToolContext, args: dict[str, Any]) -> dict[str, Any]:
    """Patch only the provided fields and return the updated snapshot."""
    updates: dict[str, Any] = {}
    for field in ("summary", "description", "location"):
        if args.get(field) is not None:
            updates[field] = args[field]
    if args.get("start_datetime") is not None:
        updates["start_time"] = parse_local_datetime(args["start_datetime"], ctx.timezone)
    if args.get("end_datetime") is not None:
        updates["end_time"] = parse_local_datetime(args["end_datetime"], ctx.timezone)

    with ctx.session() as db:
        event = event_service.update_event(db, args["event_id"], updates)
        updated = event_service.event_to_dict(event, ctx.timezone)
    return {
        "success": True,
        "event_id": updated["event_id"],
        "summary": updated["summary"],
        "start": updated["start"],
        "end": updated["end"],
    }
