"""delete_calendar_event tool — mutating, permanent."""
from typing import Any

from calendar_copilot.agent.context import ToolContext
from calendar_copilot.services import event_service

TOOL_SCHEMA = {
    "type": "function",
    "function": {
        "name": "delete_calendar_event",
        "description": (
            "Permanently delete a calendar event. Requires event_id; call get_events first if "
            "you don't have it. Only call this after the user has explicitly confirmed the deletion."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "event_id": {
                    "type": "string",
                    "description": "ID of the event to delete.",
                },
            },
            "required": ["event_id"],
        },
    },
}


def execute(ctx: ToolContext, args: dict[str, Any]) -> dict[str, Any]:
    with ctx.session() as db:
        event_service.delete_event(db, args["event_id"])
    return {"success": True, "event_id": args["event_id"]}
