"""get_free_slots tool — runs the free/busy engine over the stored calendar."""
from typing import Any

from calendar_copilot.agent.context import ToolContext
from calendar_copilot.services import event_service
from calendar_copilot.services.free_busy import busy_intervals_from_events, compute_free_slots
from calendar_copilot.services.timezone_clock import get_timezone, parse_date

TOOL_SCHEMA = {
    "type": "function",
    "function": {
        "name": "get_free_slots",
        "description": (
            "Find available (free) time slots in the user's calendar for a given date range. "
            "Use this whenever the user wants to find time to schedule something, check their "
            "availability, or figure out when they are free. Only the user's working hours are "
            "searched and days with an all-day event are treated as fully booked."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "start_date": {
                    "type": "string",
                    "description": "Start of the search window, YYYY-MM-DD (e.g. '2026-02-27').",
                },
                "end_date": {
                    "type": "string",
                    "description": "End of the search window, YYYY-MM-DD (inclusive).",
                },
                "duration_minutes": {
                    "type": "number",
                    "description": "Desired slot length in minutes. Defaults to 30 if the user didn't specify.",
                },
                "timezone": {
                    "type": "string",
                    "description": (
                        "IANA timezone identifier (e.g. 'America/New_York'). Always pass this; "
                        "the system prompt provides the user's timezone."
                    ),
                },
                "working_days_only": {
                    "type": "boolean",
                    "description": (
                        "Only search the user's work days. Leave false (the default) for personal "
                        "plans, weekend activities and recurring activities."
                    ),
                },
            },
            "required": ["start_date", "end_date", "timezone"],
        },
    },
}


def execute(ctx: ToolContext, args: dict[str, Any]) -> dict[str, Any]:
    """Compute free slots; the response says when the list was truncated."""
    start = parse_date(args["start_date"])
    end = parse_date(args["end_date"])
    duration = args.get("duration_minutes")
    if duration is None:
        duration = ctx.default_slot_minutes
    timezone = args.get("timezone") or ctx.timezone
    get_timezone(timezone)
    policy = ctx.policy_for(timezone)

    with ctx.session() as db:
        events = event_service.list_events(db, start, end, timezone, limit=None)
        busy = busy_intervals_from_events(events)

    result = compute_free_slots(
        busy,
        start,
        end,
        duration,
        policy,
        max_slots=ctx.max_free_slots,
        working_days_only=bool(args.get("working_days_only", False)),
    )

    response: dict[str, Any] = {
        "duration_requested_minutes": duration,
        "search_window": {"start": start.isoformat(), "end": end.isoformat()},
        "working_hours": {
            "start_hour": policy.start_hour,
            "end_hour": policy.end_hour,
            "timezone": policy.timezone,
        },
        "total_free_slots_found": result.total_found,
        "slots_returned": len(result.slots),
        "slots": [slot.to_dict(timezone) for slot in result.slots],
    }
    if result.truncated:
        response["note"] = f"Only the first {len(result.slots)} of {result.total_found} slots are shown."
    return response
