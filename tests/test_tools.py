"""Tests for the tool registry and the tool handlers.

Covers:
- Catalog contents, schema format, mutating subset, unknown tools
- Handler overrides
- Calendar tools against the SQLite event store, in the user's timezone
- Free-slot tool output shape and truncation note
- Draft, flight and weather tools
"""
from datetime import date, datetime, timezone

import pytest
from fastapi import HTTPException

from calendar_copilot.agent.context import ToolContext
from calendar_copilot.agent.registry import DRAFT_TOOL, MUTATING_TOOLS, ToolRegistry
from calendar_copilot.errors import IntegrationError, InvalidInputError
from calendar_copilot.models.event import CalendarEvent
from calendar_copilot.services.intervals import WorkingHoursPolicy
from tests.conftest import create_all_day_event, create_timed_event

NY = "America/New_York"

EXPECTED_TOOLS = [
    "get_events",
    "create_calendar_event",
    "update_calendar_event",
    "delete_calendar_event",
    "get_free_slots",
    "prepare_email_draft",
    "search_flights",
    "get_weather_forecast",
]


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def ctx(session_factory):
    return ToolContext(session_factory=session_factory, timezone=NY)


@pytest.fixture
def registry():
    return ToolRegistry()


# ===========================================================================
# Registry
# ===========================================================================
class TestRegistry:
    """Catalog and dispatch."""

    def test_catalog(self, registry):
        assert registry.names == EXPECTED_TOOLS

    def test_schemas_are_function_tools(self, registry):
        for schema in registry.schemas():
            assert schema["type"] == "function"
            function = schema["function"]
            assert function["description"]
            assert function["parameters"]["type"] == "object"
            for required in function["parameters"].get("required", []):
                assert required in function["parameters"]["properties"]

    def test_mutating_subset(self, registry):
        assert MUTATING_TOOLS == {"create_calendar_event", "update_calendar_event", "delete_calendar_event"}
        assert registry.is_mutating("delete_calendar_event")
        assert not registry.is_mutating("get_events")
        assert not registry.is_mutating(DRAFT_TOOL)

    def test_unknown_tool_returns_error(self, registry, ctx):
        assert registry.execute("launch_rocket", {}, ctx) == {"error": "Unknown tool: launch_rocket"}

    def test_override_handler(self, ctx):
        registry = ToolRegistry(handlers={"get_events": lambda context, args: {"events": ["stub"]}})
        assert registry.execute("get_events", {}, ctx) == {"events": ["stub"]}
        assert "get_events" in registry.names

    def test_override_unknown_handler_rejected(self):
        with pytest.raises(ValueError, match="unknown tool"):
            ToolRegistry(handlers={"nope": lambda context, args: None})

    def test_handler_errors_propagate(self, registry, ctx):
        with pytest.raises(KeyError):
            registry.execute("get_events", {}, ctx)


# ===========================================================================
# Calendar tools
# ===========================================================================
class TestCalendarTools:
    """get/create/update/delete against the event store."""

    def test_get_events(self, registry, ctx, db):
        create_timed_event(db, "Standup", utc(2026, 3, 2, 14), utc(2026, 3, 2, 14, 15))
        create_all_day_event(db, "Holiday", date(2026, 3, 3))
        create_timed_event(db, "Out of range", utc(2026, 3, 10, 14), utc(2026, 3, 10, 15))

        result = registry.execute("get_events", {"start_date": "2026-03-02", "end_date": "2026-03-03"}, ctx)

        assert result["timezone"] == NY
        assert [e["summary"] for e in result["events"]] == ["Standup", "Holiday"]
        standup, holiday = result["events"]
        assert standup["start"] == "2026-03-02T09:00:00-05:00"
        assert standup["all_day"] is False
        assert holiday == {
            "event_id": holiday["event_id"],
            "summary": "Holiday",
            "start": "2026-03-03",
            "end": "2026-03-04",
            "all_day": True,
            "location": None,
            "description": None,
        }

    def test_get_events_invalid_date(self, registry, ctx):
        with pytest.raises(InvalidInputError):
            registry.execute("get_events", {"start_date": "2026-02-30", "end_date": "2026-03-01"}, ctx)

    def test_create_event_in_user_timezone(self, registry, ctx, db):
        result = registry.execute(
            "create_calendar_event",
            {
                "summary": "Dentist",
                "start_datetime": "2026-03-02T09:00:00",
                "end_datetime": "2026-03-02T10:00:00",
                "location": "Main St",
            },
            ctx,
        )
        assert result["success"] is True
        assert result["start"] == "2026-03-02T09:00:00-05:00"

        stored = db.query(CalendarEvent).filter(CalendarEvent.event_id == result["event_id"]).one()
        assert stored.start_time == utc(2026, 3, 2, 14)
        assert stored.location == "Main St"

    def test_create_event_end_before_start(self, registry, ctx, db):
        with pytest.raises(InvalidInputError, match="end after it starts"):
            registry.execute(
                "create_calendar_event",
                {"summary": "Backwards", "start_datetime": "2026-03-02T10:00:00", "end_datetime": "2026-03-02T09:00:00"},
                ctx,
            )
        assert db.query(CalendarEvent).count() == 0

    def test_create_event_missing_field(self, registry, ctx):
        with pytest.raises(KeyError):
            registry.execute("create_calendar_event", {"summary": "No times"}, ctx)

    def test_update_only_given_fields(self, registry, ctx, db):
        event = create_timed_event(db, "Lunch", utc(2026, 3, 2, 17), utc(2026, 3, 2, 18), location="Cafe")
        result = registry.execute("update_calendar_event", {"event_id": event.event_id, "summary": "Team lunch"}, ctx)

        assert result["summary"] == "Team lunch"
        assert result["start"] == "2026-03-02T12:00:00-05:00"
        db.expire_all()
        refreshed = db.query(CalendarEvent).filter(CalendarEvent.event_id == event.event_id).one()
        assert refreshed.location == "Cafe"
        assert refreshed.end_time == utc(2026, 3, 2, 18)

    def test_update_times(self, registry, ctx, db):
        event = create_timed_event(db, "Lunch", utc(2026, 3, 2, 17), utc(2026, 3, 2, 18))
        result = registry.execute(
            "update_calendar_event",
            {"event_id": event.event_id, "start_datetime": "2026-03-02T13:00:00", "end_datetime": "2026-03-02T14:00:00"},
            ctx,
        )
        assert result["start"] == "2026-03-02T13:00:00-05:00"
        assert result["end"] == "2026-03-02T14:00:00-05:00"

    def test_update_end_only_on_all_day_event_rejected(self, registry, ctx, db):
        event = create_all_day_event(db, "Offsite", date(2026, 3, 2))
        with pytest.raises(InvalidInputError, match="all-day"):
            registry.execute(
                "update_calendar_event",
                {"event_id": event.event_id, "end_datetime": "2026-03-02T10:00:00"},
                ctx,
            )
        db.expire_all()
        stored = db.query(CalendarEvent).filter(CalendarEvent.event_id == event.event_id).one()
        assert stored.end_time is None
        assert (stored.start_date, stored.end_date) == (date(2026, 3, 2), date(2026, 3, 3))

    def test_update_all_day_event_to_timed(self, registry, ctx, db):
        event = create_all_day_event(db, "Offsite", date(2026, 3, 2))
        result = registry.execute(
            "update_calendar_event",
            {"event_id": event.event_id, "start_datetime": "2026-03-02T09:00:00", "end_datetime": "2026-03-02T10:00:00"},
            ctx,
        )
        assert result["start"] == "2026-03-02T09:00:00-05:00"
        assert result["end"] == "2026-03-02T10:00:00-05:00"
        db.expire_all()
        stored = db.query(CalendarEvent).filter(CalendarEvent.event_id == event.event_id).one()
        assert stored.start_date is None and stored.end_date is None

    def test_update_missing_event(self, registry, ctx):
        with pytest.raises(HTTPException) as exc_info:
            registry.execute("update_calendar_event", {"event_id": "missing", "summary": "x"}, ctx)
        assert exc_info.value.status_code == 404

    def test_delete(self, registry, ctx, db):
        event = create_timed_event(db, "Cancelled", utc(2026, 3, 2, 17), utc(2026, 3, 2, 18))
        event_id = event.event_id
        assert registry.execute("delete_calendar_event", {"event_id": event_id}, ctx) == {
            "success": True,
            "event_id": event_id,
        }
        db.expire_all()
        assert db.query(CalendarEvent).filter(CalendarEvent.event_id == event_id).first() is None


# ===========================================================================
# get_free_slots
# ===========================================================================
class TestFreeSlotsTool:
    """Free/busy engine over the stored calendar."""

    def test_slots_around_a_meeting(self, registry, ctx, db):
        create_timed_event(db, "Sync", utc(2026, 3, 2, 15), utc(2026, 3, 2, 15, 30))  # 10:00 EST
        result = registry.execute(
            "get_free_slots",
            {"start_date": "2026-03-02", "end_date": "2026-03-02", "duration_minutes": 30, "timezone": NY},
            ctx,
        )
        assert result["duration_requested_minutes"] == 30
        assert result["search_window"] == {"start": "2026-03-02", "end": "2026-03-02"}
        assert result["total_free_slots_found"] == 2
        assert result["slots_returned"] == 2
        assert "note" not in result
        assert result["slots"] == [
            {"start": "2026-03-02T09:00:00-05:00", "end": "2026-03-02T10:00:00-05:00", "available_minutes": 60},
            {"start": "2026-03-02T10:30:00-05:00", "end": "2026-03-02T18:00:00-05:00", "available_minutes": 450},
        ]

    def test_all_day_event_blocks_day(self, registry, ctx, db):
        create_all_day_event(db, "Offsite", date(2026, 3, 2))
        result = registry.execute(
            "get_free_slots",
            {"start_date": "2026-03-02", "end_date": "2026-03-02", "timezone": NY},
            ctx,
        )
        assert result["slots"] == []
        assert result["total_free_slots_found"] == 0

    def test_default_duration(self, registry, ctx):
        result = registry.execute("get_free_slots", {"start_date": "2026-03-02", "end_date": "2026-03-02", "timezone": NY}, ctx)
        assert result["duration_requested_minutes"] == 30

    def test_truncation_note(self, session_factory, registry):
        ctx = ToolContext(session_factory=session_factory, timezone="UTC", max_free_slots=3)
        result = registry.execute(
            "get_free_slots",
            {"start_date": "2026-03-02", "end_date": "2026-03-06", "timezone": "UTC"},
            ctx,
        )
        assert result["slots_returned"] == 3
        assert result["total_free_slots_found"] == 5
        assert result["note"] == "Only the first 3 of 5 slots are shown."

    def test_uses_context_working_hours(self, session_factory, registry):
        policy = WorkingHoursPolicy(10, 12, "UTC", work_days={0, 1, 2, 3, 4})
        ctx = ToolContext(session_factory=session_factory, timezone="UTC", working_hours=policy)
        result = registry.execute(
            "get_free_slots",
            {"start_date": "2026-03-06", "end_date": "2026-03-08", "timezone": NY, "working_days_only": True},
            ctx,
        )
        assert result["working_hours"] == {"start_hour": 10, "end_hour": 12, "timezone": NY}
        assert result["slots"] == [
            {"start": "2026-03-06T10:00:00-05:00", "end": "2026-03-06T12:00:00-05:00", "available_minutes": 120},
        ]

    def test_weekend_searched_unless_working_days_only(self, session_factory, registry):
        policy = WorkingHoursPolicy(10, 12, "UTC", work_days={0, 1, 2, 3, 4})
        ctx = ToolContext(session_factory=session_factory, timezone="UTC", working_hours=policy)
        result = registry.execute(
            "get_free_slots",
            {"start_date": "2026-03-07", "end_date": "2026-03-07", "duration_minutes": 60, "timezone": NY},
            ctx,
        )
        assert result["slots"] == [
            {"start": "2026-03-07T10:00:00-05:00", "end": "2026-03-07T12:00:00-05:00", "available_minutes": 120},
        ]

    def test_zero_duration_rejected(self, registry, ctx):
        with pytest.raises(InvalidInputError):
            registry.execute(
                "get_free_slots",
                {"start_date": "2026-03-02", "end_date": "2026-03-02", "duration_minutes": 0, "timezone": NY},
                ctx,
            )

    def test_unknown_timezone_rejected(self, registry, ctx):
        with pytest.raises(InvalidInputError, match="Unknown timezone"):
            registry.execute(
                "get_free_slots",
                {"start_date": "2026-03-02", "end_date": "2026-03-02", "timezone": "Atlantis/Capital"},
                ctx,
            )


# ===========================================================================
# Draft and travel tools
# ===========================================================================
class FakeFlights:
    def __init__(self):
        self.calls = []

    def search_flights(self, **kwargs):
        self.calls.append(kwargs)
        return {"flights": []}


class FakeWeather:
    def forecast(self, city, start_date, end_date):
        return {"destination": city, "forecast": [], "packing_list": []}


class TestOtherTools:
    """Tools that do not touch the event store."""

    def test_prepare_email_draft_echoes(self, registry, ctx):
        result = registry.execute(
            DRAFT_TOOL,
            {"to": "joe@company.com", "subject": "Reschedule", "body": "Can we move to 3pm?"},
            ctx,
        )
        assert result["prepared"] is True
        assert (result["to"], result["subject"], result["body"]) == ("joe@company.com", "Reschedule", "Can we move to 3pm?")

    def test_prepare_email_draft_without_recipient(self, registry, ctx):
        assert registry.execute(DRAFT_TOOL, {"subject": "Hi", "body": "Hello"}, ctx)["to"] is None

    def test_search_flights_defaults(self, session_factory, registry):
        flights = FakeFlights()
        ctx = ToolContext(session_factory=session_factory, flights=flights)
        registry.execute("search_flights", {"origin": "SFO", "destination": "NRT", "departure_date": "2026-04-01"}, ctx)
        assert flights.calls == [{
            "origin": "SFO",
            "destination": "NRT",
            "departure_date": "2026-04-01",
            "return_date": None,
            "adults": 1,
            "currency": "USD",
        }]

    def test_search_flights_unavailable(self, registry, ctx):
        with pytest.raises(IntegrationError):
            registry.execute("search_flights", {"origin": "SFO", "destination": "NRT", "departure_date": "2026-04-01"}, ctx)

    def test_weather(self, session_factory, registry):
        ctx = ToolContext(session_factory=session_factory, weather=FakeWeather())
        result = registry.execute("get_weather_forecast", {"city": "Tokyo", "start_date": "2026-04-01", "end_date": "2026-04-03"}, ctx)
        assert result["destination"] == "Tokyo"

    def test_weather_unavailable(self, registry, ctx):
        with pytest.raises(IntegrationError):
            registry.execute("get_weather_forecast", {"city": "Tokyo", "start_date": "2026-04-01", "end_date": "2026-04-03"}, ctx)
