"""Event service — reads and writes the local calendar store.

Responsibilities:
- Range listing in the user's timezone (local midnight to local midnight)
- Timing invariants: timed events end after they start, all-day events
  cover at least one date (``end_date`` exclusive)
- Partial updates that keep the event either timed or all-day
- Hard delete (the agent only deletes after the user confirms)
"""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from calendar_copilot.errors import InvalidInputError
from calendar_copilot.models.event import CalendarEvent
from calendar_copilot.services.timezone_clock import (
    TimezoneLike,
    format_with_offset,
    local_day_bounds,
)

logger = logging.getLogger(__name__)

MAX_EVENTS_LISTED = 250
UPDATABLE_FIELDS = ("summary", "description", "location", "start_time", "end_time", "start_date", "end_date")


def event_to_dict(event: CalendarEvent, tz: TimezoneLike) -> dict[str, Any]:
    """Serialize an event for the agent: local times with explicit offsets, dates for all-day."""
    if event.is_all_day:
        start = event.start_date.isoformat()
        end = (event.end_date or event.start_date + timedelta(days=1)).isoformat()
    else:
        start = format_with_offset(event.start_time, tz)
        end = format_with_offset(event.end_time or event.start_time, tz)
    return {
        "event_id": event.event_id,
        "summary": event.summary or "(No title)",
        "start": start,
        "end": end,
        "all_day": event.is_all_day,
        "location": event.location,
        "description": event.description,
    }


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _validate_timing(event: CalendarEvent) -> None:
    if event.start_time is not None:
        if event.start_date is not None or event.end_date is not None:
            raise InvalidInputError("An event is either timed or all-day, not both")
        if event.end_time is None:
            raise InvalidInputError("Timed events need an end time")
        if event.end_time <= event.start_time:
            raise InvalidInputError(
                f"Event must end after it starts ({event.start_time.isoformat()} >= {event.end_time.isoformat()})"
            )
        return
    if event.end_time is not None:
        raise InvalidInputError("An all-day event cannot have an end time; give a start time to make it timed")
    if event.start_date is None:
        raise InvalidInputError("Provide start_time/end_time for a timed event or start_date for an all-day event")
    if event.end_date is not None and event.end_date <= event.start_date:
        raise InvalidInputError("All-day end_date is exclusive and must be after start_date")


def list_events(
    db: Session,
    start_date: date,
    end_date: date,
    tz: TimezoneLike,
    limit: Optional[int] = MAX_EVENTS_LISTED,
) -> list[CalendarEvent]:
    """Events touching the local dates ``start_date``..``end_date`` (inclusive), chronologically."""
    if start_date > end_date:
        raise InvalidInputError(
            f"Start date {start_date.isoformat()} is after end date {end_date.isoformat()}"
        )
    range_start, _ = local_day_bounds(start_date, tz)
    _, range_end = local_day_bounds(end_date, tz)

    timed = (
        db.query(CalendarEvent)
        .filter(
            CalendarEvent.start_time.isnot(None),
            CalendarEvent.start_time < range_end,
            or_(
                CalendarEvent.end_time > range_start,
                CalendarEvent.start_time >= range_start,
            ),
        )
        .all()
    )
    all_day = (
        db.query(CalendarEvent)
        .filter(
            CalendarEvent.start_time.is_(None),
            CalendarEvent.start_date <= end_date,
            or_(
                CalendarEvent.end_date > start_date,
                and_(CalendarEvent.end_date.is_(None), CalendarEvent.start_date >= start_date),
            ),
        )
        .all()
    )

    def _sort_key(event: CalendarEvent) -> datetime:
        if event.is_all_day:
            return local_day_bounds(event.start_date, tz)[0]
        return event.start_time

    events = sorted(timed + all_day, key=_sort_key)
    return events if limit is None else events[:limit]


def get_event(db: Session, event_id: str) -> CalendarEvent:
    event = db.query(CalendarEvent).filter(CalendarEvent.event_id == event_id).first()
    if not event:
        raise HTTPException(status_code=404, detail=f"Event {event_id} not found")
    return event


def create_event(
    db: Session,
    summary: str,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    description: Optional[str] = None,
    location: Optional[str] = None,
) -> CalendarEvent:
    """Create a timed or all-day event after checking its timing."""
    event = CalendarEvent(
        summary=summary or "(No title)",
        start_time=_aware(start_time),
        end_time=_aware(end_time),
        start_date=start_date,
        end_date=end_date if end_date is not None or start_date is None else start_date + timedelta(days=1),
        description=description,
        location=location,
    )
    _validate_timing(event)
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Created event '%s' (%s)", event.summary, event.event_id)
    return event


def update_event(db: Session, event_id: str, updates: dict[str, Any]) -> CalendarEvent:
    """Apply a partial update; only the given fields change."""
    event = get_event(db, event_id)
    if event.is_all_day and updates.get("start_time") is None and updates.get("end_time") is not None:
        raise InvalidInputError(
            "Event is all-day; provide a start time along with the end time to make it a timed event"
        )

    for field, value in updates.items():
        if field in ("start_time", "end_time"):
            value = _aware(value)
        if field in UPDATABLE_FIELDS:
            setattr(event, field, value)

    # Moving a timed event to all-day (or back) clears the other representation.
    if "start_date" in updates and updates["start_date"] is not None and "start_time" not in updates:
        event.start_time = None
        event.end_time = None
        if "end_date" not in updates:
            event.end_date = updates["start_date"] + timedelta(days=1)
    elif "start_time" in updates and updates["start_time"] is not None and "start_date" not in updates:
        event.start_date = None
        event.end_date = None

    try:
        _validate_timing(event)
    except InvalidInputError:
        db.rollback()
        raise

    db.commit()
    db.refresh(event)
    logger.info("Updated event %s (%s)", event_id, ", ".join(sorted(updates)))
    return event


def delete_event(db: Session, event_id: str) -> None:
    """Permanently delete an event."""
    event = get_event(db, event_id)
    db.delete(event)
    db.commit()
    logger.info("Deleted event %s", event_id)
