"""Calendar API routes — event CRUD, the week grid and free-slot search."""
import logging
from datetime import date, timedelta

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from calendar_copilot.config import settings
from calendar_copilot.database import get_db
from calendar_copilot.schemas.availability import (
    FreeSlotOut,
    FreeSlotsOut,
    LayoutSlotOut,
    WeekDayOut,
    WeekOut,
)
from calendar_copilot.schemas.event import EventCreate, EventOut, EventUpdate
from calendar_copilot.services import event_service
from calendar_copilot.services.free_busy import busy_intervals_from_events, compute_free_slots
from calendar_copilot.services.overlap_layout import build_week
from calendar_copilot.services.preferences import working_hours_from_preferences
from calendar_copilot.services.timezone_clock import get_timezone, to_local

logger = logging.getLogger(__name__)
router = APIRouter()

WEEK_DAYS = 7


@router.get("", response_model=list[EventOut])
def list_events(
    start: date = Query(..., description="First local date, YYYY-MM-DD"),
    end: date = Query(..., description="Last local date (inclusive), YYYY-MM-DD"),
    timezone: str = Query(settings.DEFAULT_TIMEZONE),
    db: Session = Depends(get_db),
):
    """List events touching ``start``..``end`` in the given timezone."""
    get_timezone(timezone)
    return event_service.list_events(db, start, end, timezone)


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(payload: EventCreate, db: Session = Depends(get_db)):
    return event_service.create_event(db=db, **payload.model_dump())


@router.get("/week", response_model=WeekOut)
def get_week(
    start: date = Query(..., description="First day of the week, YYYY-MM-DD"),
    timezone: str = Query(settings.DEFAULT_TIMEZONE),
    db: Session = Depends(get_db),
):
    """Seven days of events with side-by-side columns for overlapping timed events."""
    get_timezone(timezone)
    events = event_service.list_events(db, start, start + timedelta(days=WEEK_DAYS - 1), timezone, limit=None)
    days = [
        WeekDayOut(
            day=week_day.date,
            all_day=[EventOut.model_validate(ev) for ev in week_day.all_day],
            timed=[LayoutSlotOut.model_validate(slot) for slot in week_day.timed],
        )
        for week_day in build_week(events, start, timezone, days=WEEK_DAYS)
    ]
    return WeekOut(timezone=timezone, days=days)


@router.get("/free-slots", response_model=FreeSlotsOut)
def get_free_slots(
    start_date: date = Query(...),
    end_date: date = Query(...),
    duration_minutes: float = Query(settings.DEFAULT_SLOT_MINUTES),
    timezone: str = Query(settings.DEFAULT_TIMEZONE),
    db: Session = Depends(get_db),
):
    """Free gaps inside the configured working hours."""
    policy = working_hours_from_preferences(None, timezone)
    events = event_service.list_events(db, start_date, end_date, timezone, limit=None)
    result = compute_free_slots(
        busy_intervals_from_events(events),
        start_date,
        end_date,
        duration_minutes,
        policy,
        max_slots=settings.MAX_FREE_SLOTS,
    )
    return FreeSlotsOut(
        timezone=timezone,
        duration_minutes=duration_minutes,
        total_found=result.total_found,
        truncated=result.truncated,
        slots=[
            FreeSlotOut(
                start=to_local(slot.start, timezone),
                end=to_local(slot.end, timezone),
                available_minutes=slot.available_minutes,
            )
            for slot in result.slots
        ],
    )


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: str, db: Session = Depends(get_db)):
    return event_service.get_event(db, event_id)


@router.patch("/{event_id}", response_model=EventOut)
def update_event(event_id: str, payload: EventUpdate, db: Session = Depends(get_db)):
    """Partial update: only the fields present in the body change."""
    updates = payload.model_dump(exclude_unset=True)
    return event_service.update_event(db, event_id, updates)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: str, db: Session = Depends(get_db)):
    event_service.delete_event(db, event_id)
