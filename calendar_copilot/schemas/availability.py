"""Pydantic schemas for free-slot search and the week grid."""
from __future__ import annotations
from datetime import date, datetime
from pydantic import BaseModel

from calendar_copilot.schemas.event import EventOut


class FreeSlotOut(BaseModel):
    start: datetime
    end: datetime
    available_minutes: int


class FreeSlotsOut(BaseModel):
    timezone: str
    duration_minutes: float
    total_found: int
    truncated: bool
    slots: list[FreeSlotOut] = []


class LayoutSlotOut(BaseModel):
    id: str
    summary: str
    start_minute: int
    end_minute: int
    column: int
    total_columns: int

    model_config = {"from_attributes": True}


class WeekDayOut(BaseModel):
    day: date
    all_day: list[EventOut] = []
    timed: list[LayoutSlotOut] = []

    model_config = {"from_attributes": True}


class WeekOut(BaseModel):
    timezone: str
    days: list[WeekDayOut]
