"""Pydantic schemas for calendar events."""
from __future__ import annotations
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field, model_validator


class EventCreate(BaseModel):
    """Either ``start_time``/``end_time`` (timed) or ``start_date`` (all-day)."""

    summary: str = Field(min_length=1, max_length=255)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None  # exclusive
    description: Optional[str] = None
    location: Optional[str] = None

    @model_validator(mode="after")
    def _timed_or_all_day(self) -> "EventCreate":
        timed = self.start_time is not None or self.end_time is not None
        all_day = self.start_date is not None or self.end_date is not None
        if timed and all_day:
            raise ValueError("An event is either timed or all-day, not both")
        if timed and (self.start_time is None or self.end_time is None):
            raise ValueError("Timed events need both start_time and end_time")
        if not timed and self.start_date is None:
            raise ValueError("Provide start_time/end_time or start_date")
        return self


class EventUpdate(BaseModel):
    summary: Optional[str] = Field(default=None, min_length=1, max_length=255)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: Optional[str] = None
    location: Optional[str] = None


class EventOut(BaseModel):
    event_id: str
    summary: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: Optional[str] = None
    location: Optional[str] = None
    is_all_day: bool

    model_config = {"from_attributes": True}
