"""Pydantic schemas for user preferences sent along with chat requests."""
from typing import Literal

from pydantic import BaseModel, Field, field_validator

PreferredTime = Literal["morning", "afternoon", "evening", "any"]


class RecurringActivity(BaseModel):
    """A weekly habit the agent should find room for (e.g. gym 3x/week, 60 min)."""

    name: str
    times_per_week: int = Field(ge=1, le=7)
    duration_minutes: int = Field(gt=0)
    preferred_time: PreferredTime = "any"
    preferred_days: list[int] = []  # 0=Sun…6=Sat; empty = any day

    @field_validator("preferred_days")
    @classmethod
    def _days_in_range(cls, value: list[int]) -> list[int]:
        if any(d < 0 or d > 6 for d in value):
            raise ValueError("preferred_days must be 0 (Sun) to 6 (Sat)")
        return value


class UserPreferences(BaseModel):
    home_location: str = ""
    work_location: str = ""
    nearest_airport: str = ""
    work_days: list[bool] = [False, True, True, True, True, True, False]  # index 0=Sun…6=Sat
    work_start_time: str = "09:00"
    work_end_time: str = "18:00"
    buffer_minutes: Literal[0, 5, 10, 15, 30] = 0
    lunch_break_start: str = ""
    lunch_break_end: str = ""
    default_meeting_duration: int = 30
    activities: list[RecurringActivity] = []
    communication_style: Literal["concise", "detailed"] = "concise"
    units: Literal["imperial", "metric"] = "imperial"
    additional_context: str = ""

    @field_validator("work_days")
    @classmethod
    def _seven_days(cls, value: list[bool]) -> list[bool]:
        if len(value) != 7:
            raise ValueError("work_days must have exactly 7 entries (Sun…Sat)")
        return value

    @field_validator("work_start_time", "work_end_time")
    @classmethod
    def _hh_mm(cls, value: str) -> str:
        hours, _, minutes = value.partition(":")
        if not (hours.isdigit() and minutes.isdigit() and int(hours) < 24 and int(minutes) < 60):
            raise ValueError("times must be HH:MM (24-hour)")
        return value
