"""Interval model shared by the free/busy engine and the tools."""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from calendar_copilot.errors import InvalidInputError
from calendar_copilot.services.timezone_clock import TimezoneLike, format_with_offset, get_timezone


@dataclass(frozen=True)
class BusyInterval:
    """A time range (or whole local day) in which nothing new may be booked."""

    is_all_day: bool = False
    date: Optional[date] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def __post_init__(self):
        if self.is_all_day:
            if self.date is None:
                raise InvalidInputError("All-day busy interval requires a date")
            return
        if self.start is None or self.end is None:
            raise InvalidInputError("Timed busy interval requires start and end")
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise InvalidInputError("Busy interval instants must be timezone-aware")
        if not self.start < self.end:
            raise InvalidInputError(
                f"Busy interval must end after it starts ({self.start.isoformat()} >= {self.end.isoformat()})"
            )

    @classmethod
    def all_day(cls, day: date) -> "BusyInterval":
        return cls(is_all_day=True, date=day)

    @classmethod
    def timed(cls, start: datetime, end: datetime) -> "BusyInterval":
        return cls(start=start, end=end)


@dataclass(frozen=True)
class FreeSlot:
    start: datetime
    end: datetime
    available_minutes: int

    @classmethod
    def between(cls, start: datetime, end: datetime) -> "FreeSlot":
        return cls(start=start, end=end, available_minutes=round((end - start).total_seconds() / 60))

    def to_dict(self, tz: TimezoneLike) -> dict[str, Any]:
        return {
            "start": format_with_offset(self.start, tz),
            "end": format_with_offset(self.end, tz),
            "available_minutes": self.available_minutes,
        }


@dataclass(frozen=True)
class WorkingHoursPolicy:
    """Daily scheduling window in a named timezone.

    ``work_days`` holds ``date.weekday()`` numbers (Monday=0); ``None``
    treats every day as a working day.
    """

    start_hour: int = 9
    end_hour: int = 18
    timezone: str = "UTC"
    work_days: Optional[frozenset] = None

    def __post_init__(self):
        for name in ("start_hour", "end_hour"):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 <= value <= 23:
                raise InvalidInputError(f"{name} must be an integer between 0 and 23, got {value!r}")
        if self.start_hour >= self.end_hour:
            raise InvalidInputError(
                f"Working hours must start before they end ({self.start_hour} >= {self.end_hour})"
            )
        get_timezone(self.timezone)
        if self.work_days is not None:
            days = frozenset(self.work_days)
            if any(d not in range(7) for d in days):
                raise InvalidInputError(f"work_days must be weekday numbers 0-6, got {sorted(days)}")
            object.__setattr__(self, "work_days", days)

    def is_working_day(self, day: date) -> bool:
        return self.work_days is None or day.weekday() in self.work_days

    def with_timezone(self, timezone: str) -> "WorkingHoursPolicy":
        return WorkingHoursPolicy(self.start_hour, self.end_hour, timezone, self.work_days)


@dataclass
class FreeSlotResult:
    """Slots returned to the caller plus the true number found before capping."""

    slots: list[FreeSlot] = field(default_factory=list)
    total_found: int = 0

    @property
    def truncated(self) -> bool:
        return self.total_found > len(self.slots)
