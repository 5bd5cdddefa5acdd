"""Free/busy engine — subtracts busy intervals from daily working windows.

Per calendar day in the requested range:

1. Resolve ``work_start``/``work_end`` through the timezone clock (a fresh
   offset every day, so ranges crossing a DST switch stay exact).
2. An all-day busy interval on that date blocks the whole day.
3. Otherwise clip the timed intervals overlapping the window, sort them, and
   sweep a ``free_from`` cursor across them, emitting every gap at least as
   long as the requested duration, then the tail up to ``work_end``.

The engine is a pure function of its inputs.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional

from calendar_copilot.errors import InvalidInputError
from calendar_copilot.services.intervals import (
    BusyInterval,
    FreeSlot,
    FreeSlotResult,
    WorkingHoursPolicy,
)
from calendar_copilot.services.timezone_clock import (
    get_timezone,
    instant_at_local_hour,
    iter_dates,
)

logger = logging.getLogger(__name__)

MAX_SLOTS_RETURNED = 30
MIN_EVENT_MINUTES = 30


def compute_free_slots(
    busy: Iterable[BusyInterval],
    start_date: date,
    end_date: date,
    duration_minutes: float,
    policy: WorkingHoursPolicy,
    max_slots: Optional[int] = MAX_SLOTS_RETURNED,
    working_days_only: bool = False,
) -> FreeSlotResult:
    """Return chronological free slots of at least ``duration_minutes``.

    ``end_date`` is inclusive.  At most ``max_slots`` slots are returned;
    ``total_found`` on the result carries the uncapped count.  Days outside
    ``policy.work_days`` are searched too unless ``working_days_only`` is set.
    """
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, (int, float)):
        raise InvalidInputError(f"Duration must be a number of minutes, got {duration_minutes!r}")
    if duration_minutes <= 0:
        raise InvalidInputError(f"Duration must be positive, got {duration_minutes}")
    if start_date > end_date:
        raise InvalidInputError(
            f"Start date {start_date.isoformat()} is after end date {end_date.isoformat()}"
        )
    if max_slots is not None and max_slots < 0:
        raise InvalidInputError(f"max_slots must not be negative, got {max_slots}")

    tz = get_timezone(policy.timezone)
    busy = list(busy)
    blocked_dates = {interval.date for interval in busy if interval.is_all_day}
    timed = [interval for interval in busy if not interval.is_all_day]

    slots: list[FreeSlot] = []
    for day in iter_dates(start_date, end_date):
        if day in blocked_dates or (working_days_only and not policy.is_working_day(day)):
            continue
        work_start = instant_at_local_hour(day, policy.start_hour, tz)
        work_end = instant_at_local_hour(day, policy.end_hour, tz)
        if work_end <= work_start:
            # Window swallowed by a DST gap.
            continue
        slots.extend(_free_slots_in_window(timed, work_start, work_end, duration_minutes))

    capped = slots if max_slots is None else slots[:max_slots]
    logger.debug(
        "Free slots %s..%s in %s: %d found, %d returned",
        start_date, end_date, policy.timezone, len(slots), len(capped),
    )
    return FreeSlotResult(slots=capped, total_found=len(slots))


def _free_slots_in_window(
    timed: list[BusyInterval],
    work_start: datetime,
    work_end: datetime,
    duration_minutes: float,
) -> list[FreeSlot]:
    clipped = sorted(
        (max(interval.start, work_start), min(interval.end, work_end))
        for interval in timed
        if interval.start < work_end and interval.end > work_start
    )

    slots = []
    free_from = work_start
    for block_start, block_end in clipped:
        if block_start > free_from and _minutes(free_from, block_start) >= duration_minutes:
            slots.append(FreeSlot.between(free_from, block_start))
        free_from = max(free_from, block_end)

    if free_from < work_end and _minutes(free_from, work_end) >= duration_minutes:
        slots.append(FreeSlot.between(free_from, work_end))
    return slots


def _minutes(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60


def busy_intervals_from_events(events: Iterable[Any]) -> list[BusyInterval]:
    """Convert calendar events into busy intervals.

    All-day events block every date they cover (``end_date`` exclusive).  A
    timed event whose end is missing or not after its start is clamped to a
    minimum span instead of rejected.
    """
    intervals = []
    for event in events:
        if event.start_time is None:
            if event.start_date is None:
                continue
            last = (event.end_date - timedelta(days=1)) if event.end_date else event.start_date
            for day in iter_dates(event.start_date, max(last, event.start_date)):
                intervals.append(BusyInterval.all_day(day))
            continue

        start = event.start_time
        end = event.end_time
        if end is None or end <= start:
            end = start + timedelta(minutes=MIN_EVENT_MINUTES)
        intervals.append(BusyInterval.timed(start, end))
    return intervals
