"""Overlap layout — side-by-side columns for one day's timed events.

Events are stable-sorted by start minute and split into maximal clusters of
transitively overlapping events.  Inside a cluster each event takes the
lowest column whose previous occupant ended at or before its start, opening a
new column when none is free; every member then gets the cluster's column
count as ``total_columns``.
"""
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from typing import Any, Iterable

from calendar_copilot.services.timezone_clock import TimezoneLike, to_local

MINUTES_PER_DAY = 1440
MIN_EVENT_MINUTES = 30


@dataclass
class TimedEvent:
    id: str
    summary: str
    start_minute: int
    end_minute: int

    def normalized(self) -> "TimedEvent":
        """Clamp ``end <= start`` (midnight-crossing, zero-length) to a minimum span."""
        end = self.end_minute
        if end <= self.start_minute:
            end = min(self.start_minute + MIN_EVENT_MINUTES, MINUTES_PER_DAY)
        return TimedEvent(self.id, self.summary, self.start_minute, end)


@dataclass
class LayoutSlot:
    id: str
    summary: str
    start_minute: int
    end_minute: int
    column: int = 0
    total_columns: int = 1

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def layout(events: Iterable[TimedEvent]) -> list[LayoutSlot]:
    """Assign a column and column count to each event of a single day."""
    ordered = sorted(
        (ev.normalized() for ev in events),
        key=lambda ev: ev.start_minute,
    )
    slots = [LayoutSlot(ev.id, ev.summary, ev.start_minute, ev.end_minute) for ev in ordered]

    i = 0
    while i < len(slots):
        cluster_end = slots[i].end_minute
        j = i + 1
        while j < len(slots) and slots[j].start_minute < cluster_end:
            cluster_end = max(cluster_end, slots[j].end_minute)
            j += 1

        cluster = slots[i:j]
        column_ends: list[int] = []
        for slot in cluster:
            for column, column_end in enumerate(column_ends):
                if column_end <= slot.start_minute:
                    column_ends[column] = slot.end_minute
                    slot.column = column
                    break
            else:
                slot.column = len(column_ends)
                column_ends.append(slot.end_minute)

        for slot in cluster:
            slot.total_columns = len(column_ends)
        i = j

    return slots


def timed_events_for_day(events: Iterable[Any], day: date, tz: TimezoneLike) -> list[TimedEvent]:
    """Timed events whose local start falls on ``day``, as minutes of that day."""
    timed = []
    for event in events:
        if event.start_time is None:
            continue
        start = to_local(event.start_time, tz)
        if start.date() != day:
            continue
        end = to_local(event.end_time or event.start_time, tz)
        timed.append(
            TimedEvent(
                id=event.event_id,
                summary=event.summary or "(No title)",
                start_minute=start.hour * 60 + start.minute,
                end_minute=end.hour * 60 + end.minute,
            )
        )
    return timed


@dataclass
class WeekDay:
    date: date
    all_day: list[Any] = field(default_factory=list)
    timed: list[LayoutSlot] = field(default_factory=list)


def build_week(events: Iterable[Any], week_start: date, tz: TimezoneLike, days: int = 7) -> list[WeekDay]:
    """Bucket events into ``days`` consecutive days and lay out each day's timed events."""
    events = list(events)
    week = []
    for offset in range(days):
        day = week_start + timedelta(days=offset)
        week.append(
            WeekDay(
                date=day,
                all_day=[ev for ev in events if _covers(ev, day)],
                timed=layout(timed_events_for_day(events, day, tz)),
            )
        )
    return week


def _covers(event: Any, day: date) -> bool:
    if event.start_time is not None or event.start_date is None:
        return False
    end = event.end_date or event.start_date + timedelta(days=1)
    return event.start_date <= day < max(end, event.start_date + timedelta(days=1))
