"""Tests for the free/busy engine.

Covers:
- Gap sweep inside the working window, tail gap, duration threshold
- All-day blocks, opt-in work-day filter, back-to-back days
- DST-correct working windows across a transition
- Truncation to max_slots with the true total reported
- Conservation: free minutes + busy minutes == window minutes
- Input validation
- Event records -> busy intervals
"""
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from calendar_copilot.errors import InvalidInputError
from calendar_copilot.services.free_busy import busy_intervals_from_events, compute_free_slots
from calendar_copilot.services.intervals import BusyInterval, FreeSlot, WorkingHoursPolicy

DAY = date(2026, 3, 2)  # a Monday
UTC_9_TO_18 = WorkingHoursPolicy(start_hour=9, end_hour=18, timezone="UTC")


def at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


def busy(start: datetime, end: datetime) -> BusyInterval:
    return BusyInterval.timed(start, end)


def spans(result):
    return [(slot.start, slot.end, slot.available_minutes) for slot in result.slots]


# ===========================================================================
# Single-day sweep
# ===========================================================================
class TestSingleDay:
    """Gaps between busy intervals inside one working window."""

    def test_one_meeting_splits_the_day(self):
        """09:00-18:00 with 10:00-10:30 busy leaves the morning and the afternoon."""
        result = compute_free_slots([busy(at(10), at(10, 30))], DAY, DAY, 30, UTC_9_TO_18)
        assert spans(result) == [
            (at(9), at(10), 60),
            (at(10, 30), at(18), 450),
        ]
        assert result.total_found == 2
        assert not result.truncated

    def test_gap_shorter_than_duration_is_dropped(self):
        result = compute_free_slots([busy(at(10), at(10, 30))], DAY, DAY, 61, UTC_9_TO_18)
        assert spans(result) == [(at(10, 30), at(18), 450)]

    def test_gap_exactly_duration_is_kept(self):
        result = compute_free_slots([busy(at(10), at(10, 30))], DAY, DAY, 60, UTC_9_TO_18)
        assert spans(result)[0] == (at(9), at(10), 60)

    def test_empty_calendar_gives_full_window(self):
        result = compute_free_slots([], DAY, DAY, 30, UTC_9_TO_18)
        assert spans(result) == [(at(9), at(18), 540)]

    def test_busy_outside_working_hours_is_ignored(self):
        outside = [busy(at(6), at(8, 30)), busy(at(18), at(22)), busy(at(23), at(23, 59))]
        result = compute_free_slots(outside, DAY, DAY, 30, UTC_9_TO_18)
        assert spans(result) == [(at(9), at(18), 540)]

    def test_overlapping_busy_intervals_merge(self):
        meetings = [busy(at(11), at(12)), busy(at(11, 30), at(12, 15)), busy(at(11, 45), at(12))]
        result = compute_free_slots(meetings, DAY, DAY, 30, UTC_9_TO_18)
        assert spans(result) == [(at(9), at(11), 120), (at(12, 15), at(18), 345)]

    def test_unsorted_input(self):
        meetings = [busy(at(15), at(16)), busy(at(9), at(10))]
        result = compute_free_slots(meetings, DAY, DAY, 30, UTC_9_TO_18)
        assert spans(result) == [(at(10), at(15), 300), (at(16), at(18), 120)]

    def test_back_to_back_day_yields_nothing(self):
        meetings = [busy(at(h), at(h + 1)) for h in range(9, 18)]
        result = compute_free_slots(meetings, DAY, DAY, 1, UTC_9_TO_18)
        assert result.slots == []
        assert result.total_found == 0

    def test_available_minutes_rounded(self):
        end = at(10) + timedelta(seconds=40)
        result = compute_free_slots([busy(at(9), end)], DAY, DAY, 30, UTC_9_TO_18)
        assert result.slots[0].available_minutes == 479  # 479m20s

    def test_every_slot_meets_duration(self):
        meetings = [busy(at(9, 20), at(9, 50)), busy(at(10, 10), at(13)), busy(at(13, 44), at(17))]
        result = compute_free_slots(meetings, DAY, DAY, 44, UTC_9_TO_18)
        assert [s.available_minutes for s in result.slots] == [44, 60]


# ===========================================================================
# Multi-day behaviour
# ===========================================================================
class TestMultiDay:
    """Day iteration, all-day blocks, work days and DST."""

    def test_all_day_block_removes_the_day(self):
        events = [
            BusyInterval.all_day(DAY),
            busy(at(10), at(11)),
        ]
        result = compute_free_slots(events, DAY, DAY + timedelta(days=1), 30, UTC_9_TO_18)
        next_day = DAY + timedelta(days=1)
        assert spans(result) == [(at(9, day=next_day), at(18, day=next_day), 540)]

    def test_busy_outside_hours_gives_one_slot_per_day(self):
        start, end = date(2026, 3, 2), date(2026, 3, 6)
        events = [busy(at(7, day=d), at(8, day=d)) for d in (start, end)]
        result = compute_free_slots(events, start, end, 30, UTC_9_TO_18)
        assert len(result.slots) == 5
        assert all(slot.available_minutes == 540 for slot in result.slots)

    def test_non_working_days_searched_by_default(self):
        weekdays = WorkingHoursPolicy(9, 18, "UTC", work_days={0, 1, 2, 3, 4})
        result = compute_free_slots([], date(2026, 3, 7), date(2026, 3, 8), 60, weekdays)
        assert [slot.start.date() for slot in result.slots] == [date(2026, 3, 7), date(2026, 3, 8)]

    def test_working_days_only_skips_weekend(self):
        weekdays = WorkingHoursPolicy(9, 18, "UTC", work_days={0, 1, 2, 3, 4})
        result = compute_free_slots([], date(2026, 3, 6), date(2026, 3, 9), 30, weekdays, working_days_only=True)
        assert [slot.start.date() for slot in result.slots] == [date(2026, 3, 6), date(2026, 3, 9)]

    def test_dst_transition_uses_fresh_offset_each_day(self):
        """New York 09:00 is 14:00 UTC before the switch and 13:00 UTC after."""
        policy = WorkingHoursPolicy(9, 18, "America/New_York")
        result = compute_free_slots([], date(2026, 3, 7), date(2026, 3, 9), 30, policy)
        assert [slot.start.hour for slot in result.slots] == [14, 13, 13]
        assert all(slot.available_minutes == 540 for slot in result.slots)

    def test_truncated_to_max_slots(self):
        start = date(2026, 1, 1)
        end = start + timedelta(days=39)
        result = compute_free_slots([], start, end, 30, UTC_9_TO_18)
        assert len(result.slots) == 30
        assert result.total_found == 40
        assert result.truncated
        assert result.slots[-1].start.date() == start + timedelta(days=29)

    def test_max_slots_none_returns_everything(self):
        start = date(2026, 1, 1)
        result = compute_free_slots([], start, start + timedelta(days=39), 30, UTC_9_TO_18, max_slots=None)
        assert len(result.slots) == 40

    def test_output_is_chronological(self):
        events = [busy(at(12, day=DAY + timedelta(days=1)), at(13, day=DAY + timedelta(days=1))), busy(at(12), at(13))]
        result = compute_free_slots(events, DAY, DAY + timedelta(days=1), 30, UTC_9_TO_18)
        starts = [slot.start for slot in result.slots]
        assert starts == sorted(starts)

    def test_idempotent(self):
        events = [busy(at(10), at(10, 30)), BusyInterval.all_day(DAY + timedelta(days=2))]
        first = compute_free_slots(events, DAY, DAY + timedelta(days=3), 30, UTC_9_TO_18)
        second = compute_free_slots(events, DAY, DAY + timedelta(days=3), 30, UTC_9_TO_18)
        assert first == second


# ===========================================================================
# Conservation
# ===========================================================================
class TestConservation:
    """Free minutes plus busy minutes inside the window account for the whole window."""

    def test_free_plus_busy_equals_window(self):
        meetings = [
            busy(at(8), at(9, 30)),
            busy(at(11), at(12)),
            busy(at(11, 30), at(12, 15)),
            busy(at(17, 45), at(19)),
        ]
        busy_minutes_in_window = 30 + 75 + 15
        result = compute_free_slots(meetings, DAY, DAY, 1, UTC_9_TO_18)
        free_minutes = sum(slot.available_minutes for slot in result.slots)
        assert free_minutes + busy_minutes_in_window == 9 * 60


# ===========================================================================
# Validation
# ===========================================================================
class TestValidation:
    """Rejected before any computation."""

    @pytest.mark.parametrize("duration", [0, -15, True, "30", None])
    def test_bad_duration(self, duration):
        with pytest.raises(InvalidInputError):
            compute_free_slots([], DAY, DAY, duration, UTC_9_TO_18)

    def test_reversed_range(self):
        with pytest.raises(InvalidInputError, match="after end date"):
            compute_free_slots([], DAY, DAY - timedelta(days=1), 30, UTC_9_TO_18)

    def test_negative_max_slots(self):
        with pytest.raises(InvalidInputError):
            compute_free_slots([], DAY, DAY, 30, UTC_9_TO_18, max_slots=-1)

    @pytest.mark.parametrize("start_hour,end_hour", [(18, 9), (9, 9), (-1, 10), (9, 24)])
    def test_bad_policy_hours(self, start_hour, end_hour):
        with pytest.raises(InvalidInputError):
            WorkingHoursPolicy(start_hour, end_hour, "UTC")

    def test_bad_policy_timezone(self):
        with pytest.raises(InvalidInputError):
            WorkingHoursPolicy(9, 18, "Not/A_Zone")

    def test_bad_work_days(self):
        with pytest.raises(InvalidInputError):
            WorkingHoursPolicy(9, 18, "UTC", work_days={7})

    def test_invalid_input_is_a_value_error(self):
        with pytest.raises(ValueError):
            compute_free_slots([], DAY, DAY, 0, UTC_9_TO_18)

    def test_busy_interval_must_end_after_start(self):
        with pytest.raises(InvalidInputError):
            BusyInterval.timed(at(10), at(10))

    def test_busy_interval_must_be_aware(self):
        with pytest.raises(InvalidInputError):
            BusyInterval.timed(datetime(2026, 3, 2, 9), datetime(2026, 3, 2, 10))


# ===========================================================================
# Events -> busy intervals
# ===========================================================================
def _event(start_time=None, end_time=None, start_date=None, end_date=None):
    return SimpleNamespace(start_time=start_time, end_time=end_time, start_date=start_date, end_date=end_date)


class TestBusyIntervalsFromEvents:
    """Converting stored events into engine input."""

    def test_timed_event(self):
        intervals = busy_intervals_from_events([_event(at(10), at(11))])
        assert intervals == [BusyInterval.timed(at(10), at(11))]

    def test_degenerate_event_is_clamped(self):
        intervals = busy_intervals_from_events([_event(at(10), at(10)), _event(at(12), None)])
        assert intervals == [
            BusyInterval.timed(at(10), at(10, 30)),
            BusyInterval.timed(at(12), at(12, 30)),
        ]

    def test_multi_day_all_day_blocks_each_date(self):
        intervals = busy_intervals_from_events([_event(start_date=date(2026, 3, 2), end_date=date(2026, 3, 5))])
        assert [i.date for i in intervals] == [date(2026, 3, 2), date(2026, 3, 3), date(2026, 3, 4)]
        assert all(i.is_all_day for i in intervals)

    def test_single_all_day_without_end(self):
        intervals = busy_intervals_from_events([_event(start_date=date(2026, 3, 2))])
        assert intervals == [BusyInterval.all_day(date(2026, 3, 2))]

    def test_free_slot_serialises_with_offset(self):
        slot = FreeSlot.between(at(14), at(15))
        assert slot.to_dict("America/New_York") == {
            "start": "2026-03-02T09:00:00-05:00",
            "end": "2026-03-02T10:00:00-05:00",
            "available_minutes": 60,
        }
