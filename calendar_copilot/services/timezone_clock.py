"""Timezone clock — wall-clock hours <-> absolute instants in IANA zones.

All conversions go through pytz so DST transitions are resolved by the
timezone database, never by a fixed offset.  Offsets are looked up on every
call: a caller walking a multi-day range gets a fresh offset for each day.

Conventions:
- Instants are timezone-aware ``datetime`` objects normalised to UTC.
- A local wall time that does not exist (spring-forward gap) resolves
  forward; a repeated one (fall-back) resolves to the standard-time
  occurrence.  Both follow ``localize(..., is_dst=False)``.
"""
import re
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterator, Union

import pytz

from calendar_copilot.errors import InvalidInputError

TimezoneLike = Union[str, tzinfo]

_OFFSET_SUFFIX = re.compile(r"(Z|[+-]\d{2}:?\d{2})$")
_DATE_TIME_SEPARATOR = re.compile(r"[T ]")


def get_timezone(tz: TimezoneLike) -> tzinfo:
    """Resolve an IANA name to a pytz zone; unknown names are invalid input."""
    if isinstance(tz, tzinfo):
        return tz
    try:
        return pytz.timezone(tz)
    except pytz.UnknownTimeZoneError:
        raise InvalidInputError(f"Unknown timezone: {tz!r}") from None


def _localize(tz: tzinfo, naive: datetime) -> datetime:
    localize = getattr(tz, "localize", None)
    if localize is None:
        # Plain tzinfo (e.g. datetime.timezone.utc) has no DST to resolve.
        return naive.replace(tzinfo=tz)
    return localize(naive, is_dst=False)


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=pytz.utc)
    return instant.astimezone(pytz.utc)


def instant_at_local_hour(day: date, hour: int, tz: TimezoneLike) -> datetime:
    """Return the UTC instant of ``hour:00:00`` on ``day`` in ``tz``."""
    if not 0 <= hour <= 23:
        raise InvalidInputError(f"Hour must be between 0 and 23, got {hour}")
    zone = get_timezone(tz)
    return _localize(zone, datetime.combine(day, time(hour))).astimezone(pytz.utc)


def local_day_bounds(day: date, tz: TimezoneLike) -> tuple[datetime, datetime]:
    """UTC instants of local midnight on ``day`` and on the following day."""
    zone = get_timezone(tz)
    start = _localize(zone, datetime.combine(day, time.min))
    end = _localize(zone, datetime.combine(day + timedelta(days=1), time.min))
    return start.astimezone(pytz.utc), end.astimezone(pytz.utc)


def offset_minutes(tz: TimezoneLike, instant: datetime) -> int:
    """UTC offset in minutes in effect in ``tz`` at ``instant``."""
    local = _as_utc(instant).astimezone(get_timezone(tz))
    return int(local.utcoffset().total_seconds() // 60)


def to_local(instant: datetime, tz: TimezoneLike) -> datetime:
    return _as_utc(instant).astimezone(get_timezone(tz))


def format_with_offset(instant: datetime, tz: TimezoneLike) -> str:
    """ISO-8601 string with the explicit numeric offset of ``tz`` (never ``Z``).

    e.g. ``2026-03-01T09:00:00-05:00``; the local hour can be read directly.
    """
    return to_local(instant, tz).isoformat(timespec="seconds")


def parse_date(value: str) -> date:
    """Parse ``YYYY-MM-DD``; impossible dates (Feb 30) are invalid input."""
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise InvalidInputError(
            f'"{value}" is not a valid calendar date. Use YYYY-MM-DD with an existing date.'
        ) from None


def parse_local_datetime(value: str, tz: TimezoneLike) -> datetime:
    """Interpret an LLM-supplied wall-clock datetime in the user's timezone.

    Any offset suffix is discarded: the agent is told to send local times and
    the wall-clock reading is what the user asked for.  Returns a UTC instant.
    """
    clean = _OFFSET_SUFFIX.sub("", str(value).strip())
    date_part = _DATE_TIME_SEPARATOR.split(clean, maxsplit=1)[0]
    parse_date(date_part)
    try:
        naive = datetime.fromisoformat(clean)
    except ValueError:
        raise InvalidInputError(f'Invalid datetime: "{value}". Use YYYY-MM-DDTHH:MM:SS.') from None
    return _localize(get_timezone(tz), naive.replace(tzinfo=None)).astimezone(pytz.utc)


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every calendar date from ``start`` to ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
