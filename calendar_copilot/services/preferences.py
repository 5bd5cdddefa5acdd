"""Turns user preferences into system-prompt context and a working-hours policy."""
from typing import Optional

from calendar_copilot.config import settings
from calendar_copilot.schemas.preferences import UserPreferences
from calendar_copilot.services.intervals import WorkingHoursPolicy

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
MAX_ADDITIONAL_CONTEXT = 500

PREFERRED_TIME_LABELS = {
    "morning": "morning (before noon)",
    "afternoon": "afternoon (12–5 PM)",
    "evening": "evening (after 5 PM)",
    "any": "any time of day",
}


def build_preferences_context(prefs: UserPreferences) -> str:
    """Render the USER PREFERENCES block appended to the system prompt ("" when nothing to say)."""
    sections = []

    profile = []
    if prefs.home_location:
        profile.append(f"Home: {prefs.home_location}")
    if prefs.work_location:
        profile.append(f"Work: {prefs.work_location}")
    if prefs.nearest_airport:
        profile.append(f"Nearest airport: {prefs.nearest_airport}")
    if prefs.units == "metric":
        profile.append("Units: metric (°C, km)")
    if profile:
        sections.append("\n".join(profile))

    schedule = []
    work_day_names = [DAY_NAMES[i] for i, on in enumerate(prefs.work_days) if on]
    if work_day_names:
        schedule.append(f"Work days: {', '.join(work_day_names)}")
    schedule.append(f"Work hours: {prefs.work_start_time}–{prefs.work_end_time}")
    if prefs.buffer_minutes > 0:
        schedule.append(f"Buffer between meetings: {prefs.buffer_minutes} min")
    if prefs.lunch_break_start and prefs.lunch_break_end:
        schedule.append(
            f"Lunch break: {prefs.lunch_break_start}–{prefs.lunch_break_end} (avoid scheduling over this)"
        )
    if prefs.default_meeting_duration != 30:
        schedule.append(f"Default meeting duration: {prefs.default_meeting_duration} min")
    sections.append("\n".join(schedule))

    if prefs.activities:
        lines = ["Recurring weekly activities (soft commitments — schedule these and avoid conflicts):"]
        for activity in prefs.activities:
            if activity.preferred_days:
                day_label = "preferred days: " + "/".join(DAY_NAMES[d] for d in activity.preferred_days)
            else:
                day_label = "any day"
            lines.append(
                f"  • {activity.name}: {activity.times_per_week}×/week, {activity.duration_minutes} min, "
                f"{PREFERRED_TIME_LABELS[activity.preferred_time]}, {day_label}"
            )
        lines.append(
            "When a new event conflicts with a recurring activity, warn the user and offer to "
            "reschedule the activity to the next available matching slot."
        )
        lines.append(
            'When asked to "plan my week" or "schedule my activities", use get_free_slots then '
            "create_calendar_event for each recurring activity."
        )
        sections.append("\n".join(lines))

    extra = prefs.additional_context.strip()
    if extra:
        sections.append(f"Additional context: {extra[:MAX_ADDITIONAL_CONTEXT]}")

    return "USER PREFERENCES\n" + "\n\n".join(sections)


def working_hours_from_preferences(prefs: Optional[UserPreferences], timezone: str) -> WorkingHoursPolicy:
    """Policy for get_free_slots: whole hours inside the preferred window.

    A start like 09:30 rounds up to 10 and an end like 17:30 rounds down to
    17 so no offered slot leaves the user's hours.  Falls back to the
    configured defaults when no preferences were sent or rounding empties
    the window.
    """
    if prefs is None:
        return WorkingHoursPolicy(settings.WORK_START_HOUR, settings.WORK_END_HOUR, timezone)

    start_h, start_m = (int(part) for part in prefs.work_start_time.split(":"))
    end_h, _ = (int(part) for part in prefs.work_end_time.split(":"))
    start_hour = start_h + (1 if start_m else 0)
    end_hour = min(end_h, 23)
    if start_hour >= end_hour:
        start_hour, end_hour = settings.WORK_START_HOUR, settings.WORK_END_HOUR

    # Preferences index Sunday as 0; date.weekday() indexes Monday as 0.
    work_days = frozenset((i - 1) % 7 for i, on in enumerate(prefs.work_days) if on) or None
    return WorkingHoursPolicy(start_hour, end_hour, timezone, work_days)
