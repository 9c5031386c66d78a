"""Pure aggregation helpers for student and admin dashboards.

Every function takes the rows it aggregates plus an optional reference
time, so results do not depend on the wall clock in tests. Calendar days
are UTC days.
"""

from collections import Counter
from collections.abc import Iterable
from datetime import date, datetime, timedelta

from learnhub.core.dates import ensure_utc_aware, utc_now

from .models import Activity, Completion


MINUTES_PER_HOUR = 60


def _day(dt: datetime) -> date:
    return ensure_utc_aware(dt).date()


def calculate_streak(
    completion_times: Iterable[datetime], today: date | None = None
) -> int:
    """Consecutive days with at least one completion, counted back from today.

    A day without completions ends the streak, except today: when nothing
    was completed yet today the count starts from yesterday.

    Example:
        Completions today and yesterday, none two days ago -> 2
    """
    days = {_day(t) for t in completion_times}
    if not days:
        return 0

    current = today or utc_now().date()
    if current not in days:
        current -= timedelta(days=1)

    streak = 0
    while current in days:
        streak += 1
        current -= timedelta(days=1)
    return streak


def study_hours(durations_minutes: Iterable[int], digits: int | None = 1) -> float:
    """Total minutes as hours. ``digits=None`` rounds to a whole number."""
    hours = sum(m or 0 for m in durations_minutes) / MINUTES_PER_HOUR
    if digits is None:
        return float(round(hours))
    return round(hours, digits)


def hours_in_window(
    completions: Iterable[Completion],
    days: int = 7,
    now: datetime | None = None,
) -> float:
    """Study hours over the trailing ``days`` days, one decimal."""
    since = (now or utc_now()) - timedelta(days=days)
    return study_hours(
        c.duration_minutes
        for c in completions
        if ensure_utc_aware(c.completed_at) >= since
    )


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def monthly_hours(
    completions: Iterable[Completion],
    months: int = 6,
    now: datetime | None = None,
) -> list[tuple[str, float]]:
    """Study hours per calendar month for the last ``months`` months.

    Returns:
        ``[("YYYY-MM", hours), ...]`` oldest first, current month last
    """
    reference = now or utc_now()
    minutes: Counter[str] = Counter()
    for c in completions:
        minutes[ensure_utc_aware(c.completed_at).strftime("%Y-%m")] += c.duration_minutes or 0

    result = []
    for offset in range(months - 1, -1, -1):
        year, month = _shift_month(reference.year, reference.month, -offset)
        key = f"{year:04d}-{month:02d}"
        result.append((key, round(minutes[key] / MINUTES_PER_HOUR, 1)))
    return result


def build_recent_activity(
    enrollments: Iterable[Activity],
    completions: Iterable[Activity],
    limit: int = 5,
    enrollment_count: int = 2,
) -> list[Activity]:
    """Latest enrollments and completions merged, newest first.

    At most ``enrollment_count`` enrollments and ``limit`` completions are
    considered before the merged feed is capped at ``limit``.
    """
    latest_enrollments = sorted(enrollments, key=lambda a: a.date, reverse=True)
    latest_completions = sorted(completions, key=lambda a: a.date, reverse=True)
    merged = latest_enrollments[:enrollment_count] + latest_completions[:limit]
    merged.sort(key=lambda a: a.date, reverse=True)
    return merged[:limit]


def enrollments_by_day(
    enrolled_at: Iterable[datetime],
    days: int = 7,
    today: date | None = None,
) -> list[tuple[str, int]]:
    """Enrollment counts per day for the trailing ``days`` days, today included.

    Returns:
        ``[("YYYY-MM-DD", count), ...]`` oldest first
    """
    end = today or utc_now().date()
    counts = Counter(_day(t) for t in enrolled_at)
    return [
        (day.isoformat(), counts[day])
        for day in (end - timedelta(days=i) for i in range(days - 1, -1, -1))
    ]


def format_duration(minutes: int) -> str:
    """Human readable duration: ``"1h 30min"``, ``"2h"`` or ``"45min"``."""
    minutes = max(int(minutes or 0), 0)
    hours, rest = divmod(minutes, MINUTES_PER_HOUR)
    if not hours:
        return f"{rest}min"
    if not rest:
        return f"{hours}h"
    return f"{hours}h {rest}min"
