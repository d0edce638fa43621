# tracker/time_utils.py

from __future__ import annotations

from datetime import date, datetime, time as dt_time, timedelta
from typing import Optional


def format_time(
    milliseconds: float,
    show_seconds: bool = True,
    short_format: bool = True,
    always_show_hours: bool = False,
) -> str:
    """1h 5m 3s / 1 hour 5 minutes, depending on the flags."""
    total_seconds = int(max(0, milliseconds) // 1000)
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60

    def unit(value: int, short: str, singular: str) -> str:
        if short_format:
            return f"{value}{short}"
        return f"{value} {singular if value == 1 else singular + 's'}"

    parts: list[str] = []
    if hours > 0 or always_show_hours:
        parts.append(unit(hours, "h", "hour"))
    if minutes > 0 or (not parts and not show_seconds):
        parts.append(unit(minutes, "m", "minute"))
    if show_seconds and (seconds > 0 or not parts):
        parts.append(unit(seconds, "s", "second"))

    return " ".join(parts) or "0s"


def format_status_bar_time(milliseconds: float) -> str:
    return format_time(milliseconds, show_seconds=True, short_format=True)


def format_detailed_time(milliseconds: float) -> str:
    return format_time(milliseconds, show_seconds=False, short_format=False)


def format_time_of_day(moment: datetime) -> str:
    return moment.strftime("%H:%M")


def format_date(moment: datetime | date) -> str:
    return moment.strftime("%Y-%m-%d")


def end_of_day(moment: datetime) -> datetime:
    """23:59:59.999 of the moment's calendar day, one millisecond before midnight."""
    next_midnight = datetime.combine(moment.date() + timedelta(days=1), dt_time.min)
    return next_midnight - timedelta(milliseconds=1)


def day_range(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, dt_time.min)
    return start, end_of_day(start)


def today_range(now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    now = now or datetime.now()
    return day_range(now.date())


def current_week_range(now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    # weeks start on Monday
    now = now or datetime.now()
    monday = now.date() - timedelta(days=now.weekday())
    start = datetime.combine(monday, dt_time.min)
    return start, end_of_day(start + timedelta(days=6))


def current_month_range(now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    now = now or datetime.now()
    first = now.date().replace(day=1)
    if first.month == 12:
        next_first = first.replace(year=first.year + 1, month=1)
    else:
        next_first = first.replace(month=first.month + 1)
    start = datetime.combine(first, dt_time.min)
    return start, end_of_day(datetime.combine(next_first - timedelta(days=1), dt_time.min))


def elapsed_ms(later: datetime, earlier: datetime) -> int:
    return int(round((later - earlier).total_seconds() * 1000))


def safe_time_difference(later: datetime, earlier: datetime, max_minutes: Optional[float] = None) -> int:
    """
    Milliseconds between two moments, clamped to zero.

    With max_minutes set, deltas above that bound are treated as bogus
    (clock jumps) and also yield zero.
    """
    diff = elapsed_ms(later, earlier)
    if diff < 0:
        return 0
    if max_minutes is not None and diff > max_minutes * 60_000:
        return 0
    return diff
