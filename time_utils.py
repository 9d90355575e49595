from __future__ import annotations

from datetime import date, datetime, timedelta


WEEKDAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


class SystemClock:
    """Local wall-clock time as reported by the host."""

    def now(self) -> datetime:
        return datetime.now()


def to_local_naive(dt: datetime) -> datetime:
    """Drop an explicit UTC offset by converting to host-local wall-clock time."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone().replace(tzinfo=None)


def floor_to_minute(dt: datetime) -> datetime:
    return dt.replace(second=0, microsecond=0)


def sunday_weekday(value: date) -> int:
    """Weekday index with Sunday=0 ... Saturday=6."""
    return (value.weekday() + 1) % 7


def week_anchor(value: date) -> date:
    # Sunday on or before the given day
    if isinstance(value, datetime):
        value = value.date()
    return value - timedelta(days=sunday_weekday(value))


def weeks_between(start: date, other: date) -> int:
    return (week_anchor(other) - week_anchor(start)).days // 7


def at_time_of(day: date, template: datetime) -> datetime:
    return datetime.combine(day, template.time()).replace(second=0, microsecond=0)
