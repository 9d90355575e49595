"""Occurrence arithmetic for alarm recurrence rules.

Two entry points are used by the rest of the package:

* ``next_occurrence`` is the steady-state step: one occurrence from the previous one.
* ``seed_next_trigger`` runs when an alarm is created or edited and finds the first
  occurrence that lies in the future, honoring the every-n-weeks rule for weekly alarms.

All instants are naive local datetimes truncated to the minute.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, Optional, Tuple

from time_utils import at_time_of, floor_to_minute, sunday_weekday, weeks_between

SECOND_OCCURRENCE_SCAN_DAYS = 100


class IntervalType(str, Enum):
    ONCE = "once"
    INTERVAL = "interval"
    WEEKLY = "weekly"


@dataclass(frozen=True)
class RecurrenceRule:
    interval_type: IntervalType
    interval_value: int = 1
    repeat_days: Tuple[int, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "interval_type", IntervalType(self.interval_type))
        object.__setattr__(self, "interval_value", max(1, int(self.interval_value or 1)))
        object.__setattr__(self, "repeat_days", normalize_days(self.repeat_days))

    def matches_day(self, dt: datetime) -> bool:
        return sunday_weekday(dt) in self.repeat_days


def normalize_days(days: Iterable[int]) -> Tuple[int, ...]:
    normalized = set()
    for day in days or ():
        day = int(day)
        if not 0 <= day <= 6:
            raise ValueError(f"Weekday index must be within 0..6, got {day}")
        normalized.add(day)
    return tuple(sorted(normalized))


def next_occurrence(reference: datetime, rule: RecurrenceRule) -> Optional[datetime]:
    """Return the occurrence following ``reference``, or None for one-shot alarms."""
    if rule.interval_type is IntervalType.ONCE:
        return None

    if rule.interval_type is IntervalType.INTERVAL:
        return floor_to_minute(reference + timedelta(days=rule.interval_value))

    if not rule.repeat_days:
        return floor_to_minute(reference + timedelta(days=1))

    for offset in range(1, 8):
        candidate = reference + timedelta(days=offset)
        if rule.matches_day(candidate):
            return floor_to_minute(candidate)
    return floor_to_minute(reference + timedelta(days=1))


def is_congruent_week(start: datetime, candidate: datetime, interval_value: int) -> bool:
    return weeks_between(start, candidate) % max(1, interval_value) == 0


def seed_next_trigger(start: datetime, rule: RecurrenceRule, now: datetime) -> Tuple[datetime, bool]:
    """Compute the first trigger instant for a newly created or edited alarm.

    Returns ``(next_trigger_at, is_active)``; the alarm is active only when the
    instant lies strictly after ``now``.
    """
    start = floor_to_minute(start)
    next_trigger = start

    if rule.interval_type is IntervalType.WEEKLY and rule.repeat_days:
        if not rule.matches_day(start) or start <= now:
            next_trigger = _first_weekly_occurrence(start, rule, now)
    elif rule.interval_type is IntervalType.ONCE:
        pass
    else:
        # interval, or weekly without days which steps daily
        while next_trigger <= now:
            next_trigger = next_occurrence(next_trigger, rule)

    return next_trigger, next_trigger > now


def _first_weekly_occurrence(start: datetime, rule: RecurrenceRule, now: datetime) -> datetime:
    base = at_time_of(max(start.date(), now.date()), start)
    for offset in range(0, 7 * rule.interval_value + 1):
        candidate = base + timedelta(days=offset)
        if not rule.matches_day(candidate) or candidate < now:
            continue
        if is_congruent_week(start, candidate, rule.interval_value):
            return candidate
    return at_time_of(now.date() + timedelta(days=1), start)


def second_occurrence(start: datetime, rule: RecurrenceRule) -> Optional[datetime]:
    """Preview of the occurrence after the first one, shown while filling a form."""
    start = floor_to_minute(start)
    if rule.interval_type is IntervalType.INTERVAL:
        return start + timedelta(days=rule.interval_value)
    if rule.interval_type is not IntervalType.WEEKLY or not rule.repeat_days:
        return None

    first = None
    for offset in range(0, 8):
        candidate = start + timedelta(days=offset)
        if rule.matches_day(candidate):
            first = candidate
            break
    if first is None:
        return None

    for offset in range(1, SECOND_OCCURRENCE_SCAN_DAYS + 1):
        candidate = first + timedelta(days=offset)
        if rule.matches_day(candidate) and is_congruent_week(start, candidate, rule.interval_value):
            return candidate
    return None
