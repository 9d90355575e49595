from __future__ import annotations

from datetime import datetime, timedelta
from typing import Tuple

from time_utils import WEEKDAY_NAMES

from .recurrence import IntervalType
from .storage import Alarm

DUE_MESSAGE = "Alarm is about to ring!"
SOON_MESSAGE = "Alarm rings in a moment"


def split_remaining(target: datetime, now: datetime) -> Tuple[int, int]:
    """Whole hours and minutes from ``now`` until ``target``, floored."""
    total_minutes = int((target - now).total_seconds() // 60)
    return divmod(total_minutes, 60)


def format_time_remaining(target: datetime, now: datetime) -> str:
    if target <= now:
        return DUE_MESSAGE
    hours, minutes = split_remaining(target, now)
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0 or hours > 0:
        parts.append(f"{minutes}m")
    if not parts:
        return SOON_MESSAGE
    return " ".join(parts) + " left"


def describe_repeat(alarm: Alarm) -> str:
    if alarm.interval_type is IntervalType.ONCE:
        return "one-time"
    if alarm.interval_type is IntervalType.INTERVAL:
        return "every day" if alarm.interval_value == 1 else f"every {alarm.interval_value} days"
    if not alarm.repeat_days:
        return "none"
    text = "every day" if len(alarm.repeat_days) == 7 else ",".join(WEEKDAY_NAMES[d] for d in alarm.repeat_days)
    if alarm.interval_value > 1:
        text += f" (skips {alarm.interval_value - 1} wk)"
    return text


def format_alarm_time(dt: datetime, now: datetime) -> str:
    day_prefix = ""
    if dt.date() == now.date():
        day_prefix = "today "
    elif dt.date() == now.date() + timedelta(days=1):
        day_prefix = "tomorrow "
    time_part = dt.strftime("%H:%M")
    if not day_prefix:
        day_prefix = dt.strftime("%m/%d ")  # Explicit date
    return f"{day_prefix}{time_part}"


def format_alarm_line(index: int, alarm: Alarm, now: datetime) -> str:
    state = "" if alarm.is_active else " [off]"
    return f"{index}) {format_alarm_time(alarm.next_trigger_at, now)} {alarm.title} ({describe_repeat(alarm)}){state}"
