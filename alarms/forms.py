from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .recurrence import IntervalType, RecurrenceRule
from .storage import DEFAULT_SOUND_ID, DEFAULT_VOLUME, clamp_volume

DEFAULT_TITLE = "My alarm"


class FormValidationError(ValueError):
    """Raised when user-entered alarm fields cannot be turned into a submission."""


@dataclass
class AlarmSubmission:
    title: str
    start_at: datetime
    rule: RecurrenceRule
    sound_id: str = DEFAULT_SOUND_ID
    volume: int = DEFAULT_VOLUME
    alarm_id: Optional[str] = None


@dataclass
class AlarmForm:
    """Raw values as typed by the user; every date/time part is free text."""

    year: str = ""
    month: str = ""
    day: str = ""
    hour: str = ""
    minute: str = ""
    title: str = ""
    interval_type: str = IntervalType.INTERVAL.value
    interval_value: str = "1"
    repeat_days: List[int] = field(default_factory=list)
    sound_id: str = DEFAULT_SOUND_ID
    volume: str = str(DEFAULT_VOLUME)
    alarm_id: Optional[str] = None


def validate_form(form: AlarmForm) -> AlarmSubmission:
    parts = (form.year, form.month, form.day, form.hour, form.minute)
    if any(str(p).strip() == "" for p in parts):
        raise FormValidationError("Please fill in the full start date and time.")
    try:
        year, month, day, hour, minute = (int(str(p).strip()) for p in parts)
        start_at = datetime(year, month, day, hour, minute)
    except ValueError as exc:
        raise FormValidationError("That start date or time is not valid.") from exc

    try:
        interval_type = IntervalType(form.interval_type)
    except ValueError as exc:
        raise FormValidationError(f"Unknown repeat type: {form.interval_type}") from exc

    try:
        rule = RecurrenceRule(interval_type, _int_or(form.interval_value, 1), tuple(form.repeat_days))
    except ValueError as exc:
        raise FormValidationError(str(exc)) from exc

    return AlarmSubmission(
        title=form.title.strip() or DEFAULT_TITLE,
        start_at=start_at,
        rule=rule,
        sound_id=form.sound_id or DEFAULT_SOUND_ID,
        volume=clamp_volume(_int_or(form.volume, 0)),
        alarm_id=form.alarm_id,
    )


def _int_or(raw, default: int) -> int:
    try:
        return int(str(raw).strip())
    except ValueError:
        return default
