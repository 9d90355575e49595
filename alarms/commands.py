from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from time_utils import WEEKDAY_NAMES

from .formatting import format_alarm_line, format_alarm_time, format_time_remaining
from .forms import AlarmForm, FormValidationError, validate_form
from .manager import AlarmManager
from .recurrence import second_occurrence
from .sounds import SOUND_OPTIONS, AlarmSoundPlayer, sound_option
from .storage import Alarm

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "Commands:\n"
    "  list | next | stop | sounds | help\n"
    "  add title=... date=YYYY-MM-DD time=HH:MM [type=once|interval|weekly] [every=N] [days=mon,wed]"
    " [sound=ID] [volume=0-100]\n"
    "  edit N key=value ...\n"
    "  remove N\n"
    "  preview SOUND_ID [VOLUME]"
)
FORM_KEYS = {"title", "date", "time", "type", "every", "days", "sound", "volume"}


@dataclass
class CommandResult:
    handled: bool
    response_text: Optional[str] = None
    action: Optional[str] = None


class CommandRouter:
    def __init__(
        self,
        alarm_manager: AlarmManager,
        sound_player: Optional[AlarmSoundPlayer] = None,
        default_sound_id: str = SOUND_OPTIONS[0].id,
        default_volume: int = 50,
    ):
        self.alarm_manager = alarm_manager
        self.sound_player = sound_player
        self.default_sound_id = default_sound_id
        self.default_volume = default_volume

    def handle_text(self, text: str, now: datetime) -> Optional[CommandResult]:
        try:
            tokens = shlex.split(text)
        except ValueError:
            return CommandResult(handled=True, response_text="Unbalanced quotes in command.", action="unknown")
        if not tokens:
            return None
        action, args = tokens[0].lower(), tokens[1:]
        logger.debug("Command %s %s", action, args)

        if action == "help":
            return CommandResult(handled=True, response_text=HELP_TEXT, action="help")

        if action == "list":
            alarms = self.alarm_manager.list_alarms()
            if not alarms:
                resp = "No alarms yet."
            else:
                lines = [format_alarm_line(idx, alarm, now) for idx, alarm in enumerate(alarms, start=1)]
                resp = "Your alarms:\n" + "\n".join(lines)
            return CommandResult(handled=True, response_text=resp, action="list")

        if action == "next":
            nearest = self.alarm_manager.nearest_alarm()
            if not nearest:
                resp = "No active alarms."
            else:
                resp = (
                    f"{format_time_remaining(nearest.next_trigger_at, now)}: "
                    f"{nearest.title} ({format_alarm_time(nearest.next_trigger_at, now)})"
                )
            return CommandResult(handled=True, response_text=resp, action="next")

        if action == "stop":
            current = self.alarm_manager.stop_ringing()
            resp = f"Stopped {current.title}." if current else "Nothing is ringing right now."
            return CommandResult(handled=True, response_text=resp, action="stop")

        if action == "remove":
            index = _parse_index(args)
            removed = self.alarm_manager.remove_alarm_by_index(index) if index else None
            if removed:
                resp = f"Removed alarm {removed.title} at {format_alarm_time(removed.next_trigger_at, now)}."
            else:
                resp = "Could not find that alarm."
            return CommandResult(handled=True, response_text=resp, action="remove")

        if action == "sounds":
            lines = [f"{option.id}: {option.name} - {option.description}" for option in SOUND_OPTIONS]
            return CommandResult(handled=True, response_text="\n".join(lines), action="sounds")

        if action == "preview":
            return self._preview(args)

        if action in ("add", "edit"):
            return self._submit(action, args, now)

        return None

    def _submit(self, action: str, args: List[str], now: datetime) -> CommandResult:
        existing: Optional[Alarm] = None
        if action == "edit":
            index = _parse_index(args)
            alarms = self.alarm_manager.list_alarms()
            if not index or index < 1 or index > len(alarms):
                return CommandResult(handled=True, response_text="Could not find that alarm.", action=action)
            existing = alarms[index - 1]
            args = args[1:]

        values = _parse_pairs(args)
        unknown = sorted(set(values) - FORM_KEYS)
        if unknown:
            return CommandResult(
                handled=True, response_text=f"Unknown field(s): {', '.join(unknown)}", action=action
            )

        try:
            form = self._build_form(values, existing)
            submission = validate_form(form)
        except FormValidationError as exc:
            return CommandResult(handled=True, response_text=str(exc), action=action)

        alarm = self.alarm_manager.submit_alarm(submission)
        if alarm is None:
            return CommandResult(handled=True, response_text="Could not find that alarm.", action=action)
        when = format_alarm_time(alarm.next_trigger_at, now)
        if alarm.is_active:
            resp = f"Alarm {alarm.title} set for {when}"
            following = second_occurrence(alarm.next_trigger_at, alarm.rule)
            if following:
                resp += f"; then {format_alarm_time(following, now)}"
            resp += "."
        else:
            resp = f"Alarm {alarm.title} saved, but {when} is not in the future so it stays off."
        return CommandResult(handled=True, response_text=resp, action=action)

    def _build_form(self, values: Dict[str, str], existing: Optional[Alarm]) -> AlarmForm:
        form = AlarmForm(sound_id=self.default_sound_id, volume=str(self.default_volume))
        if existing:
            start = existing.start_at
            form = AlarmForm(
                year=str(start.year),
                month=str(start.month),
                day=str(start.day),
                hour=str(start.hour),
                minute=str(start.minute),
                title=existing.title,
                interval_type=existing.interval_type.value,
                interval_value=str(existing.interval_value),
                repeat_days=list(existing.repeat_days),
                sound_id=existing.sound_id,
                volume=str(existing.volume),
                alarm_id=existing.id,
            )

        if "date" in values:
            parts = values["date"].split("-")
            if len(parts) != 3:
                raise FormValidationError("Date must look like YYYY-MM-DD.")
            form.year, form.month, form.day = parts
        if "time" in values:
            parts = values["time"].split(":")
            if len(parts) != 2:
                raise FormValidationError("Time must look like HH:MM.")
            form.hour, form.minute = parts
        if "title" in values:
            form.title = values["title"]
        if "type" in values:
            form.interval_type = values["type"].lower()
        if "every" in values:
            form.interval_value = values["every"]
        if "days" in values:
            form.repeat_days = _parse_days(values["days"])
        if "sound" in values:
            if not sound_option(values["sound"]):
                raise FormValidationError(f"Unknown sound: {values['sound']}")
            form.sound_id = values["sound"]
        if "volume" in values:
            form.volume = values["volume"]
        return form

    def _preview(self, args: List[str]) -> CommandResult:
        if not args or not sound_option(args[0]):
            return CommandResult(handled=True, response_text="Pick a sound from the 'sounds' list.", action="preview")
        volume = _parse_index(args[1:]) if len(args) > 1 else self.default_volume
        if self.sound_player:
            self.sound_player.preview(args[0], max(0, min(100, volume or 0)))
        return CommandResult(handled=True, response_text=f"Playing {args[0]}.", action="preview")


def _parse_index(args: List[str]) -> Optional[int]:
    if not args:
        return None
    try:
        return int(args[0])
    except ValueError:
        return None


def _parse_pairs(args: List[str]) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        values[key.lower()] = value if sep else ""
    return values


def _parse_days(raw: str) -> List[int]:
    days: List[int] = []
    for token in raw.replace(" ", "").lower().split(","):
        if not token:
            continue
        if token.isdigit():
            days.append(int(token))
        elif token[:3] in WEEKDAY_NAMES:
            days.append(WEEKDAY_NAMES.index(token[:3]))
        else:
            raise FormValidationError(f"Unknown weekday: {token}")
    return days
