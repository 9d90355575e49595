from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from time_utils import floor_to_minute, to_local_naive

from .recurrence import IntervalType, RecurrenceRule, normalize_days

logger = logging.getLogger(__name__)

DEFAULT_SOUND_ID = "crystal-morning"
DEFAULT_VOLUME = 50


def clamp_volume(value) -> int:
    return max(0, min(100, int(value)))


@dataclass
class Alarm:
    id: str
    title: str
    start_at: datetime
    next_trigger_at: datetime
    interval_type: IntervalType = IntervalType.INTERVAL
    interval_value: int = 1
    repeat_days: List[int] = field(default_factory=list)
    sound_id: str = DEFAULT_SOUND_ID
    volume: int = DEFAULT_VOLUME
    is_active: bool = True
    last_triggered_at: Optional[datetime] = None

    @property
    def rule(self) -> RecurrenceRule:
        return RecurrenceRule(self.interval_type, self.interval_value, tuple(self.repeat_days))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "start_at": self.start_at.isoformat(),
            "interval_type": self.interval_type.value,
            "interval_value": self.interval_value,
            "repeat_days": list(self.repeat_days),
            "sound_id": self.sound_id,
            "volume": self.volume,
            "is_active": self.is_active,
            "next_trigger_at": self.next_trigger_at.isoformat(),
            "last_triggered_at": self.last_triggered_at.isoformat() if self.last_triggered_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Alarm":
        next_raw = data.get("next_trigger_at")
        if not next_raw:
            raise ValueError("Alarm payload missing next_trigger_at field")
        next_trigger_at = floor_to_minute(_parse_instant(next_raw))
        start_raw = data.get("start_at")
        last_raw = data.get("last_triggered_at")
        return cls(
            id=str(data.get("id", "")),
            title=str(data.get("title") or ""),
            start_at=floor_to_minute(_parse_instant(start_raw)) if start_raw else next_trigger_at,
            next_trigger_at=next_trigger_at,
            interval_type=IntervalType(data.get("interval_type") or IntervalType.INTERVAL),
            interval_value=max(1, int(data.get("interval_value") or 1)),
            repeat_days=list(normalize_days(data.get("repeat_days") or [])),
            sound_id=str(data.get("sound_id") or DEFAULT_SOUND_ID),
            volume=clamp_volume(data.get("volume", DEFAULT_VOLUME)),
            is_active=bool(data.get("is_active", True)),
            last_triggered_at=_parse_instant(last_raw) if last_raw else None,
        )


def _parse_instant(raw: str) -> datetime:
    # UTC stamps such as "2025-01-01T08:00:00.000Z" become local wall-clock time
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return to_local_naive(datetime.fromisoformat(raw))


def load_alarms(path: Path) -> List[Alarm]:
    if not path.exists():
        return []
    try:
        with path.open("r", encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, ValueError) as exc:
        logger.error("Failed to load alarms from %s: %s", path, exc)
        return []
    if not isinstance(payload, list):
        logger.error("Alarm file %s does not hold a list, ignoring it", path)
        return []
    alarms: List[Alarm] = []
    for item in payload:
        try:
            alarms.append(Alarm.from_dict(item))
        except (AttributeError, TypeError, ValueError) as exc:
            logger.warning("Skipping alarm item due to parse error: %s", exc)
    return alarms


def save_alarms(path: Path, alarms: List[Alarm]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    serializable = [a.to_dict() for a in alarms]
    with path.open("w", encoding="utf-8") as f:
        json.dump(serializable, f, ensure_ascii=False, indent=2)
