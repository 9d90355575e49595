from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from threading import Event, Lock, Thread
from typing import Callable, List, Optional

from time_utils import SystemClock, floor_to_minute

from .forms import AlarmSubmission
from .recurrence import seed_next_trigger
from .sounds import AlarmSoundPlayer
from .storage import Alarm, load_alarms, save_alarms

logger = logging.getLogger(__name__)


class AlarmRuntimeState:
    def __init__(self) -> None:
        self.ringing_alarm: Optional[Alarm] = None


class AlarmManager:
    """Owns the alarm collection and decides when an alarm rings.

    Every entry point (tick, submit, remove, stop) runs to completion under one lock,
    so the host tick thread and user actions never interleave. At most one alarm rings
    at a time; a fired alarm leaves the collection whatever its repeat type.
    """

    def __init__(
        self,
        storage_path: Path,
        sound_player: AlarmSoundPlayer,
        check_interval: float = 1.0,
        on_alarm_triggered: Optional[Callable[[Alarm], None]] = None,
        clock=None,
    ):
        self.storage_path = storage_path
        self.sound_player = sound_player
        self.check_interval = max(0.2, check_interval)
        self.on_alarm_triggered = on_alarm_triggered
        self.clock = clock or SystemClock()

        self._alarms: List[Alarm] = []
        self._lock = Lock()
        self._stop_event = Event()
        self._thread: Optional[Thread] = None
        self._runtime = AlarmRuntimeState()

    def load(self) -> None:
        with self._lock:
            self._alarms = load_alarms(self.storage_path)
        logger.info("Loaded %s alarms from %s", len(self._alarms), self.storage_path)

    def start(self) -> None:
        self.load()
        self._stop_event.clear()
        self._thread = Thread(target=self._loop, name="alarm-scheduler", daemon=True)
        self._thread.start()

    def shutdown(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2)
        self.sound_player.stop_loop()
        self._thread = None

    def submit_alarm(self, submission: AlarmSubmission) -> Optional[Alarm]:
        """Create a new alarm, or edit the one named by ``submission.alarm_id``."""
        now = self.clock.now()
        start_at = floor_to_minute(submission.start_at)
        try:
            next_trigger_at, is_active = seed_next_trigger(start_at, submission.rule, now)
        except (OverflowError, ValueError):
            logger.warning("Could not compute next occurrence for %r, storing it dormant", submission.title)
            next_trigger_at, is_active = start_at, False

        fields = dict(
            title=submission.title,
            start_at=start_at,
            interval_type=submission.rule.interval_type,
            interval_value=submission.rule.interval_value,
            repeat_days=list(submission.rule.repeat_days),
            sound_id=submission.sound_id,
            volume=submission.volume,
            is_active=is_active,
            next_trigger_at=next_trigger_at,
        )

        with self._lock:
            if submission.alarm_id:
                for idx, existing in enumerate(self._alarms):
                    if existing.id == submission.alarm_id:
                        alarm = replace(existing, **fields)
                        self._alarms[idx] = alarm
                        break
                else:
                    logger.warning("Cannot edit unknown alarm %s", submission.alarm_id)
                    return None
            else:
                alarm = Alarm(id=f"al_{uuid.uuid4().hex[:8]}", **fields)
                self._alarms.append(alarm)
            self._persist()

        logger.info(
            "Alarm %s scheduled for %s (type=%s, active=%s)",
            alarm.id,
            alarm.next_trigger_at.isoformat(),
            alarm.interval_type.value,
            alarm.is_active,
        )
        return alarm

    def list_alarms(self) -> List[Alarm]:
        with self._lock:
            return sorted(self._alarms, key=lambda a: a.next_trigger_at)

    def remove_alarm(self, alarm_id: str) -> Optional[Alarm]:
        with self._lock:
            for alarm in self._alarms:
                if alarm.id == alarm_id:
                    self._alarms = [a for a in self._alarms if a.id != alarm_id]
                    self._persist()
                    logger.info("Removed alarm %s", alarm_id)
                    return alarm
        return None

    def remove_alarm_by_index(self, index: int) -> Optional[Alarm]:
        alarms = self.list_alarms()
        if index < 1 or index > len(alarms):
            return None
        return self.remove_alarm(alarms[index - 1].id)

    def nearest_alarm(self) -> Optional[Alarm]:
        with self._lock:
            active = [a for a in self._alarms if a.is_active]
        if not active:
            return None
        return min(active, key=lambda a: a.next_trigger_at)

    def stop_ringing(self) -> Optional[Alarm]:
        with self._lock:
            current = self._runtime.ringing_alarm
            self._runtime.ringing_alarm = None
        self.sound_player.stop_loop()
        if current:
            logger.info("Alarm %s dismissed", current.id)
        return current

    @property
    def active_alert(self) -> Optional[Alarm]:
        with self._lock:
            return self._runtime.ringing_alarm

    @property
    def is_ringing(self) -> bool:
        return self.active_alert is not None

    def tick(self, now: Optional[datetime] = None) -> Optional[Alarm]:
        """Fire the next due alarm unless one is already ringing; returns the fired alarm."""
        now = now or self.clock.now()
        with self._lock:
            if self._runtime.ringing_alarm is not None:
                return None
            due = self._select_due(now)
            if due is None:
                return None
            fired = replace(due, last_triggered_at=now)
            self._runtime.ringing_alarm = fired
            self._alarms = [a for a in self._alarms if a.id != due.id]
            self._persist()
        self._trigger_alarm(fired)
        return fired

    def _select_due(self, now: datetime) -> Optional[Alarm]:
        # Earliest due instant wins; ties keep collection order (min is stable).
        due = [a for a in self._alarms if a.is_active and a.next_trigger_at <= now]
        if not due:
            return None
        return min(due, key=lambda a: a.next_trigger_at)

    def _trigger_alarm(self, alarm: Alarm) -> None:
        logger.info("Alarm triggered at %s (title=%s)", alarm.next_trigger_at.isoformat(), alarm.title)
        try:
            self.sound_player.start_loop(alarm.sound_id, alarm.volume)
        except (OSError, RuntimeError):
            logger.error("Failed to start alarm sound %s", alarm.sound_id, exc_info=True)
        if self.on_alarm_triggered:
            try:
                self.on_alarm_triggered(alarm)
            except Exception:  # pragma: no cover - callback safety
                logger.error("on_alarm_triggered callback failed", exc_info=True)

    def _persist(self) -> None:
        try:
            save_alarms(self.storage_path, self._alarms)
        except OSError as exc:
            logger.error("Failed to save alarms to %s: %s", self.storage_path, exc)

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.error("Alarm tick failed", exc_info=True)
            self._stop_event.wait(self.check_interval)
