"""Alarm subsystem: recurrence, scheduling, storage and sounds."""

from .manager import AlarmManager, AlarmRuntimeState
from .recurrence import IntervalType, RecurrenceRule, next_occurrence, seed_next_trigger
