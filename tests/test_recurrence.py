from datetime import datetime, timedelta

import pytest

from alarms.recurrence import (
    IntervalType,
    RecurrenceRule,
    next_occurrence,
    second_occurrence,
    seed_next_trigger,
)
from time_utils import sunday_weekday, week_anchor, weeks_between

# 2025-01-05 is a Sunday
MONDAY = datetime(2025, 1, 6, 8, 0)
TUESDAY = datetime(2025, 1, 7, 8, 0)


def _references():
    base = datetime(2025, 1, 1, 6, 30, 45, 123000)
    return [base + timedelta(hours=13 * i) for i in range(20)]


def _rules():
    return [
        RecurrenceRule(IntervalType.INTERVAL, 1),
        RecurrenceRule(IntervalType.INTERVAL, 3),
        RecurrenceRule(IntervalType.WEEKLY, 1, ()),
        RecurrenceRule(IntervalType.WEEKLY, 1, (1, 3, 5)),
        RecurrenceRule(IntervalType.WEEKLY, 2, (0,)),
        RecurrenceRule(IntervalType.WEEKLY, 1, (6,)),
    ]


def test_once_has_no_next_occurrence():
    rule = RecurrenceRule(IntervalType.ONCE)
    for ref in _references():
        assert next_occurrence(ref, rule) is None


def test_next_occurrence_is_later_and_minute_aligned():
    for rule in _rules():
        for ref in _references():
            nxt = next_occurrence(ref, rule)
            assert nxt > ref
            assert nxt.second == 0
            assert nxt.microsecond == 0


def test_weekly_next_occurrence_lands_on_selected_day():
    for rule in _rules():
        if rule.interval_type is not IntervalType.WEEKLY or not rule.repeat_days:
            continue
        for ref in _references():
            assert sunday_weekday(next_occurrence(ref, rule)) in rule.repeat_days


def test_interval_steps_whole_days():
    rule = RecurrenceRule(IntervalType.INTERVAL, 3)
    assert next_occurrence(datetime(2025, 1, 1, 8, 0, 30), rule) == datetime(2025, 1, 4, 8, 0)


def test_weekly_wraps_to_next_week():
    rule = RecurrenceRule(IntervalType.WEEKLY, 1, (1, 3, 5))
    friday = datetime(2025, 1, 10, 8, 0)
    assert next_occurrence(friday, rule) == datetime(2025, 1, 13, 8, 0)


def test_weekly_single_day_repeats_after_seven_days():
    rule = RecurrenceRule(IntervalType.WEEKLY, 1, (2,))
    assert next_occurrence(TUESDAY, rule) == TUESDAY + timedelta(days=7)


def test_weekly_without_days_fires_daily():
    rule = RecurrenceRule(IntervalType.WEEKLY, 1, ())
    assert next_occurrence(TUESDAY, rule) == datetime(2025, 1, 8, 8, 0)


def test_rule_clamps_interval_and_normalizes_days():
    rule = RecurrenceRule("weekly", 0, (5, 1, 5))
    assert rule.interval_type is IntervalType.WEEKLY
    assert rule.interval_value == 1
    assert rule.repeat_days == (1, 5)
    assert RecurrenceRule(IntervalType.INTERVAL, -4).interval_value == 1


def test_rule_rejects_out_of_range_weekday():
    with pytest.raises(ValueError):
        RecurrenceRule(IntervalType.WEEKLY, 1, (7,))


def test_seed_interval_catches_up_past_start():
    rule = RecurrenceRule(IntervalType.INTERVAL, 1)
    nxt, active = seed_next_trigger(datetime(2025, 1, 1, 8, 0), rule, now=datetime(2025, 1, 3, 9, 0))
    assert nxt == datetime(2025, 1, 4, 8, 0)
    assert active


def test_seed_interval_start_equal_to_now_moves_forward():
    rule = RecurrenceRule(IntervalType.INTERVAL, 2)
    now = datetime(2025, 1, 3, 8, 0)
    nxt, active = seed_next_trigger(now, rule, now=now)
    assert nxt == datetime(2025, 1, 5, 8, 0)
    assert active


def test_seed_interval_future_start_kept_and_truncated():
    rule = RecurrenceRule(IntervalType.INTERVAL, 5)
    nxt, active = seed_next_trigger(datetime(2025, 2, 1, 7, 15, 42), rule, now=datetime(2025, 1, 3, 9, 0))
    assert nxt == datetime(2025, 2, 1, 7, 15)
    assert active


def test_seed_once_keeps_past_start_but_is_dormant():
    rule = RecurrenceRule(IntervalType.ONCE)
    nxt, active = seed_next_trigger(datetime(2025, 1, 1, 8, 0), rule, now=datetime(2025, 1, 3, 9, 0))
    assert nxt == datetime(2025, 1, 1, 8, 0)
    assert not active


def test_seed_once_future_is_active():
    rule = RecurrenceRule(IntervalType.ONCE)
    nxt, active = seed_next_trigger(datetime(2025, 1, 4, 6, 0), rule, now=datetime(2025, 1, 3, 9, 0))
    assert nxt == datetime(2025, 1, 4, 6, 0)
    assert active


def test_seed_weekly_picks_next_selected_day_this_week():
    rule = RecurrenceRule(IntervalType.WEEKLY, 1, (1, 3, 5))
    nxt, active = seed_next_trigger(TUESDAY, rule, now=datetime(2025, 1, 7, 10, 0))
    assert nxt == datetime(2025, 1, 8, 8, 0)
    assert active


def test_seed_weekly_future_start_on_selected_day_is_kept():
    rule = RecurrenceRule(IntervalType.WEEKLY, 1, (1,))
    nxt, active = seed_next_trigger(MONDAY, rule, now=datetime(2025, 1, 5, 22, 0))
    assert nxt == MONDAY
    assert active


def test_seed_weekly_old_start_searches_from_today():
    rule = RecurrenceRule(IntervalType.WEEKLY, 1, (1, 3, 5))
    nxt, _ = seed_next_trigger(datetime(2024, 11, 4, 8, 0), rule, now=datetime(2025, 1, 7, 10, 0))
    assert nxt == datetime(2025, 1, 8, 8, 0)


def test_seed_weekly_every_other_week_skips_odd_week():
    rule = RecurrenceRule(IntervalType.WEEKLY, 2, (1,))
    nxt, active = seed_next_trigger(MONDAY, rule, now=datetime(2025, 1, 6, 9, 0))
    assert nxt == datetime(2025, 1, 20, 8, 0)
    assert active


def test_seed_weekly_every_other_week_from_off_week():
    rule = RecurrenceRule(IntervalType.WEEKLY, 2, (1,))
    nxt, _ = seed_next_trigger(MONDAY, rule, now=datetime(2025, 1, 13, 12, 0))
    assert nxt == datetime(2025, 1, 20, 8, 0)


def test_seed_weekly_every_third_week_stays_congruent():
    rule = RecurrenceRule(IntervalType.WEEKLY, 3, (6,))
    saturday = datetime(2025, 1, 11, 7, 0)
    nxt, _ = seed_next_trigger(saturday, rule, now=datetime(2025, 1, 11, 7, 30))
    assert nxt == datetime(2025, 2, 1, 7, 0)
    assert weeks_between(saturday, nxt) % 3 == 0


def test_seed_weekly_without_days_steps_daily():
    rule = RecurrenceRule(IntervalType.WEEKLY, 1, ())
    nxt, active = seed_next_trigger(datetime(2025, 1, 1, 8, 0), rule, now=datetime(2025, 1, 3, 9, 0))
    assert nxt == datetime(2025, 1, 4, 8, 0)
    assert active


def test_second_occurrence_every_other_monday():
    rule = RecurrenceRule(IntervalType.WEEKLY, 2, (1,))
    assert second_occurrence(MONDAY, rule) == datetime(2025, 1, 20, 8, 0)


def test_second_occurrence_allows_second_day_in_same_week():
    rule = RecurrenceRule(IntervalType.WEEKLY, 2, (1, 3))
    assert second_occurrence(MONDAY, rule) == datetime(2025, 1, 8, 8, 0)


def test_second_occurrence_interval_and_once():
    assert second_occurrence(MONDAY, RecurrenceRule(IntervalType.INTERVAL, 4)) == datetime(2025, 1, 10, 8, 0)
    assert second_occurrence(MONDAY, RecurrenceRule(IntervalType.ONCE)) is None
    assert second_occurrence(MONDAY, RecurrenceRule(IntervalType.WEEKLY, 1, ())) is None


def test_week_helpers_use_sunday_boundary():
    saturday = datetime(2025, 1, 11, 23, 59)
    sunday = datetime(2025, 1, 12, 0, 0)
    assert sunday_weekday(sunday) == 0
    assert sunday_weekday(saturday) == 6
    assert week_anchor(saturday) == datetime(2025, 1, 5).date()
    assert weeks_between(saturday, sunday) == 1
