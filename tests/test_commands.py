from datetime import datetime

from alarms.commands import CommandRouter
from alarms.manager import AlarmManager
from alarms.recurrence import IntervalType


class FixedClock:
    def now(self) -> datetime:
        return _now()


class SilentPlayer:
    def __init__(self):
        self.previews = []

    def start_loop(self, sound_id, volume):
        pass

    def stop_loop(self):
        pass

    def preview(self, sound_id, volume):
        self.previews.append((sound_id, volume))


def _now() -> datetime:
    # Tuesday
    return datetime(2025, 1, 7, 10, 0)


def _router(tmp_path):
    player = SilentPlayer()
    manager = AlarmManager(storage_path=tmp_path / "alarms.json", sound_player=player, clock=FixedClock())
    return CommandRouter(manager, sound_player=player), manager, player


def test_add_weekly_alarm(tmp_path):
    router, manager, _ = _router(tmp_path)
    result = router.handle_text(
        'add title="Morning run" date=2025-01-07 time=08:00 type=weekly days=mon,wed,fri volume=70', now=_now()
    )
    assert result.handled
    assert result.action == "add"
    assert "tomorrow 08:00" in result.response_text

    [alarm] = manager.list_alarms()
    assert alarm.title == "Morning run"
    assert alarm.interval_type is IntervalType.WEEKLY
    assert alarm.repeat_days == [1, 3, 5]
    assert alarm.next_trigger_at == datetime(2025, 1, 8, 8, 0)
    assert alarm.volume == 70


def test_add_past_once_alarm_stays_off(tmp_path):
    router, manager, _ = _router(tmp_path)
    result = router.handle_text("add date=2025-01-06 time=08:00 type=once", now=_now())
    assert "stays off" in result.response_text
    assert not manager.list_alarms()[0].is_active


def test_add_reports_form_errors(tmp_path):
    router, manager, _ = _router(tmp_path)
    assert "full start date" in router.handle_text("add title=x time=08:00", now=_now()).response_text
    assert "YYYY-MM-DD" in router.handle_text("add date=2025/01/07 time=08:00", now=_now()).response_text
    assert "Unknown weekday" in router.handle_text(
        "add date=2025-01-07 time=08:00 type=weekly days=funday", now=_now()
    ).response_text
    assert "Unknown field" in router.handle_text("add date=2025-01-07 time=08:00 colour=red", now=_now()).response_text
    assert manager.list_alarms() == []


def test_edit_keeps_unspecified_fields(tmp_path):
    router, manager, _ = _router(tmp_path)
    router.handle_text("add title=Gym date=2025-01-08 time=06:30 type=interval every=2 sound=warm-piano", now=_now())
    result = router.handle_text("edit 1 title=Swim", now=_now())
    assert result.action == "edit"

    [alarm] = manager.list_alarms()
    assert alarm.title == "Swim"
    assert alarm.interval_value == 2
    assert alarm.sound_id == "warm-piano"
    assert alarm.next_trigger_at == datetime(2025, 1, 8, 6, 30)


def test_edit_and_remove_unknown_index(tmp_path):
    router, _, _ = _router(tmp_path)
    assert router.handle_text("edit 3 title=x", now=_now()).response_text == "Could not find that alarm."
    assert router.handle_text("remove 1", now=_now()).response_text == "Could not find that alarm."


def test_list_next_and_remove(tmp_path):
    router, manager, _ = _router(tmp_path)
    router.handle_text("add title=Late date=2025-01-09 time=09:00 type=once", now=_now())
    router.handle_text("add title=Soon date=2025-01-07 time=12:30 type=once", now=_now())

    listing = router.handle_text("list", now=_now()).response_text
    assert listing.splitlines()[1].startswith("1) today 12:30 Soon")

    assert router.handle_text("next", now=_now()).response_text == "2h 30m left: Soon (today 12:30)"

    removed = router.handle_text("remove 1", now=_now())
    assert "Soon" in removed.response_text
    assert [a.title for a in manager.list_alarms()] == ["Late"]


def test_stop_when_ringing_and_idle(tmp_path):
    router, manager, _ = _router(tmp_path)
    assert router.handle_text("stop", now=_now()).response_text == "Nothing is ringing right now."
    router.handle_text("add title=Now date=2025-01-07 time=10:01 type=once", now=_now())
    manager.tick(datetime(2025, 1, 7, 10, 1))
    assert router.handle_text("stop", now=_now()).response_text == "Stopped Now."


def test_preview_and_sounds(tmp_path):
    router, _, player = _router(tmp_path)
    assert "panic-pulse" in router.handle_text("sounds", now=_now()).response_text
    router.handle_text("preview midnight-jazz 30", now=_now())
    assert player.previews == [("midnight-jazz", 30)]
    assert "Pick a sound" in router.handle_text("preview bagpipes", now=_now()).response_text


def test_unrelated_text_is_not_handled(tmp_path):
    router, _, _ = _router(tmp_path)
    assert router.handle_text("make coffee", now=_now()) is None
    assert router.handle_text("   ", now=_now()) is None


def test_add_reply_previews_following_occurrence(tmp_path):
    router, _, _ = _router(tmp_path)
    result = router.handle_text(
        "add title=Gym date=2025-01-13 time=08:00 type=weekly days=mon every=2", now=_now()
    )
    assert result.response_text == "Alarm Gym set for 01/13 08:00; then 01/27 08:00."


def test_add_reply_for_once_has_no_preview(tmp_path):
    router, _, _ = _router(tmp_path)
    result = router.handle_text("add title=Nap date=2025-01-07 time=14:00 type=once", now=_now())
    assert result.response_text == "Alarm Nap set for today 14:00."


def test_edit_reply_previews_following_interval_step(tmp_path):
    router, _, _ = _router(tmp_path)
    router.handle_text("add title=Pills date=2025-01-08 time=09:00 type=once", now=_now())
    result = router.handle_text("edit 1 type=interval every=3", now=_now())
    assert result.response_text == "Alarm Pills set for tomorrow 09:00; then 01/11 09:00."
