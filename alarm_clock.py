import logging
import signal

from alarms.commands import CommandRouter
from alarms.manager import AlarmManager
from alarms.sounds import AlarmSoundPlayer
from alarms.storage import Alarm
from config import Config, load_config, setup_logging
from time_utils import SystemClock

logger = logging.getLogger("alarm_clock")


def graceful_exit(signum, frame) -> None:  # pragma: no cover - signal handler
    logger.info("Shutting down (signal %s)", signum)
    raise KeyboardInterrupt()


class AlarmClockApp:
    def __init__(self, config: Config):
        self.config = config
        self.clock = SystemClock()
        self.sound_player = AlarmSoundPlayer(
            config.sound_dir,
            sample_rate=config.sample_rate,
            loop_seconds=config.loop_seconds,
        )
        self.alarm_manager = AlarmManager(
            storage_path=config.alarms_path,
            sound_player=self.sound_player,
            check_interval=config.check_interval_ms / 1000.0,
            on_alarm_triggered=self._on_alarm_triggered,
            clock=self.clock,
        )
        self.router = CommandRouter(
            alarm_manager=self.alarm_manager,
            sound_player=self.sound_player,
            default_sound_id=config.default_sound_id,
            default_volume=config.default_volume,
        )

    def start(self) -> None:
        self.alarm_manager.start()

    def shutdown(self) -> None:
        self.alarm_manager.shutdown()

    def run_console(self) -> None:
        print("Type 'help' for commands, Ctrl+C to quit.")
        while True:
            line = input("> ")
            result = self.router.handle_text(line, now=self.clock.now())
            if result is None:
                if line.strip():
                    print("Unknown command, type 'help'.")
                continue
            if result.response_text:
                print(result.response_text)

    def _on_alarm_triggered(self, alarm: Alarm) -> None:
        print(f"\n*** {alarm.title} is ringing! Type 'stop' to dismiss. ***")


def main() -> None:
    config = load_config()
    setup_logging(config.log_level)
    signal.signal(signal.SIGINT, graceful_exit)
    logger.info("Starting alarm clock (storage=%s)", config.alarms_path)

    app = AlarmClockApp(config)
    app.start()
    try:
        app.run_console()
    except (KeyboardInterrupt, EOFError):
        logger.info("Interrupted by user")
    finally:
        app.shutdown()


if __name__ == "__main__":
    main()
