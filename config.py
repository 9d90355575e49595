import logging
import logging.handlers
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _get_env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip() in {"1", "true", "True", "yes", "YES", "y"}


def _get_env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return int(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


def _get_env_float(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return float(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a float") from exc


@dataclass
class Config:
    alarms_path: Path
    sound_dir: Path
    check_interval_ms: int
    default_sound_id: str
    default_volume: int
    loop_seconds: float
    sample_rate: int
    debug: bool
    log_level: str


def load_config(env_path: Optional[Path] = None) -> Config:
    if env_path is None:
        env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    alarms_path = Path(os.getenv("ALARM_STORAGE_PATH", "data/alarms.json"))
    sound_dir = Path(os.getenv("ALARM_SOUND_DIR", "data/sounds"))
    check_interval_ms = max(200, _get_env_int("ALARM_CHECK_INTERVAL_MS", 1000))
    default_sound_id = os.getenv("ALARM_DEFAULT_SOUND", "crystal-morning")
    default_volume = max(0, min(100, _get_env_int("ALARM_DEFAULT_VOLUME", 50)))
    loop_seconds = _get_env_float("ALARM_LOOP_SECONDS", 8.0)
    sample_rate = _get_env_int("ALARM_SAMPLE_RATE", 22050)
    debug = _get_env_bool("DEBUG", False)
    log_level = os.getenv("LOG_LEVEL", "DEBUG" if debug else "INFO").upper()

    return Config(
        alarms_path=alarms_path,
        sound_dir=sound_dir,
        check_interval_ms=check_interval_ms,
        default_sound_id=default_sound_id,
        default_volume=default_volume,
        loop_seconds=loop_seconds,
        sample_rate=sample_rate,
        debug=debug,
        log_level=log_level,
    )


def setup_logging(log_level: str = "INFO") -> None:
    logs_dir = Path("logs")
    logs_dir.mkdir(exist_ok=True)

    log_path = logs_dir / "alarm_clock.log"
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s")

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        handlers=[file_handler, console_handler],
    )
