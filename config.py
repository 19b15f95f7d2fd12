import logging
import logging.handlers
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

TARGET_INPUT_POLICIES = ("clamp", "wrap", "raw")


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


def _get_env_optional_int(name: str) -> Optional[int]:
    val = os.getenv(name)
    if val is None or val == "":
        return None
    try:
        return int(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


@dataclass
class Config:
    alarm_default_hour: int
    alarm_default_minute: int
    alarm_sound_dir: Path
    alarm_sound_name: str
    alarm_sound_loop: bool
    alarm_tick_interval_ms: int
    target_input_policy: str
    output_device_index: Optional[int]
    output_target_rate: Optional[int]
    debug: bool
    log_level: str


def load_config(env_path: Optional[Path] = None) -> Config:
    if env_path is None:
        env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    alarm_default_hour = _get_env_int("ALARM_DEFAULT_HOUR", 8)
    alarm_default_minute = _get_env_int("ALARM_DEFAULT_MINUTE", 0)
    alarm_sound_dir = Path(os.getenv("ALARM_SOUND_DIR", "data"))
    alarm_sound_name = os.getenv("ALARM_SOUND_NAME", "alarm.wav")
    alarm_sound_loop = _get_env_bool("ALARM_SOUND_LOOP", False)
    alarm_tick_interval_ms = max(50, _get_env_int("ALARM_TICK_INTERVAL_MS", 250))
    target_input_policy = os.getenv("TARGET_INPUT_POLICY", "clamp").strip().lower()
    if target_input_policy not in TARGET_INPUT_POLICIES:
        raise ValueError(
            f"TARGET_INPUT_POLICY must be one of {', '.join(TARGET_INPUT_POLICIES)}, got {target_input_policy!r}"
        )
    output_device_index = _get_env_optional_int("OUTPUT_DEVICE_INDEX")
    output_target_rate = _get_env_optional_int("OUTPUT_TARGET_RATE")
    debug = _get_env_bool("DEBUG", False)
    log_level = os.getenv("LOG_LEVEL", "DEBUG" if debug else "INFO").upper()

    return Config(
        alarm_default_hour=alarm_default_hour,
        alarm_default_minute=alarm_default_minute,
        alarm_sound_dir=alarm_sound_dir,
        alarm_sound_name=alarm_sound_name,
        alarm_sound_loop=alarm_sound_loop,
        alarm_tick_interval_ms=alarm_tick_interval_ms,
        target_input_policy=target_input_policy,
        output_device_index=output_device_index,
        output_target_rate=output_target_rate,
        debug=debug,
        log_level=log_level,
    )


def setup_logging(log_level: str = "INFO") -> None:
    logs_dir = Path("logs")
    logs_dir.mkdir(exist_ok=True)

    log_path = logs_dir / "dearalarm.log"
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

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
