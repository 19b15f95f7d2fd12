from __future__ import annotations

import logging
from threading import Event, Lock, RLock, Thread
from typing import Callable, Optional

from time_utils import ClockReading, read_clock

from .commands import HELP_TEXT, UserCommand
from .engine import AlarmEngine, AlarmStatus, Decision
from .sink import NotificationSink

logger = logging.getLogger(__name__)


def normalize_field(value: int, size: int, policy: str) -> int:
    if policy == "wrap":
        return value % size
    if policy == "clamp":
        return max(0, min(size - 1, value))
    return value


class AlarmController:
    """Feeds clock readings and user commands into one ``AlarmEngine``.

    Every tick and command runs under a single lock, so the polling thread
    and the input thread can share the engine safely. Sink calls that follow
    a fire or a silence are serialized by a second lock, always taken first,
    so the sink sees them in the same order as the engine did.
    """

    def __init__(
        self,
        engine: AlarmEngine,
        sink: NotificationSink,
        sound_id: str = "alarm.wav",
        input_policy: str = "clamp",
        check_interval: float = 0.25,
        clock: Callable[[], ClockReading] = read_clock,
        on_fire: Optional[Callable[[AlarmStatus], None]] = None,
    ):
        self.engine = engine
        self.sink = sink
        self.sound_id = sound_id
        self.input_policy = input_policy
        self.check_interval = max(0.05, check_interval)
        self.clock = clock
        self.on_fire = on_fire

        self._lock = Lock()
        self._sink_lock = RLock()
        self._stop_event = Event()
        self._thread: Optional[Thread] = None

    def start(self) -> None:
        self._stop_event.clear()
        self._thread = Thread(target=self._loop, name="alarm-clock", daemon=True)
        self._thread.start()
        logger.info("Alarm polling every %.2fs (target=%s)", self.check_interval, self.engine.target)

    def shutdown(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2)
        self._thread = None
        self._stop_sink()

    def poll(self, reading: Optional[ClockReading] = None) -> Decision:
        reading = reading or self.clock()
        with self._sink_lock:
            with self._lock:
                decision = self.engine.tick(reading.hour, reading.minute)
                status = self.engine.status() if decision is Decision.FIRE else None
            if status is not None:
                self._fire(status)
        return decision

    def set_hour(self, hour: int) -> None:
        with self._lock:
            self.engine.set_target(normalize_field(hour, 24, self.input_policy), self.engine.target.minute)
            target = self.engine.target
        logger.info("Alarm target set to %s", target)

    def set_minute(self, minute: int) -> None:
        with self._lock:
            self.engine.set_target(self.engine.target.hour, normalize_field(minute, 60, self.input_policy))
            target = self.engine.target
        logger.info("Alarm target set to %s", target)

    def set_target(self, hour: int, minute: int) -> None:
        with self._lock:
            self.engine.set_target(
                normalize_field(hour, 24, self.input_policy),
                normalize_field(minute, 60, self.input_policy),
            )
            target = self.engine.target
        logger.info("Alarm target set to %s", target)

    def set_armed(self, active: bool) -> None:
        with self._lock:
            self.engine.set_armed(active)
        logger.info("Alarm %s", "armed" if active else "disarmed")

    def toggle_armed(self) -> bool:
        with self._lock:
            armed = not self.engine.armed
            self.engine.set_armed(armed)
        logger.info("Alarm %s", "armed" if armed else "disarmed")
        return armed

    def stop_sound(self) -> None:
        with self._sink_lock:
            with self._lock:
                self.engine.silence()
            self._stop_sink()

    def status(self) -> AlarmStatus:
        with self._lock:
            return self.engine.status()

    @property
    def sound_active(self) -> bool:
        return self.sink.is_active

    @property
    def is_ringing(self) -> bool:
        with self._lock:
            return self.engine.playing

    def apply(self, command: UserCommand) -> Optional[str]:
        """Run a parsed console command and return a line of feedback."""

        if command.action == "unknown":
            return command.error
        if command.action == "help":
            return HELP_TEXT
        if command.action == "set_hour" and command.hour is not None:
            self.set_hour(command.hour)
            return f"Alarm set to {self.status().target}"
        if command.action == "set_minute" and command.minute is not None:
            self.set_minute(command.minute)
            return f"Alarm set to {self.status().target}"
        if command.action == "set_time" and command.hour is not None and command.minute is not None:
            self.set_target(command.hour, command.minute)
            return f"Alarm set to {self.status().target}"
        if command.action == "toggle":
            return "Alarm ON" if self.toggle_armed() else "Alarm OFF"
        if command.action in ("arm", "disarm"):
            self.set_armed(command.action == "arm")
            return "Alarm ON" if command.action == "arm" else "Alarm OFF"
        if command.action == "stop":
            self.stop_sound()
            return "Sound stopped"
        return None

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.poll()
            except Exception:  # pragma: no cover - keep the clock running
                logger.error("Alarm tick failed", exc_info=True)
            self._stop_event.wait(self.check_interval)

    def _fire(self, status: AlarmStatus) -> None:
        try:
            self.sink.start(self.sound_id)
        except Exception:
            logger.error("Notification sink failed to start %s", self.sound_id, exc_info=True)
        if self.on_fire:
            try:
                self.on_fire(status)
            except Exception:  # pragma: no cover - callback safety
                logger.error("on_fire callback failed", exc_info=True)

    def _stop_sink(self) -> None:
        with self._sink_lock:
            try:
                self.sink.stop_all()
            except Exception:
                logger.error("Notification sink failed to stop", exc_info=True)
