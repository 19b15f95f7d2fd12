import logging
import signal
import sys
import time
from queue import Empty, Queue
from threading import Event, Thread
from typing import Optional

from alarms.commands import HELP_TEXT, parse_command
from alarms.controller import AlarmController
from alarms.engine import AlarmEngine, AlarmStatus
from alarms.sink import NotificationSink, NullNotificationSink
from alarms.sounds import PyAudioNotificationSink
from audio_io import create_pyaudio, get_output_device
from config import Config, load_config, setup_logging
from time_utils import format_clock, read_clock

logger = logging.getLogger("dearalarm")


def graceful_exit(signum, frame) -> None:  # pragma: no cover - signal handler
    logger.info("Shutting down (signal %s)", signum)
    raise KeyboardInterrupt()


def render_status(status: AlarmStatus, clock_text: str, sound_active: bool = False) -> str:
    armed = "ON" if status.armed else "OFF"
    if status.firing and status.playing:
        state = "!!! BEEP BEEP BEEP !!!"
    elif status.armed:
        state = "Status: Waiting..."
    else:
        state = "Status: Idle"
    if status.playing and sound_active:
        playing = " (sound playing, 's' to stop)"
    elif status.playing:
        playing = " (sound finished, 's' to dismiss)"
    else:
        playing = ""
    return f"Current Time: {clock_text} | Alarm {status.target} {armed} | {state}{playing}"


def create_sink(config: Config):
    """Open the audio output, or fall back to a silent sink."""

    try:
        pa = create_pyaudio()
    except OSError as exc:
        logger.error("Audio output unavailable (%s); alarms will only be logged", exc)
        return None, NullNotificationSink()

    try:
        device = get_output_device(pa, config.output_device_index)
    except (OSError, ValueError) as exc:
        logger.error("No usable output device (%s); alarms will only be logged", exc)
        pa.terminate()
        return None, NullNotificationSink()

    sink = PyAudioNotificationSink(
        pa,
        sound_dir=config.alarm_sound_dir,
        default_sound=config.alarm_sound_name,
        device_index=device.index,
        target_rate=config.output_target_rate or device.rate,
        loop=config.alarm_sound_loop,
    )
    return pa, sink


class AlarmApp:
    def __init__(self, config: Config, sink: NotificationSink):
        self.config = config
        self.sink = sink
        self.engine = AlarmEngine(config.alarm_default_hour, config.alarm_default_minute)
        self.controller = AlarmController(
            engine=self.engine,
            sink=sink,
            sound_id=config.alarm_sound_name,
            input_policy=config.target_input_policy,
            check_interval=config.alarm_tick_interval_ms / 1000.0,
            on_fire=self._on_fire,
        )
        self.commands: "Queue[str]" = Queue()
        self.stop_event = Event()
        self.input_thread: Optional[Thread] = None
        self._last_render = ""

    def start(self) -> None:
        self.controller.start()
        self.input_thread = Thread(target=self._input_loop, name="console-input", daemon=True)
        self.input_thread.start()
        print(HELP_TEXT)

    def shutdown(self) -> None:
        self.stop_event.set()
        self.controller.shutdown()
        self.sink.close()

    def run(self) -> None:
        while not self.stop_event.is_set():
            self._drain_commands()
            self._render()
            time.sleep(0.1)

    def _drain_commands(self) -> None:
        while True:
            try:
                line = self.commands.get_nowait()
            except Empty:
                return
            command = parse_command(line)
            if command is None:
                continue
            if command.action == "quit":
                self.stop_event.set()
                return
            response = self.controller.apply(command)
            if response:
                print(response)
            # Force a status line after every command.
            self._last_render = ""

    def _render(self) -> None:
        # Printed at minute resolution.
        reading = read_clock()
        line = render_status(
            self.controller.status(),
            format_clock(reading, with_seconds=False),
            sound_active=self.controller.sound_active,
        )
        if line != self._last_render:
            print(line)
            self._last_render = line

    def _input_loop(self) -> None:
        for line in sys.stdin:
            self.commands.put(line)
            if self.stop_event.is_set():
                return
        self.commands.put("quit")

    def _on_fire(self, status: AlarmStatus) -> None:
        logger.info("Alarm %s ringing", status.target)


def main() -> None:
    config = load_config()
    setup_logging(config.log_level)
    signal.signal(signal.SIGINT, graceful_exit)
    logger.info("Starting DearAlarm (policy=%s)", config.target_input_policy)

    pa, sink = create_sink(config)
    app = AlarmApp(config, sink)
    app.start()
    try:
        app.run()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        app.shutdown()
        if pa is not None:
            pa.terminate()


if __name__ == "__main__":
    main()
