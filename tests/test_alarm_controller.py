from threading import Thread

from alarms.commands import parse_command
from alarms.controller import AlarmController, normalize_field
from alarms.engine import AlarmEngine, Decision
from alarms.sink import NotificationSink, NullNotificationSink
from time_utils import ClockReading


class FakeSink(NotificationSink):
    def __init__(self, fail: bool = False):
        self.started = []
        self.stops = 0
        self.fail = fail

    def start(self, sound_id: str) -> bool:
        if self.fail:
            raise OSError("device gone")
        self.started.append(sound_id)
        return True

    def stop_all(self) -> None:
        if self.fail:
            raise OSError("device gone")
        self.stops += 1

    @property
    def is_active(self) -> bool:
        return bool(self.started) and not self.stops


class FakeClock:
    def __init__(self, hour: int, minute: int):
        self.reading = ClockReading(hour, minute)

    def set(self, hour: int, minute: int, second: int = 0) -> None:
        self.reading = ClockReading(hour, minute, second)

    def __call__(self) -> ClockReading:
        return self.reading


def _controller(sink=None, clock=None, policy="clamp", **kwargs):
    return AlarmController(
        AlarmEngine(),
        sink or FakeSink(),
        sound_id="alarm.wav",
        input_policy=policy,
        clock=clock or FakeClock(7, 59),
        **kwargs,
    )


def test_normalize_field_policies():
    assert normalize_field(25, 24, "clamp") == 23
    assert normalize_field(-1, 60, "clamp") == 0
    assert normalize_field(25, 24, "wrap") == 1
    assert normalize_field(-1, 60, "wrap") == 59
    assert normalize_field(75, 60, "raw") == 75


def test_fire_starts_sink_once_per_minute():
    sink = FakeSink()
    clock = FakeClock(7, 59)
    fired = []
    controller = _controller(sink, clock, on_fire=fired.append)
    controller.set_armed(True)

    assert controller.poll() is Decision.WAITING
    clock.set(8, 0, 0)
    assert controller.poll() is Decision.FIRE
    for second in range(1, 60):
        clock.set(8, 0, second)
        assert controller.poll() is Decision.ALREADY_FIRED
    assert sink.started == ["alarm.wav"]
    assert len(fired) == 1
    assert controller.is_ringing


def test_explicit_reading_overrides_clock():
    controller = _controller()
    controller.set_armed(True)
    assert controller.poll(ClockReading(8, 0, 30)) is Decision.FIRE


def test_stop_sound_silences_engine_and_sink():
    sink = FakeSink()
    clock = FakeClock(8, 0)
    controller = _controller(sink, clock)
    controller.set_armed(True)
    controller.poll()
    controller.stop_sound()
    assert sink.stops == 1
    assert not controller.is_ringing
    assert controller.poll() is Decision.ALREADY_FIRED
    assert controller.status().armed


def test_set_hour_keeps_minute_and_applies_policy():
    controller = _controller(policy="clamp")
    controller.set_minute(30)
    controller.set_hour(31)
    target = controller.status().target
    assert (target.hour, target.minute) == (23, 30)

    wrapping = _controller(policy="wrap")
    wrapping.set_target(25, 61)
    target = wrapping.status().target
    assert (target.hour, target.minute) == (1, 1)

    raw = _controller(policy="raw")
    raw.set_target(25, 75)
    target = raw.status().target
    assert (target.hour, target.minute) == (25, 75)


def test_toggle_armed():
    controller = _controller()
    assert controller.toggle_armed() is True
    assert controller.toggle_armed() is False
    assert not controller.status().armed


def test_sink_failures_do_not_break_ticks():
    sink = FakeSink(fail=True)
    clock = FakeClock(8, 0)
    controller = _controller(sink, clock)
    controller.set_armed(True)
    assert controller.poll() is Decision.FIRE
    controller.stop_sound()
    assert not controller.is_ringing
    assert controller.poll() is Decision.ALREADY_FIRED


def test_null_sink_fire_is_noop():
    controller = _controller(NullNotificationSink(), FakeClock(8, 0))
    controller.set_armed(True)
    assert controller.poll() is Decision.FIRE
    assert controller.is_ringing
    controller.stop_sound()
    assert not controller.is_ringing


def test_apply_console_commands():
    sink = FakeSink()
    controller = _controller(sink, FakeClock(6, 45))
    assert controller.apply(parse_command("t 6:45")) == "Alarm set to 06:45"
    assert controller.apply(parse_command("a")) == "Alarm ON"
    assert controller.poll() is Decision.FIRE
    assert controller.apply(parse_command("s")) == "Sound stopped"
    assert sink.stops == 1
    assert controller.apply(parse_command("off")) == "Alarm OFF"
    assert controller.apply(parse_command("h 99")) == "Alarm set to 23:45"
    assert controller.apply(parse_command("m -5")) == "Alarm set to 23:00"
    assert controller.apply(parse_command("bogus")) == "Unknown command: bogus"
    assert controller.apply(parse_command("help")).startswith("Commands:")


def test_concurrent_commands_keep_single_fire():
    sink = FakeSink()
    controller = _controller(sink, FakeClock(8, 0))
    controller.set_armed(True)

    def ticker():
        for _ in range(500):
            controller.poll()

    def commander():
        for _ in range(500):
            controller.set_target(8, 0)
            controller.set_armed(True)
            controller.stop_sound()

    threads = [Thread(target=ticker), Thread(target=ticker), Thread(target=commander)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert sink.started == ["alarm.wav"]


def test_background_loop_polls_clock():
    sink = FakeSink()
    controller = _controller(sink, FakeClock(8, 0), check_interval=0.05)
    controller.set_armed(True)
    controller.start()
    try:
        for _ in range(100):
            if sink.started:
                break
            controller._stop_event.wait(0.02)
    finally:
        controller.shutdown()
    assert sink.started == ["alarm.wav"]
    assert sink.stops == 1


class StopDuringStartSink(FakeSink):
    """Sink whose start is interrupted by a stop request from another thread."""

    def __init__(self):
        super().__init__()
        self.events = []
        self.playing = False
        self.controller = None
        self.stopper = None

    def start(self, sound_id: str) -> bool:
        self.stopper = Thread(target=self.controller.stop_sound)
        self.stopper.start()
        self.stopper.join(timeout=0.1)
        self.events.append("start")
        self.playing = True
        return True

    def stop_all(self) -> None:
        self.events.append("stop_all")
        self.playing = False

    @property
    def is_active(self) -> bool:
        return self.playing


def test_stop_during_fire_reaches_sink_after_start():
    sink = StopDuringStartSink()
    controller = _controller(sink, FakeClock(8, 0))
    sink.controller = controller
    controller.set_armed(True)

    assert controller.poll() is Decision.FIRE
    sink.stopper.join(timeout=2)

    assert sink.events == ["start", "stop_all"]
    assert not controller.is_ringing
    assert not sink.is_active
    assert not controller.sound_active


def test_stop_from_fire_callback_on_same_thread():
    sink = FakeSink()
    controller = _controller(sink, FakeClock(8, 0), on_fire=lambda status: controller.stop_sound())
    controller.set_armed(True)
    assert controller.poll() is Decision.FIRE
    assert sink.started == ["alarm.wav"]
    assert sink.stops == 1
    assert not controller.is_ringing
