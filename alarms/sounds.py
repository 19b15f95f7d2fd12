from __future__ import annotations

import logging
import math
import wave
from pathlib import Path
from threading import Event, Lock, Thread
from typing import List, Optional

from audio_io import AudioPlayer, WavClip, iter_chunks, load_wav

from .sink import NotificationSink

logger = logging.getLogger(__name__)


def ensure_alarm_sound(path: Path, beeps: int = 3, beep_seconds: float = 0.25, gap_seconds: float = 0.15) -> None:
    if path.exists():
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    sample_rate = 24000
    freq = 880.0
    amplitude = 0.4
    tone = int(beep_seconds * sample_rate)
    gap = int(gap_seconds * sample_rate)
    frames = bytearray()
    for _ in range(beeps):
        for i in range(tone):
            value = int(32767 * amplitude * math.sin(2 * math.pi * freq * i / sample_rate))
            frames.extend(value.to_bytes(2, byteorder="little", signed=True))
        frames.extend(b"\x00\x00" * gap)
    with wave.open(str(path), "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(bytes(frames))
    logger.info("Generated default alarm sound at %s", path)


class PyAudioNotificationSink(NotificationSink):
    def __init__(
        self,
        pa,
        sound_dir: Path,
        default_sound: str = "alarm.wav",
        device_index: Optional[int] = None,
        target_rate: Optional[int] = None,
        loop: bool = False,
        chunk_ms: int = 50,
    ):
        self.pa = pa
        self.sound_dir = Path(sound_dir)
        self.default_sound = default_sound
        self.device_index = device_index
        self.target_rate = target_rate
        self.loop = loop
        self.chunk_ms = max(10, chunk_ms)

        self._lock = Lock()
        self._stop_event = Event()
        self._voices: List[Thread] = []
        self._voice_counter = 0

    def resolve(self, sound_id: str) -> Path:
        path = Path(sound_id)
        if path.is_absolute():
            return path
        return self.sound_dir / path

    def start(self, sound_id: str) -> bool:
        path = self.resolve(sound_id or self.default_sound)
        if path == self.resolve(self.default_sound):
            ensure_alarm_sound(path)
        if not path.exists():
            logger.error("Alarm sound not found: %s", path)
            return False
        try:
            clip = load_wav(path, self.target_rate)
        except (OSError, EOFError, ValueError, wave.Error) as exc:
            logger.error("Failed to decode alarm sound %s: %s", path, exc)
            return False

        with self._lock:
            self._voices = [v for v in self._voices if v.is_alive()]
            self._voice_counter += 1
            voice = Thread(
                target=self._play_voice,
                args=(clip, self._stop_event),
                name=f"alarm-voice-{self._voice_counter}",
                daemon=True,
            )
            self._voices.append(voice)
        voice.start()
        logger.info("Playing %s (%.0f ms, loop=%s)", path, clip.duration_ms, self.loop)
        return True

    def stop_all(self) -> None:
        with self._lock:
            voices = self._voices
            stop_event = self._stop_event
            self._voices = []
            self._stop_event = Event()
        stop_event.set()
        for voice in voices:
            voice.join(timeout=2)
        logger.info("Stopped %d voice(s), sink idle", len(voices))

    @property
    def is_active(self) -> bool:
        with self._lock:
            return any(v.is_alive() for v in self._voices)

    def _play_voice(self, clip: WavClip, stop_event: Event) -> None:
        try:
            player = AudioPlayer(self.pa, clip.rate, self.device_index)
        except OSError as exc:
            logger.error("Failed to open output stream: %s", exc)
            return
        chunk_bytes = max(2, int(clip.rate * self.chunk_ms / 1000) * 2)
        data = clip.to_bytes()
        try:
            while not stop_event.is_set():
                for chunk in iter_chunks(data, chunk_bytes):
                    if stop_event.is_set():
                        break
                    player.play_bytes(chunk)
                if not self.loop:
                    break
        except OSError as exc:  # pragma: no cover - device errors
            logger.error("Alarm playback failed: %s", exc)
        finally:
            player.close()
