import logging
import math
import wave
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

import numpy as np

try:
    import scipy.signal
except ImportError:  # pragma: no cover - optional dep
    scipy = None  # type: ignore
    scipy_signal_resample_poly = None  # type: ignore
else:
    scipy_signal_resample_poly = scipy.signal.resample_poly  # type: ignore

import pyaudio

logger = logging.getLogger(__name__)


def create_pyaudio() -> pyaudio.PyAudio:
    pa = pyaudio.PyAudio()
    return pa


@dataclass
class OutputDeviceInfo:
    index: int
    name: str
    rate: int
    channels: int


@dataclass
class WavClip:
    samples: np.ndarray
    rate: int

    @property
    def duration_ms(self) -> float:
        return len(self.samples) / self.rate * 1000 if self.rate else 0.0

    def to_bytes(self) -> bytes:
        return self.samples.astype(np.int16).tobytes()


def get_output_device(pa: pyaudio.PyAudio, device_index: Optional[int]) -> OutputDeviceInfo:
    if device_index is None:
        device_index = int(pa.get_default_output_device_info()["index"])
    info = pa.get_device_info_by_index(device_index)
    rate = int(info.get("defaultSampleRate", 44100))
    channels = int(info.get("maxOutputChannels", 1)) or 1
    logger.info("Selected output device %s: %s (rate=%s, channels=%s)", device_index, info.get("name"), rate, channels)
    return OutputDeviceInfo(index=device_index, name=info.get("name", "unknown"), rate=rate, channels=channels)


def to_mono(samples: np.ndarray, channels: int) -> np.ndarray:
    if channels == 1:
        return samples
    reshaped = samples.reshape(-1, channels)
    mono = reshaped.mean(axis=1)
    return mono.astype(np.int16)


def resample(samples: np.ndarray, input_rate: int, target_rate: int) -> np.ndarray:
    if input_rate == target_rate or len(samples) == 0:
        return samples
    if scipy_signal_resample_poly:
        g = math.gcd(target_rate, input_rate)
        resampled = scipy_signal_resample_poly(samples, target_rate // g, input_rate // g)
        return resampled.astype(np.int16)
    # Fallback: simple linear interpolation
    duration = len(samples) / input_rate
    target_len = int(duration * target_rate)
    target_idx = np.linspace(0, len(samples) - 1, target_len)
    resampled = np.interp(target_idx, np.arange(len(samples)), samples)
    return resampled.astype(np.int16)


def load_wav(path: Path, target_rate: Optional[int] = None) -> WavClip:
    """Decode a 16-bit PCM WAV file into mono int16 samples."""

    with wave.open(str(path), "rb") as wav:
        if wav.getsampwidth() != 2:
            raise ValueError(f"{path} is not 16-bit PCM (sample width {wav.getsampwidth()})")
        channels = wav.getnchannels()
        rate = wav.getframerate()
        frames = wav.readframes(wav.getnframes())
    samples = to_mono(np.frombuffer(frames, dtype=np.int16), channels)
    if target_rate and target_rate != rate:
        logger.debug("Resampling %s %s -> %s Hz", path, rate, target_rate)
        samples = resample(samples, rate, target_rate)
        rate = target_rate
    return WavClip(samples=samples, rate=rate)


def iter_chunks(data: bytes, chunk_bytes: int) -> Iterable[bytes]:
    for offset in range(0, len(data), chunk_bytes):
        yield data[offset : offset + chunk_bytes]


class AudioPlayer:
    def __init__(self, pa: pyaudio.PyAudio, rate: int, device_index: Optional[int] = None):
        self.pa = pa
        self.rate = rate
        self.stream = self.pa.open(
            format=pyaudio.paInt16,
            channels=1,
            rate=self.rate,
            output=True,
            output_device_index=device_index,
        )

    def play_bytes(self, audio_bytes: bytes) -> None:
        self.stream.write(audio_bytes)

    def close(self) -> None:
        self.stream.stop_stream()
        self.stream.close()
