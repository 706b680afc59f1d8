"""Shared fixtures and test doubles for the spectrogram pipeline."""

import io

import numpy as np
import pytest
import soundfile as sf

from audiosight.audio_loader import DecodedAudio


def sine_wave(freq: float, sr: int, duration: float, amplitude: float = 1.0) -> np.ndarray:
    t = np.arange(int(sr * duration)) / sr
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def wav_bytes(audio: np.ndarray, sr: int, subtype: str = "PCM_16") -> bytes:
    buffer = io.BytesIO()
    sf.write(buffer, audio, sr, format="WAV", subtype=subtype)
    return buffer.getvalue()


class StaticDecoder:
    """Decoder double that ignores its input and returns fixture samples."""

    def __init__(self, samples: np.ndarray, sample_rate: int, channel_count: int = 1):
        self.samples = np.asarray(samples, dtype=np.float32)
        self.sample_rate = sample_rate
        self.channel_count = channel_count
        self.calls = 0

    def decode(self, data: bytes) -> DecodedAudio:
        self.calls += 1
        return DecodedAudio(
            samples=self.samples,
            sample_rate=self.sample_rate,
            duration=self.samples.shape[0] / float(self.sample_rate),
            channel_count=self.channel_count,
        )


class RecordingSurface:
    """Surface double that keeps pixels in memory and records text calls."""

    instances = []

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.pixels = np.zeros((height, width, 4), dtype=np.uint8)
        self.texts = []
        self.rotated_texts = []
        RecordingSurface.instances.append(self)

    def put_image_data(self, pixels: np.ndarray) -> None:
        self.pixels = np.array(pixels, dtype=np.uint8)

    def fill_text(self, text, x, y, size, bold, color) -> None:
        self.texts.append((text, x, y, size, bold))

    def fill_text_rotated(self, text, x, y, size, bold, color) -> None:
        self.rotated_texts.append((text, x, y, size, bold))

    def snapshot(self) -> np.ndarray:
        return self.pixels.copy()


@pytest.fixture
def recording_surface():
    RecordingSurface.instances = []
    yield RecordingSurface
    RecordingSurface.instances = []


@pytest.fixture
def tone_1khz():
    return sine_wave(1000.0, 44100, duration=1.0)
