"""
End-to-end audio-to-spectrogram pipeline.

raw bytes -> decoder -> intensity grid -> labelled RGBA bitmap -> PNG.
Either a complete image comes out or the first failure is raised; nothing
is retried.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import numpy as np

from audiosight.audio_loader import AudioDecoder, DecodedAudio, decode_bytes, decode_file
from audiosight.config import PipelineConfig
from audiosight.errors import SpectrogramError
from audiosight.image_codec import encode_png, to_data_url
from audiosight.renderer import SurfaceFactory, render_spectrogram
from audiosight.spectrogram_engine import CancelCheck, ProgressCallback, compute_intensity_grid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpectrogramMetadata:
    duration: float
    sample_rate: int
    channel_count: int

    @classmethod
    def from_audio(cls, audio: DecodedAudio) -> "SpectrogramMetadata":
        return cls(duration=audio.duration, sample_rate=audio.sample_rate, channel_count=audio.channel_count)

    def to_dict(self) -> dict:
        return {
            "duration": self.duration,
            "sample_rate": self.sample_rate,
            "channel_count": self.channel_count,
        }


@dataclass(frozen=True)
class SpectrogramResult:
    image: bytes
    data_url: str
    metadata: SpectrogramMetadata
    width: int
    height: int


def generate_spectrogram(
    audio: DecodedAudio,
    config: Optional[PipelineConfig] = None,
    surface_factory: Optional[SurfaceFactory] = None,
    progress: Optional[ProgressCallback] = None,
    should_cancel: Optional[CancelCheck] = None,
) -> np.ndarray:
    """Labelled RGBA spectrogram bitmap of shape (height, width, 4)."""
    config = config or PipelineConfig()
    grid, layout = compute_intensity_grid(
        audio.samples, config.dsp, progress=progress, should_cancel=should_cancel
    )
    return render_spectrogram(
        grid,
        layout,
        duration=audio.duration,
        sample_rate=audio.sample_rate,
        labels=config.labels,
        surface_factory=surface_factory,
    )


def _finish(
    audio: DecodedAudio,
    config: PipelineConfig,
    surface_factory: Optional[SurfaceFactory],
    progress: Optional[ProgressCallback],
    should_cancel: Optional[CancelCheck],
) -> SpectrogramResult:
    bitmap = generate_spectrogram(audio, config, surface_factory, progress, should_cancel)
    png = encode_png(bitmap)
    logger.info("Spectrogram generated successfully: %d bytes", len(png))
    return SpectrogramResult(
        image=png,
        data_url=to_data_url(png),
        metadata=SpectrogramMetadata.from_audio(audio),
        width=bitmap.shape[1],
        height=bitmap.shape[0],
    )


def process_audio_bytes(
    data: bytes,
    config: Optional[PipelineConfig] = None,
    decoder: Optional[AudioDecoder] = None,
    surface_factory: Optional[SurfaceFactory] = None,
    progress: Optional[ProgressCallback] = None,
    should_cancel: Optional[CancelCheck] = None,
) -> SpectrogramResult:
    """Decode an audio buffer and render it as a labelled PNG spectrogram."""
    config = config or PipelineConfig()
    try:
        audio = decode_bytes(data, decoder=decoder, max_input_bytes=config.max_input_bytes)
        return _finish(audio, config, surface_factory, progress, should_cancel)
    except SpectrogramError as exc:
        logger.error("Error processing audio: %s", exc)
        raise


def process_audio_file(
    path: Union[str, Path],
    config: Optional[PipelineConfig] = None,
    decoder: Optional[AudioDecoder] = None,
    surface_factory: Optional[SurfaceFactory] = None,
    progress: Optional[ProgressCallback] = None,
    should_cancel: Optional[CancelCheck] = None,
) -> SpectrogramResult:
    config = config or PipelineConfig()
    try:
        audio = decode_file(path, decoder=decoder, max_input_bytes=config.max_input_bytes)
        return _finish(audio, config, surface_factory, progress, should_cancel)
    except SpectrogramError as exc:
        logger.error("Error processing %s: %s", path, exc)
        raise
