import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Union

import numpy as np
import soundfile as sf

from audiosight.errors import DecodeError, InputTooLargeError

SUPPORTED_EXTENSIONS = (".wav", ".flac", ".ogg", ".mp3", ".aiff", ".aif")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodedAudio:
    """Channel 0 of a decoded clip plus the container's metadata."""

    samples: np.ndarray
    sample_rate: int
    duration: float
    channel_count: int

    @property
    def sample_count(self) -> int:
        return int(self.samples.shape[0])


class AudioDecoder(Protocol):
    def decode(self, data: bytes) -> DecodedAudio:
        ...


def is_supported_file(path: Union[str, Path]) -> bool:
    return str(path).lower().endswith(SUPPORTED_EXTENSIONS)


def check_input_size(data: bytes, max_input_bytes: Optional[int]) -> None:
    if max_input_bytes is not None and len(data) > max_input_bytes:
        raise InputTooLargeError(len(data), max_input_bytes)


class SoundFileDecoder:
    """
    Decode container bytes with libsndfile.

    Each call opens its own SoundFile over an in-memory buffer; the handle is
    closed before the call returns, whether decoding succeeds or not.
    """

    def decode(self, data: bytes) -> DecodedAudio:
        if not data:
            raise DecodeError("Audio buffer is empty", reason="empty_input")

        try:
            with sf.SoundFile(io.BytesIO(data)) as handle:
                sample_rate = int(handle.samplerate)
                channel_count = int(handle.channels)
                frames = handle.read(dtype="float32", always_2d=True)
        except Exception as exc:
            logger.error("Error decoding audio: %s", exc)
            raise DecodeError(
                "Failed to decode audio file. Please ensure it is a valid audio format.",
                reason=str(exc),
            ) from exc

        if frames.shape[0] == 0 or sample_rate <= 0:
            raise DecodeError("Audio contains no sample frames", reason="truncated_data")

        samples = np.ascontiguousarray(frames[:, 0], dtype=np.float32)
        duration = samples.shape[0] / float(sample_rate)
        logger.info(
            "Audio decoded: %.3fs, %d Hz, %d channel(s), %d frames",
            duration,
            sample_rate,
            channel_count,
            samples.shape[0],
        )
        return DecodedAudio(
            samples=samples,
            sample_rate=sample_rate,
            duration=duration,
            channel_count=channel_count,
        )


def decode_bytes(
    data: bytes,
    decoder: Optional[AudioDecoder] = None,
    max_input_bytes: Optional[int] = None,
) -> DecodedAudio:
    check_input_size(data, max_input_bytes)
    return (decoder or SoundFileDecoder()).decode(data)


def decode_file(
    path: Union[str, Path],
    decoder: Optional[AudioDecoder] = None,
    max_input_bytes: Optional[int] = None,
) -> DecodedAudio:
    path = Path(path)
    try:
        file_size = path.stat().st_size
        if max_input_bytes is not None and file_size > max_input_bytes:
            raise InputTooLargeError(file_size, max_input_bytes)
        data = path.read_bytes()
    except OSError as exc:
        raise DecodeError(f"Unable to read audio file {path}", reason=str(exc)) from exc
    return decode_bytes(data, decoder=decoder)


def audio_info(data: bytes) -> dict:
    """Header metadata for an audio buffer, without reading sample frames."""
    try:
        meta = sf.info(io.BytesIO(data))
    except Exception as exc:
        raise DecodeError("Unable to inspect audio", reason=str(exc)) from exc
    duration = meta.frames / float(meta.samplerate) if meta.samplerate else 0.0
    return {
        "sample_rate": int(meta.samplerate),
        "frames": int(meta.frames),
        "channels": int(meta.channels),
        "duration": duration,
        "format": meta.format,
        "subtype": meta.subtype,
    }
