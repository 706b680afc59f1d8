import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import numpy as np

from audiosight import spectral
from audiosight.config import DB_EPSILON, DB_FLOOR, DB_SPAN, MAX_TRANSFORM_SIZE, SpectrogramDSP
from audiosight.errors import SpectrogramCancelled

ProgressCallback = Callable[[float], None]
CancelCheck = Callable[[], bool]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpectrogramLayout:
    width: int
    height: int
    hop: int
    window_size: int
    spectrum_bins: int
    decimation_step: int = 1

    def max_frequency(self, sample_rate: int) -> float:
        """Highest frequency represented by the top row."""
        return sample_rate / 2.0 / self.decimation_step


def plan_layout(sample_count: int, dsp: SpectrogramDSP) -> SpectrogramLayout:
    """
    Image size and effective hop for a clip of ``sample_count`` samples.

    When the natural number of slices exceeds ``max_width`` the hop is
    stretched so that ``width`` evenly spaced windows still span the whole
    clip. Clips shorter than one window get a single column at offset 0.
    """
    fft_size = dsp.fft_size
    hop = dsp.hop_length
    num_slices = max(1, (sample_count - fft_size) // hop + 1)
    width = min(num_slices, dsp.max_width)
    if width == 1:
        hop = 0
    elif num_slices > dsp.max_width:
        hop = (sample_count - fft_size) // (width - 1)

    transform_size = min(fft_size, MAX_TRANSFORM_SIZE)
    step = fft_size // MAX_TRANSFORM_SIZE if fft_size > MAX_TRANSFORM_SIZE else 1
    return SpectrogramLayout(
        width=width,
        height=min(dsp.bin_count, dsp.max_height),
        hop=hop,
        window_size=fft_size,
        spectrum_bins=transform_size // 2,
        decimation_step=step,
    )


def magnitude_to_intensity(magnitude: np.ndarray) -> np.ndarray:
    """Decibel-scale magnitudes and map -90..-10 dB onto 0..1."""
    db = 20.0 * np.log10(np.asarray(magnitude, dtype=np.float64) + DB_EPSILON)
    return np.clip((db - DB_FLOOR) / DB_SPAN, 0.0, 1.0)


def colorize(intensity: np.ndarray) -> np.ndarray:
    """
    Map intensities in [0, 1] to RGBA pixels.

    Four linear stages: black->blue, blue->cyan, cyan->yellow, yellow->white.
    """
    i = np.asarray(intensity, dtype=np.float64)

    def ramp(offset: float) -> np.ndarray:
        return np.floor((i - offset) * 4 * 255)

    stages = [i < 0.25, i < 0.5, i < 0.75]
    red = np.select(stages, [0, 0, ramp(0.5)], default=255)
    green = np.select(stages, [0, ramp(0.25), 255], default=255)
    blue = np.select(stages, [ramp(0.0), 255, np.floor((1 - (i - 0.5) * 4) * 255)], default=ramp(0.75))

    pixels = np.empty(i.shape + (4,), dtype=np.uint8)
    pixels[..., 0] = np.clip(red, 0, 255)
    pixels[..., 1] = np.clip(green, 0, 255)
    pixels[..., 2] = np.clip(blue, 0, 255)
    pixels[..., 3] = 255
    return pixels


def _row_starts(layout: SpectrogramLayout) -> np.ndarray:
    return (np.arange(layout.height) * layout.spectrum_bins) // layout.height


def select_rows(magnitudes: np.ndarray, layout: SpectrogramLayout, row_mode: str = "nearest") -> np.ndarray:
    """
    Reduce spectra of shape (columns, bins) to (columns, height).

    ``nearest`` keeps the first bin of each row's span; ``mean`` averages the
    span. Row 0 is the lowest frequency.
    """
    starts = _row_starts(layout)
    if row_mode == "nearest":
        return magnitudes[:, starts]
    sums = np.add.reduceat(magnitudes, starts, axis=1)
    ends = np.append(starts[1:], layout.spectrum_bins)
    counts = np.maximum(ends - starts, 1)
    return np.where(ends > starts, sums / counts, magnitudes[:, starts])


def _column_windows(samples: np.ndarray, offsets: np.ndarray, window_size: int) -> np.ndarray:
    windows = np.zeros((offsets.shape[0], window_size), dtype=np.float64)
    for row, start in enumerate(offsets):
        chunk = samples[start : start + window_size]
        windows[row, : chunk.shape[0]] = chunk
    return windows * spectral.hamming(window_size)


def _check_cancel(should_cancel: Optional[CancelCheck]) -> None:
    if should_cancel is not None and should_cancel():
        raise SpectrogramCancelled("Spectrogram generation cancelled")


class _ProgressTracker:
    def __init__(self, total: int, callback: Optional[ProgressCallback]):
        self.total = total
        self.done = 0
        self.callback = callback
        self._last_decile = -1

    def advance(self, columns: int) -> None:
        self.done += columns
        fraction = self.done / self.total
        decile = int(fraction * 10)
        if decile != self._last_decile:
            self._last_decile = decile
            logger.debug("Spectrogram progress: %d%%", int(fraction * 100))
        if self.callback is not None:
            self.callback(fraction)


def compute_intensity_grid(
    samples: np.ndarray,
    dsp: SpectrogramDSP,
    progress: Optional[ProgressCallback] = None,
    should_cancel: Optional[CancelCheck] = None,
) -> Tuple[np.ndarray, SpectrogramLayout]:
    """
    Intensity grid of shape (height, width); row 0 holds the highest frequency.

    Columns are evaluated in chunks of ``dsp.column_chunk``. Chunks are
    independent, so with ``dsp.max_workers > 1`` they run on a thread pool.
    ``should_cancel`` is polled between chunks.
    """
    samples = np.asarray(samples, dtype=np.float32)
    layout = plan_layout(samples.shape[0], dsp)
    grid = np.empty((layout.height, layout.width), dtype=np.float64)
    logger.info(
        "Generating spectrogram: %d time slices, %d frequency rows, hop %d",
        layout.width,
        layout.height,
        layout.hop,
    )

    bounds: List[Tuple[int, int]] = [
        (lo, min(lo + dsp.column_chunk, layout.width)) for lo in range(0, layout.width, dsp.column_chunk)
    ]

    def _render_chunk(lo: int, hi: int) -> np.ndarray:
        offsets = np.arange(lo, hi) * layout.hop
        magnitudes = spectral.transform_batch(_column_windows(samples, offsets, layout.window_size))
        return magnitude_to_intensity(select_rows(magnitudes, layout, dsp.row_mode))

    def _store(lo: int, hi: int, values: np.ndarray) -> None:
        grid[:, lo:hi] = values.T[::-1]

    tracker = _ProgressTracker(layout.width, progress)
    if dsp.max_workers > 1 and len(bounds) > 1:
        with ThreadPoolExecutor(max_workers=dsp.max_workers) as executor:
            futures = [executor.submit(_render_chunk, lo, hi) for lo, hi in bounds]
            try:
                for (lo, hi), future in zip(bounds, futures):
                    _check_cancel(should_cancel)
                    _store(lo, hi, future.result())
                    tracker.advance(hi - lo)
            except SpectrogramCancelled:
                for future in futures:
                    future.cancel()
                raise
    else:
        for lo, hi in bounds:
            _check_cancel(should_cancel)
            _store(lo, hi, _render_chunk(lo, hi))
            tracker.advance(hi - lo)

    return grid, layout
