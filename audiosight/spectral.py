"""
Direct DFT magnitude spectra.

The transform is the textbook O(N^2) DFT restricted to bins 0..N/2-1,
evaluated as a product with precomputed cosine/sine basis matrices. Windows
longer than MAX_TRANSFORM_SIZE are decimated first (every floor(N/2048)-th
sample is kept), which bounds the per-window cost at O(2048^2) whatever FFT
size is configured. This trades frequency resolution for speed on purpose:
the decimated spectrum only covers the lower part of the original band and
aliases whatever lies above it.
"""

from functools import lru_cache
from typing import Tuple

import numpy as np
from scipy import signal

from audiosight.config import MAX_TRANSFORM_SIZE


@lru_cache(maxsize=8)
def hamming(n: int) -> np.ndarray:
    """Symmetric Hamming taper 0.54 - 0.46*cos(2*pi*i/(n-1))."""
    taper = signal.get_window("hamming", n, fftbins=False)
    taper.setflags(write=False)
    return taper


@lru_cache(maxsize=4)
def _dft_basis(n: int) -> Tuple[np.ndarray, np.ndarray]:
    k = np.arange(n // 2, dtype=np.float64)[:, np.newaxis]
    t = np.arange(n, dtype=np.float64)[np.newaxis, :]
    angle = -2.0 * np.pi * k * t / n
    cos_basis = np.cos(angle)
    sin_basis = np.sin(angle)
    cos_basis.setflags(write=False)
    sin_basis.setflags(write=False)
    return cos_basis, sin_basis


def decimate(windows: np.ndarray, limit: int = MAX_TRANSFORM_SIZE) -> np.ndarray:
    """Reduce windows (last axis) longer than ``limit`` to exactly ``limit`` samples."""
    n = windows.shape[-1]
    if n <= limit:
        return windows
    step = n // limit
    return windows[..., : step * limit : step]


def transform_batch(windows: np.ndarray) -> np.ndarray:
    """Magnitude spectra for a stack of equal-length windows, shape (count, N/2)."""
    windows = decimate(np.atleast_2d(np.asarray(windows, dtype=np.float64)))
    n = windows.shape[-1]
    cos_basis, sin_basis = _dft_basis(n)
    real = windows @ cos_basis.T
    imag = windows @ sin_basis.T
    return np.sqrt(real * real + imag * imag) / n


def transform(window: np.ndarray) -> np.ndarray:
    """Magnitude spectrum of a single window, length N/2 (after decimation)."""
    return transform_batch(np.asarray(window)[np.newaxis, :])[0]
