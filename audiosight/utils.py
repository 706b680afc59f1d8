import math


def hz_per_bin(sample_rate: int, n_fft: int) -> float:
    return float(sample_rate) / float(n_fft)


def ms_per_hop(hop_length: int, sample_rate: int) -> float:
    return 1000.0 * float(hop_length) / float(sample_rate)


def hz_per_row(max_frequency: float, height: int) -> float:
    return float(max_frequency) / float(height)


def row_for_frequency(frequency: float, max_frequency: float, height: int) -> int:
    """Pixel row (0 = top) where a tone at ``frequency`` is drawn."""
    band = int(math.floor(frequency / hz_per_row(max_frequency, height)))
    return height - 1 - min(max(band, 0), height - 1)


def format_seconds(seconds: float) -> str:
    if seconds >= 60:
        minutes = int(seconds // 60)
        remainder = seconds % 60
        return f"{minutes:d}m {remainder:.1f}s"
    return f"{seconds:.2f}s"
