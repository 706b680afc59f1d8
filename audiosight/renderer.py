import io
import logging
from functools import lru_cache
from typing import Callable, Optional, Protocol, Tuple

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
from matplotlib.ticker import MaxNLocator  # noqa: E402
from PIL import Image, ImageDraw, ImageFont  # noqa: E402

from audiosight.config import LabelParams, ReferenceRenderParams  # noqa: E402
from audiosight.errors import RenderError  # noqa: E402
from audiosight.spectrogram_engine import SpectrogramLayout, colorize  # noqa: E402

Color = Tuple[int, int, int, int]

logger = logging.getLogger(__name__)


class Surface(Protocol):
    """2-D drawing surface the spectrogram is painted on."""

    width: int
    height: int

    def put_image_data(self, pixels: np.ndarray) -> None:
        ...

    def fill_text(self, text: str, x: float, y: float, size: int, bold: bool, color: Color) -> None:
        """Draw ``text`` horizontally centred on ``x`` with its baseline at ``y``."""

    def fill_text_rotated(self, text: str, x: float, y: float, size: int, bold: bool, color: Color) -> None:
        """Draw ``text`` reading bottom-to-top, centred on ``y`` with its baseline at ``x``."""

    def snapshot(self) -> np.ndarray:
        ...


SurfaceFactory = Callable[[int, int], Surface]


@lru_cache(maxsize=16)
def _load_font(size: int, bold: bool):
    names = ("DejaVuSans-Bold.ttf", "Arial Bold.ttf") if bold else ("DejaVuSans.ttf", "Arial.ttf")
    for name in names:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


class PillowSurface:
    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        try:
            self._image = Image.new("RGBA", (width, height), (0, 0, 0, 255))
        except (MemoryError, ValueError) as exc:
            raise RenderError(
                f"Failed to acquire a {width}x{height} drawing surface",
                details={"reason": str(exc)},
            ) from exc
        self._draw = ImageDraw.Draw(self._image)

    def put_image_data(self, pixels: np.ndarray) -> None:
        self._image.paste(Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)), (0, 0))

    def fill_text(self, text: str, x: float, y: float, size: int, bold: bool, color: Color) -> None:
        self._draw.text((x, y), text, fill=color, font=_load_font(size, bold), anchor="ms")

    def fill_text_rotated(self, text: str, x: float, y: float, size: int, bold: bool, color: Color) -> None:
        font = _load_font(size, bold)
        left, top, right, bottom = self._draw.textbbox((0, 0), text, font=font, anchor="ms")
        label = Image.new("RGBA", (max(1, right - left), max(1, bottom - top)), (0, 0, 0, 0))
        ImageDraw.Draw(label).text((-left, -top), text, fill=color, font=font, anchor="ms")
        rotated = label.rotate(90, expand=True)

        # After a quarter turn the baseline sits ``-top`` pixels from the left edge.
        dest_x = int(round(x + top))
        dest_y = int(round(y - rotated.height / 2))
        crop_x, crop_y = max(0, -dest_x), max(0, -dest_y)
        if crop_x >= rotated.width or crop_y >= rotated.height:
            return
        if dest_x >= self.width or dest_y >= self.height:
            return
        rotated = rotated.crop((crop_x, crop_y, rotated.width, rotated.height))
        self._image.alpha_composite(rotated, dest=(max(0, dest_x), max(0, dest_y)))

    def snapshot(self) -> np.ndarray:
        return np.array(self._image, dtype=np.uint8)


def draw_labels(surface: Surface, duration: float, max_frequency: float, labels: LabelParams) -> None:
    """Title, time caption, elapsed-seconds ticks and a rotated frequency caption."""
    width, height = surface.width, surface.height
    color = tuple(labels.color)

    surface.fill_text(labels.title, width / 2, 20, labels.font_size, True, color)
    surface.fill_text(f"Time: 0s - {duration:.1f}s", width / 2, height - 10, labels.font_size, True, color)
    surface.fill_text_rotated(
        f"Frequency: 0Hz - {max_frequency:.0f}Hz", 15, height / 2, labels.font_size, True, color
    )

    ticks = max(1, labels.tick_count)
    for i in range(ticks + 1):
        x = i * width / ticks
        elapsed = i * duration / ticks
        surface.fill_text(f"{elapsed:.1f}s", x, height - 25, labels.tick_font_size, False, color)


def render_spectrogram(
    grid: np.ndarray,
    layout: SpectrogramLayout,
    *,
    duration: float,
    sample_rate: int,
    labels: LabelParams,
    surface_factory: Optional[SurfaceFactory] = None,
) -> np.ndarray:
    """Paint an intensity grid onto a fresh surface and return its RGBA pixels."""
    surface = (surface_factory or PillowSurface)(layout.width, layout.height)
    surface.put_image_data(colorize(grid))
    if labels.enabled:
        logger.debug("Spectrogram rendering complete, adding labels")
        draw_labels(surface, duration, sample_rate / 2.0, labels)
    return surface.snapshot()


def render_reference(
    grid: np.ndarray,
    *,
    duration: float,
    max_frequency: float,
    params: ReferenceRenderParams,
) -> bytes:
    """Matplotlib view of the same intensity grid with real axes and a colour bar."""
    fig, ax = plt.subplots(figsize=params.figsize, dpi=params.dpi)
    image = ax.imshow(
        grid,
        aspect="auto",
        cmap=params.cmap,
        vmin=0.0,
        vmax=1.0,
        extent=(0.0, max(duration, 1e-6), 0.0, max_frequency),
        interpolation="nearest",
    )
    ax.set_ylabel("Frequency (Hz)")
    ax.set_xlabel("Time (s)")
    ax.xaxis.set_major_locator(MaxNLocator(nbins=8))
    ax.yaxis.set_major_locator(MaxNLocator(nbins=8))
    cbar = fig.colorbar(image, ax=ax)
    cbar.set_label("Level (-90 dB to -10 dB)")
    cbar.set_ticks(np.linspace(0.0, 1.0, num=3))
    fig.tight_layout()
    buffer = io.BytesIO()
    fig.savefig(buffer, format="png", dpi=params.dpi, bbox_inches="tight")
    plt.close(fig)
    buffer.seek(0)
    return buffer.read()
