"""PNG encoding of spectrogram bitmaps and data-URL adapters."""

import base64
import binascii
import io
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from audiosight.errors import ImageEncodingError

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
PNG_MIME = "image/png"


def encode_png(bitmap: np.ndarray) -> bytes:
    """Serialize an RGBA bitmap of shape (height, width, 4) to PNG bytes."""
    pixels = np.asarray(bitmap)
    if pixels.ndim != 3 or pixels.shape[2] != 4 or pixels.shape[0] == 0 or pixels.shape[1] == 0:
        raise ImageEncodingError(f"Expected a non-empty RGBA bitmap, got shape {pixels.shape}")
    buffer = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).save(buffer, format="PNG")
    return buffer.getvalue()


def decode_png(png_bytes: bytes) -> np.ndarray:
    try:
        with Image.open(io.BytesIO(png_bytes)) as image:
            return np.array(image.convert("RGBA"), dtype=np.uint8)
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageEncodingError(f"Not a readable image: {exc}") from exc


def to_data_url(png_bytes: bytes, mime: str = PNG_MIME) -> str:
    return f"data:{mime};base64,{base64.b64encode(png_bytes).decode('ascii')}"


def data_url_to_bytes(data_url: str) -> bytes:
    """Raw bytes behind a base64 ``data:`` URL."""
    header, sep, payload = data_url.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise ImageEncodingError("Malformed data URL: expected 'data:<mime>;base64,<payload>'")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImageEncodingError(f"Malformed base64 payload: {exc}") from exc


def save_png(png_bytes: bytes, output_path: Path) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(png_bytes)
    return output_path
