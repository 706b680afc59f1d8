import sys
import time
from pathlib import Path
from typing import Tuple

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import numpy as np  # noqa: E402
import streamlit as st  # noqa: E402

from audiosight.audio_loader import DecodedAudio, SUPPORTED_EXTENSIONS, decode_bytes  # noqa: E402
from audiosight.config import (  # noqa: E402
    DEFAULT_FFT_SIZE,
    DEFAULT_MAX_HEIGHT,
    DEFAULT_MAX_WIDTH,
    FFT_SIZE_OPTIONS,
    REFERENCE_CMAPS,
    ROW_MODES,
    LabelParams,
    PipelineConfig,
    ReferenceRenderParams,
    SpectrogramDSP,
)
from audiosight.errors import DecodeError, InputTooLargeError, RenderError, SpectrogramError  # noqa: E402
from audiosight.image_codec import encode_png  # noqa: E402
from audiosight.renderer import render_reference, render_spectrogram  # noqa: E402
from audiosight.spectrogram_engine import SpectrogramLayout, compute_intensity_grid  # noqa: E402
from audiosight.utils import format_seconds, hz_per_bin, hz_per_row, ms_per_hop  # noqa: E402

MAX_UPLOAD_BYTES = 50 * 1024 * 1024

st.set_page_config(page_title="Spectrogram Preview", layout="wide")


@st.cache_data(show_spinner=False)
def _cached_decode(data: bytes, max_input_bytes: int) -> DecodedAudio:
    return decode_bytes(data, max_input_bytes=max_input_bytes)


@st.cache_data(show_spinner=False)
def _cached_grid(samples: np.ndarray, params: SpectrogramDSP) -> Tuple[np.ndarray, SpectrogramLayout]:
    return compute_intensity_grid(samples, params)


def main():
    st.title("Spectrogram Preview")
    st.caption(
        "Upload a clip to see the labelled spectrogram that is handed to the image model, "
        "next to a Matplotlib reference view of the same intensity grid."
    )

    with st.sidebar:
        st.subheader("Audio")
        uploaded = st.file_uploader("Upload audio", type=[ext.lstrip(".") for ext in SUPPORTED_EXTENSIONS])

        st.subheader("Spectrogram DSP")
        fft_size = st.selectbox("FFT size", FFT_SIZE_OPTIONS, index=FFT_SIZE_OPTIONS.index(DEFAULT_FFT_SIZE))
        overlap = st.slider("Overlap", min_value=0.0, max_value=0.9, value=0.75, step=0.05)
        max_width = st.slider("Max width (px)", min_value=100, max_value=4000, value=DEFAULT_MAX_WIDTH, step=100)
        max_height = st.slider("Max height (px)", min_value=64, max_value=1024, value=DEFAULT_MAX_HEIGHT, step=32)
        row_mode = st.selectbox("Row selection", ROW_MODES, index=0)
        max_workers = st.slider("Worker threads", min_value=1, max_value=8, value=1)

        st.subheader("Reference view")
        cmap = st.selectbox("Colormap", REFERENCE_CMAPS, index=0)
        show_labels = st.checkbox("Overlay labels", value=True)

    if uploaded is None:
        st.info("Upload a WAV/FLAC/OGG/MP3 file to begin.")
        return

    data = bytes(uploaded.getbuffer())

    try:
        dsp = SpectrogramDSP(
            fft_size=fft_size,
            overlap=overlap,
            max_width=max_width,
            max_height=max_height,
            row_mode=row_mode,
            max_workers=max_workers,
        )
    except SpectrogramError as exc:
        st.error(str(exc))
        return
    config = PipelineConfig(
        dsp=dsp, labels=LabelParams(enabled=show_labels), max_input_bytes=MAX_UPLOAD_BYTES
    )

    try:
        audio = _cached_decode(data, config.max_input_bytes)
    except InputTooLargeError as exc:
        st.error(f"File too large: {exc.size / 1024 / 1024:.1f} MB (limit {exc.max_size / 1024 / 1024:.0f} MB)")
        return
    except DecodeError as exc:
        st.error(f"Failed to load audio: {exc}")
        return

    start = time.perf_counter()
    with st.spinner("Computing spectrogram..."):
        grid, layout = _cached_grid(audio.samples, dsp)
    compute_ms = (time.perf_counter() - start) * 1000.0

    try:
        bitmap = render_spectrogram(
            grid, layout, duration=audio.duration, sample_rate=audio.sample_rate, labels=config.labels
        )
    except RenderError as exc:
        st.error(f"Rendering failed: {exc}")
        return
    png_bytes = encode_png(bitmap)
    max_frequency = layout.max_frequency(audio.sample_rate)

    status_cols = st.columns(5)
    status_cols[0].metric("Audio length", format_seconds(audio.duration))
    status_cols[1].metric("Row resolution", f"{hz_per_row(max_frequency, layout.height):.1f} Hz/row")
    status_cols[2].metric("Column step", f"{ms_per_hop(max(layout.hop, 1), audio.sample_rate):.1f} ms")
    status_cols[3].metric("FFT resolution", f"{hz_per_bin(audio.sample_rate, dsp.fft_size):.1f} Hz/bin")
    status_cols[4].metric("Compute", f"{compute_ms:.0f} ms")
    st.write(
        f"Sample rate: {audio.sample_rate} Hz  •  Channels: {audio.channel_count}  •  "
        f"Image: {layout.width}x{layout.height}px"
    )

    col_preview, col_actions = st.columns([3, 1])
    col_preview.image(png_bytes, caption="Spectrogram sent to the image model")
    col_preview.image(
        render_reference(
            grid,
            duration=audio.duration,
            max_frequency=max_frequency,
            params=ReferenceRenderParams(cmap=cmap),
        ),
        caption="Reference view",
    )

    suggested_name = Path(uploaded.name).with_suffix("").name + "_spectrogram.png"
    col_actions.download_button("Download PNG", data=png_bytes, file_name=suggested_name, mime="image/png")


if __name__ == "__main__":  # pragma: no cover
    main()
