import numpy as np
import pytest
import soundfile as sf

from audiosight.config import LabelParams, PipelineConfig, SpectrogramDSP
from audiosight.errors import DecodeError, InputTooLargeError, RenderError, SpectrogramCancelled
from audiosight.image_codec import PNG_SIGNATURE, data_url_to_bytes, decode_png
from audiosight.pipeline import (
    SpectrogramMetadata,
    generate_spectrogram,
    process_audio_bytes,
    process_audio_file,
)
from tests.conftest import StaticDecoder, sine_wave, wav_bytes


def test_one_second_tone_end_to_end(tone_1khz):
    result = process_audio_bytes(wav_bytes(tone_1khz, 44100))

    assert result.image.startswith(PNG_SIGNATURE)
    assert result.metadata == SpectrogramMetadata(duration=1.0, sample_rate=44100, channel_count=1)
    assert result.metadata.to_dict() == {"duration": 1.0, "sample_rate": 44100, "channel_count": 1}
    assert result.height == 512
    assert 1 <= result.width <= 2000
    assert data_url_to_bytes(result.data_url) == result.image

    pixels = decode_png(result.image)
    assert pixels.shape == (512, result.width, 4)


def test_tone_draws_bright_band_at_its_row(tone_1khz):
    config = PipelineConfig(labels=LabelParams(enabled=False))
    result = process_audio_bytes(wav_bytes(tone_1khz, 44100), config=config)
    red = decode_png(result.image)[..., 0]
    tone_row = 511 - 23
    assert np.all(red[tone_row, 1:-1] == 255)
    assert np.all(red[100, 1:-1] == 0)


def test_metadata_passes_through_unchanged(recording_surface):
    samples = sine_wave(300.0, 22050, duration=0.7371)
    decoder = StaticDecoder(samples, 22050, channel_count=2)
    result = process_audio_bytes(b"ignored", decoder=decoder, surface_factory=recording_surface)
    assert decoder.calls == 1
    assert result.metadata.duration == samples.shape[0] / 22050.0
    assert result.metadata.sample_rate == 22050
    assert result.metadata.channel_count == 2


def test_pipeline_is_idempotent(recording_surface):
    decoder = StaticDecoder(sine_wave(2500.0, 16000, duration=0.8), 16000)
    first = process_audio_bytes(b"x", decoder=decoder, surface_factory=recording_surface)
    second = process_audio_bytes(b"x", decoder=decoder, surface_factory=recording_surface)
    assert first.image == second.image
    np.testing.assert_array_equal(
        recording_surface.instances[0].pixels, recording_surface.instances[1].pixels
    )


def test_silence_renders_darkest_color(recording_surface):
    decoder = StaticDecoder(np.zeros(30000, dtype=np.float32), 8000)
    process_audio_bytes(b"x", decoder=decoder, surface_factory=recording_surface)
    pixels = recording_surface.instances[0].pixels
    assert np.all(pixels[..., :3] == 0)
    assert np.all(pixels[..., 3] == 255)


def test_long_clip_stays_within_bounds(recording_surface):
    decoder = StaticDecoder(np.zeros(8000 * 200, dtype=np.float32), 8000)
    config = PipelineConfig(dsp=SpectrogramDSP(fft_size=256))
    result = process_audio_bytes(b"x", config=config, decoder=decoder, surface_factory=recording_surface)
    assert result.width == 2000
    assert result.height == 128


def test_labels_are_drawn_on_surface(recording_surface):
    decoder = StaticDecoder(sine_wave(440.0, 8000, duration=2.0), 8000)
    process_audio_bytes(b"x", decoder=decoder, surface_factory=recording_surface)
    surface = recording_surface.instances[0]
    texts = [entry[0] for entry in surface.texts]
    assert "SPECTROGRAM" in texts
    assert "Time: 0s - 2.0s" in texts
    assert surface.rotated_texts[0][0] == "Frequency: 0Hz - 4000Hz"


def test_invalid_audio_raises_decode_error():
    with pytest.raises(DecodeError):
        process_audio_bytes(b"RIFF....WAVEjunk")


def test_size_cap_from_config(tone_1khz):
    config = PipelineConfig(max_input_bytes=1024)
    with pytest.raises(InputTooLargeError):
        process_audio_bytes(wav_bytes(tone_1khz, 44100), config=config)


def test_render_error_propagates():
    def failing_surface(width, height):
        raise RenderError("no drawing surface")

    decoder = StaticDecoder(sine_wave(440.0, 8000, duration=1.0), 8000)
    with pytest.raises(RenderError):
        process_audio_bytes(b"x", decoder=decoder, surface_factory=failing_surface)


def test_cancelled_request_produces_no_result(recording_surface):
    decoder = StaticDecoder(sine_wave(440.0, 8000, duration=2.0), 8000)
    with pytest.raises(SpectrogramCancelled):
        process_audio_bytes(
            b"x", decoder=decoder, surface_factory=recording_surface, should_cancel=lambda: True
        )
    assert recording_surface.instances == []


def test_generate_spectrogram_returns_rgba(recording_surface):
    decoder = StaticDecoder(sine_wave(440.0, 8000, duration=1.0), 8000)
    bitmap = generate_spectrogram(decoder.decode(b""), surface_factory=recording_surface)
    assert bitmap.dtype == np.uint8
    assert bitmap.shape[2] == 4


def test_process_audio_file(tmp_path):
    path = tmp_path / "tone.flac"
    sf.write(path, sine_wave(600.0, 16000, duration=0.5), 16000)
    result = process_audio_file(path)
    assert result.metadata.sample_rate == 16000
    assert result.metadata.duration == pytest.approx(0.5)


def test_process_audio_file_missing_path(tmp_path):
    with pytest.raises(DecodeError):
        process_audio_file(tmp_path / "nowhere.flac")
