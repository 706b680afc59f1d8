"""
Audio-to-spectrogram pipeline.

Decodes an uploaded audio clip, renders a labelled spectrogram bitmap and
encodes it as PNG so an image-only model can answer questions about sound.
"""

from audiosight.pipeline import SpectrogramResult, process_audio_bytes, process_audio_file

__all__ = ["SpectrogramResult", "process_audio_bytes", "process_audio_file"]
