"""Exceptions raised by the spectrogram pipeline."""

from typing import Any, Optional


class SpectrogramError(Exception):
    """Base exception for all pipeline failures."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class DecodeError(SpectrogramError):
    """Raised when input bytes are not valid or supported audio."""

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message, details={"reason": reason} if reason else None)
        self.reason = reason


class InputTooLargeError(DecodeError):
    """Raised when the audio buffer exceeds the configured size cap."""

    def __init__(self, size: int, max_size: int):
        super().__init__(
            f"Audio input too large: {size} bytes (maximum {max_size})",
            reason="input_too_large",
        )
        self.size = size
        self.max_size = max_size


class RenderError(SpectrogramError):
    """Raised when a drawing surface cannot be acquired."""


class ImageEncodingError(SpectrogramError, ValueError):
    """Raised for malformed image payloads or data URLs."""


class ConfigurationError(SpectrogramError, ValueError):
    """Raised when spectrogram settings are invalid."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message, details={"config_key": config_key} if config_key else None)
        self.config_key = config_key


class SpectrogramCancelled(SpectrogramError):
    """Raised when the caller abandons an in-flight spectrogram."""
