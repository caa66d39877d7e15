"""Error taxonomy for StreamScribe sessions.

Every error carries a human-readable message; that message is what a
session surfaces in ``RecordingState.error``.
"""

from typing import Optional


class StreamScribeError(Exception):
    """Base exception for all StreamScribe errors."""

    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class MissingCredentialError(StreamScribeError):
    """Raised when no recognition API credential is configured."""

    default_message = (
        "Deepgram API key not found. Please set the DEEPGRAM_API_KEY environment variable."
    )


class CaptureError(StreamScribeError):
    """Raised when the microphone cannot be acquired."""

    default_message = "Failed to start recording. Please check microphone permissions."


class PermissionDeniedError(CaptureError):
    """Raised when the platform refuses microphone access."""

    default_message = "Microphone access was denied. Please check microphone permissions."


class DeviceUnavailableError(CaptureError):
    """Raised when no usable input device exists."""

    default_message = "No usable microphone was found."


class ChannelError(StreamScribeError):
    """Raised for failures of the streaming connection."""


class TranscriptionConnectionError(ChannelError):
    """Transport-level failure while connecting or while open."""

    default_message = "Connection error. Please check your API key and try again."


class AbnormalCloseError(ChannelError):
    """The service closed the connection with a non-normal status."""

    def __init__(self, code: Optional[int], reason: str = "", cause: Optional[BaseException] = None):
        self.code = code
        self.reason = reason
        super().__init__(f"Connection closed unexpectedly: {reason or 'Unknown error'}", cause)


class MalformedMessageError(StreamScribeError, ValueError):
    """An inbound result envelope could not be interpreted."""

    default_message = "Malformed result message"
