"""Data models for the StreamScribe application."""

from .transcript import TranscriptSegment
from .session import RecordingState
from .channel import ChannelConfig, ChannelState
from .audio import AudioStats
from .events import AudioEvent

__all__ = [
    "TranscriptSegment",
    "RecordingState",
    "ChannelConfig",
    "ChannelState",
    "AudioStats",
    "AudioEvent",
]
