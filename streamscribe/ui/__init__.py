"""Terminal presentation for StreamScribe."""

from .transcript_screen import TranscriptScreen, format_duration

__all__ = ["TranscriptScreen", "format_duration"]
