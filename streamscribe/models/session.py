"""Session-related data models."""

from dataclasses import dataclass, replace
from typing import Optional


@dataclass
class RecordingState:
    """Status of the current recording session."""
    is_recording: bool = False
    is_paused: bool = False  # Reserved, nothing pauses yet
    duration: int = 0  # Whole seconds since the channel opened
    error: Optional[str] = None

    def snapshot(self) -> "RecordingState":
        """Return an independent copy for readers outside the controller."""
        return replace(self)
