"""Transcript-related data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TranscriptSegment:
    """One recognized utterance fragment."""
    text: str
    timestamp: int  # Milliseconds since the epoch when the result arrived
    confidence: float
    is_final: bool = False

    def __post_init__(self):
        if not self.text or self.text != self.text.strip():
            raise ValueError(f"Segment text must be non-empty and trimmed: {self.text!r}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Segment confidence out of range: {self.confidence}")
