"""Streaming transcription module for StreamScribe."""

from .aggregator import TranscriptAggregator
from .channel import TranscriptionChannel, DEFAULT_ENDPOINT, NORMAL_CLOSURE
from .messages import parse_result_message
from .publisher import SegmentPublisher

__all__ = [
    "TranscriptAggregator",
    "TranscriptionChannel",
    "DEFAULT_ENDPOINT",
    "NORMAL_CLOSURE",
    "parse_result_message",
    "SegmentPublisher",
]
