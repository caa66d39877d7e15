"""Transcript storage."""

from .exporter import TranscriptExporter

__all__ = ["TranscriptExporter"]
