"""Audio capture and encoding module."""

from .capture import AudioCaptureSource, CaptureConstraints
from .encoder import PCMEncoder

__all__ = [
    'AudioCaptureSource',
    'CaptureConstraints',
    'PCMEncoder',
]
