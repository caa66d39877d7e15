"""Event models for pub/sub audio processing architecture."""

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass
class AudioEvent:
    """Block of captured float32 samples with metadata."""
    chunk_id: str
    samples: np.ndarray  # float32, nominally in [-1, 1]
    timestamp: float  # Unix timestamp when the block was read
    sequence_number: int
    sample_rate: int = 16000
    channels: int = 1
    chunk_duration_ms: Optional[int] = None

    def __post_init__(self):
        """Calculate chunk duration if not provided."""
        if self.chunk_duration_ms is None and self.sample_rate > 0:
            frames = len(self.samples) / max(self.channels, 1)
            self.chunk_duration_ms = int(frames / self.sample_rate * 1000)
