"""Float32 to linear PCM16 conversion for the streaming wire format."""

import logging
from typing import Iterator, Sequence, Union

import numpy as np

logger = logging.getLogger(__name__)

BLOCK_SIZE = 4096

# Negative samples scale by 2**15, non-negative by 2**15 - 1, so both
# extremes land exactly on the int16 range.
NEGATIVE_SCALE = 32768.0
POSITIVE_SCALE = 32767.0

Samples = Union[np.ndarray, Sequence[float]]


class PCMEncoder:
    """Encodes float samples in [-1, 1] as signed 16-bit little-endian PCM."""

    def __init__(self, block_size: int = BLOCK_SIZE):
        if block_size <= 0:
            raise ValueError(f"block_size must be positive, got {block_size}")
        self.block_size = block_size

    def encode(self, samples: Samples) -> bytes:
        """Encode one block of samples.

        Values are clamped to [-1, 1] and truncated toward zero after
        scaling. NaN samples encode as silence.

        Returns:
            Exactly 2 bytes per input sample
        """
        audio = np.nan_to_num(np.asarray(samples, dtype=np.float64).ravel(), nan=0.0)
        audio = np.clip(audio, -1.0, 1.0)
        scaled = np.where(audio < 0, audio * NEGATIVE_SCALE, audio * POSITIVE_SCALE)
        return scaled.astype('<i2').tobytes()

    def iter_blocks(self, samples: Samples) -> Iterator[bytes]:
        """Encode an arbitrary run of samples one block at a time.

        Each block is yielded as soon as it is encoded; a short trailing
        block is yielded as-is rather than held for more input.
        """
        audio = np.asarray(samples, dtype=np.float64).ravel()
        for start in range(0, len(audio), self.block_size):
            yield self.encode(audio[start:start + self.block_size])
