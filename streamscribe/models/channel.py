"""Streaming channel data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class ChannelState(Enum):
    """Lifecycle of a streaming connection."""
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"
    ERRORED = "errored"


@dataclass(frozen=True)
class ChannelConfig:
    """Immutable per-connection recognition parameters."""
    model: str = "nova-2"
    language: str = "en"
    sample_rate: int = 16000
    channels: int = 1
    encoding: str = "linear16"
    smart_format: bool = True
    punctuate: bool = True
    interim_results: bool = True

    def to_query_params(self) -> Dict[str, str]:
        """Encode the config as connection query parameters."""
        return {
            "model": self.model,
            "language": self.language,
            "smart_format": _flag(self.smart_format),
            "punctuate": _flag(self.punctuate),
            "interim_results": _flag(self.interim_results),
            "encoding": self.encoding,
            "sample_rate": str(self.sample_rate),
            "channels": str(self.channels),
        }


def _flag(value: bool) -> str:
    return "true" if value else "false"
