"""Services layer for StreamScribe session logic."""

from .session_controller import SessionController
from .ticker import DurationTicker

__all__ = [
    "SessionController",
    "DurationTicker",
]
