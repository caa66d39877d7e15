"""StreamScribe - live microphone transcription over a streaming speech API."""

__version__ = "0.1.0"
