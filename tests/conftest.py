"""Pytest configuration and fixtures for StreamScribe tests."""

import json
import pytest
import logging
from typing import List, Optional
from unittest.mock import Mock, patch

import numpy as np

from streamscribe.models.events import AudioEvent
from streamscribe.services.session_controller import SessionController
from streamscribe.transcription.messages import parse_result_message


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without hardware or network")
    config.addinivalue_line("markers", "integration: tests against a local WebSocket server")
    config.addinivalue_line("markers", "hardware: tests that need a real microphone")


def result_message(text: str, is_final: bool = False, confidence: float = 0.9) -> str:
    """Build a recognition result envelope as the service sends it."""
    return json.dumps({
        "type": "Results",
        "channel": {"alternatives": [{"transcript": text, "confidence": confidence}]},
        "is_final": is_final,
    })


@pytest.fixture
def make_result():
    """Factory for recognition result envelopes."""
    return result_message


@pytest.fixture
def sine_block():
    """One 4096-sample block of a 440 Hz tone at half scale."""
    t = np.arange(4096) / 16000
    return (0.5 * np.sin(2 * np.pi * 440 * t)).astype(np.float32)


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Silent float32 audio, one 4096-sample block per read
        mock_stream.read.return_value = np.zeros(4096, dtype=np.float32).tobytes()
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_default_input_device_info.return_value = {"index": 0}

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


class FakeCapture:
    """Capture source double that emits blocks on demand."""

    def __init__(self, callback, constraints, chunk_size, device_index=None, acquire_error=None):
        self.callback = callback
        self.constraints = constraints
        self.chunk_size = chunk_size
        self.device_index = device_index
        self.acquire_error = acquire_error
        self.acquired = False
        self.release_calls = 0
        self.release_error: Optional[Exception] = None
        self.sequence = 0

    def acquire(self):
        if self.acquire_error is not None:
            raise self.acquire_error
        self.acquired = True

    def release(self):
        self.release_calls += 1
        self.acquired = False
        if self.release_error is not None:
            raise self.release_error

    def emit(self, samples):
        self.sequence += 1
        self.callback(AudioEvent(
            chunk_id=f"chunk_{self.sequence}",
            samples=np.asarray(samples, dtype=np.float32),
            timestamp=0.0,
            sequence_number=self.sequence,
        ))


class FakeChannel:
    """Channel double driven by the test instead of a network."""

    def __init__(self, config, credential, endpoint=None, on_ready=None, on_segment=None,
                 on_error=None, on_closed=None, connect_timeout=None):
        self.config = config
        self.credential = credential
        self.endpoint = endpoint
        self.on_ready = on_ready
        self.on_segment = on_segment
        self.on_error = on_error
        self.on_closed = on_closed
        self.connected = False
        self.connect_error: Optional[Exception] = None
        self.close_error: Optional[Exception] = None
        self.sent: List[bytes] = []
        self.close_reasons: List[str] = []

    def connect(self):
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    def send(self, frame):
        self.sent.append(frame)
        return True

    def close(self, reason="Recording stopped"):
        self.close_reasons.append(reason)
        if self.close_error is not None:
            raise self.close_error

    # Test drivers
    def open(self):
        self.on_ready()

    def deliver(self, raw: str):
        segment = parse_result_message(raw)
        if segment is not None:
            self.on_segment(segment)

    def fail(self, error):
        self.on_error(error)

    def remote_close(self, code):
        self.on_closed(code)


class FakeTicker:
    """Ticker double; the test fires ticks explicitly."""

    def __init__(self, callback, interval):
        self.callback = callback
        self.interval = interval
        self.started = False
        self.stop_calls = 0
        self.stop_error: Optional[Exception] = None

    def start(self):
        self.started = True

    def stop(self):
        self.stop_calls += 1
        self.started = False
        if self.stop_error is not None:
            raise self.stop_error

    def tick(self, times: int = 1):
        for _ in range(times):
            self.callback()


class SessionHarness:
    """A SessionController wired to fakes, with handles on what it created."""

    def __init__(self, credential, export_dir, acquire_error=None):
        self.captures: List[FakeCapture] = []
        self.channels: List[FakeChannel] = []
        self.tickers: List[FakeTicker] = []
        self.acquire_error = acquire_error
        self.controller = SessionController(
            credential,
            export_directory=str(export_dir),
            capture_factory=self._make_capture,
            channel_factory=self._make_channel,
            ticker_factory=self._make_ticker,
        )

    def _make_capture(self, **kwargs):
        capture = FakeCapture(acquire_error=self.acquire_error, **kwargs)
        self.captures.append(capture)
        return capture

    def _make_channel(self, *args, **kwargs):
        channel = FakeChannel(*args, **kwargs)
        self.channels.append(channel)
        return channel

    def _make_ticker(self, callback, interval):
        ticker = FakeTicker(callback, interval)
        self.tickers.append(ticker)
        return ticker

    @property
    def capture(self) -> FakeCapture:
        return self.captures[-1]

    @property
    def channel(self) -> FakeChannel:
        return self.channels[-1]

    @property
    def ticker(self) -> FakeTicker:
        return self.tickers[-1]

    def start_open(self):
        """start() and let the channel report ready."""
        assert self.controller.start()
        self.channel.open()


@pytest.fixture
def harness(tmp_path):
    session = SessionHarness("test-key", tmp_path)
    yield session
    session.controller.shutdown()


@pytest.fixture
def harness_factory(tmp_path):
    created = []

    def make(credential="test-key", acquire_error=None):
        session = SessionHarness(credential, tmp_path, acquire_error=acquire_error)
        created.append(session)
        return session

    yield make
    for session in created:
        session.controller.shutdown()
