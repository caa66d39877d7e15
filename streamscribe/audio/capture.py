"""Microphone capture source that publishes float32 sample blocks."""

import errno
import pyaudio
import time
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from threading import Thread, Event
from typing import Optional, Callable

import numpy as np

from ..exceptions import CaptureError, DeviceUnavailableError, PermissionDeniedError
from ..models.audio import AudioStats
from ..models.events import AudioEvent


logger = logging.getLogger(__name__)

BLOCK_SIZE = 4096


@dataclass(frozen=True)
class CaptureConstraints:
    """Fixed capture constraints for speech streaming.

    PortAudio exposes no echo, noise or gain processing of its own; the three
    processing flags are requested from the host audio stack and recorded so
    the session can report what it asked for.
    """
    sample_rate: int = 16000
    channels: int = 1
    echo_cancellation: bool = True
    noise_suppression: bool = True
    auto_gain_control: bool = True


class AudioCaptureSource:
    """Continuous microphone capture with event publishing for pub/sub architecture."""

    def __init__(
        self,
        callback: Callable[[AudioEvent], None],
        constraints: CaptureConstraints = CaptureConstraints(),
        chunk_size: int = BLOCK_SIZE,
        device_index: Optional[int] = None,
    ):
        """Initialize the capture source.

        Args:
            callback: Receives one AudioEvent per block read from the device
            constraints: Sample rate, channel count and processing flags
            chunk_size: Samples per block handed to the callback
            device_index: PortAudio input device, None for the system default
        """
        self.audio_event_callback = callback
        self.constraints = constraints
        self.sample_rate = constraints.sample_rate
        self.channels = constraints.channels
        self.chunk_size = chunk_size
        self.device_index = device_index

        # Recording thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False
        self._release_lock = threading.Lock()

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_chunks = 0

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None

    def acquire(self) -> None:
        """Open the input stream and start delivering blocks.

        Raises:
            PermissionDeniedError: The platform refused microphone access
            DeviceUnavailableError: No usable input device exists
        """
        if self.is_recording:
            logger.warning("Capture already acquired")
            return

        logger.info(f"Acquiring microphone: {self.sample_rate}Hz, {self.channels}ch, "
                    f"{self.chunk_size} samples/block")
        logger.debug(f"Requested processing: echo_cancellation={self.constraints.echo_cancellation}, "
                     f"noise_suppression={self.constraints.noise_suppression}, "
                     f"auto_gain_control={self.constraints.auto_gain_control}")

        self.stop_event.clear()
        try:
            self.stream = self.__open_audio_stream()
        except OSError as e:
            self._close_stream()
            raise _capture_error(e) from e

        self.start_time = datetime.now()
        self.total_chunks = 0
        self.is_recording = True

        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.recording_thread.start()

    def release(self) -> None:
        """Stop all hardware activity. Safe to call repeatedly."""
        with self._release_lock:
            if not self.is_recording and self.stream is None and self.pyaudio_instance is None:
                return

            logger.info("Releasing microphone")
            self.stop_event.set()

            if (self.recording_thread and self.recording_thread.is_alive()
                    and self.recording_thread is not threading.current_thread()):
                self.recording_thread.join(timeout=2.0)
                if self.recording_thread.is_alive():
                    logger.warning("Capture thread did not stop cleanly")

            self._close_stream()
            self.is_recording = False
            logger.info(f"Microphone released. Total chunks: {self.total_chunks}")

    def __open_audio_stream(self):
        self.pyaudio_instance = pyaudio.PyAudio()
        if self.device_index is None:
            # Raises OSError when the host has no input device at all
            self.pyaudio_instance.get_default_input_device_info()

        stream = self.pyaudio_instance.open(
            format=pyaudio.paFloat32,
            channels=self.channels,
            rate=self.sample_rate,
            input=True,
            input_device_index=self.device_index,
            frames_per_buffer=self.chunk_size,
            stream_callback=None
        )
        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.chunk_size} samples/chunk")
        return stream

    def _close_stream(self) -> None:
        stream, self.stream = self.stream, None
        if stream is not None:
            try:
                stream.stop_stream()
                stream.close()
            except OSError as e:
                logger.warning(f"Error closing audio stream: {e}")

        instance, self.pyaudio_instance = self.pyaudio_instance, None
        if instance is not None:
            instance.terminate()

    def __read_audio_block(self, stream) -> np.ndarray:
        raw = stream.read(self.chunk_size, exception_on_overflow=False)
        self.total_chunks += 1
        return np.frombuffer(raw, dtype=np.float32)

    def __publish_audio_event(self, samples: np.ndarray) -> None:
        audio_event = AudioEvent(
            chunk_id=f"chunk_{self.total_chunks}",
            samples=samples,
            timestamp=time.time(),
            sequence_number=self.total_chunks,
            sample_rate=self.sample_rate,
            channels=self.channels,
        )
        try:
            self.audio_event_callback(audio_event)
        except Exception as e:
            logger.error(f"Audio callback error: {e}", exc_info=True)

    def _record_continuously(self) -> None:
        """Internal method: continuous recording loop in background thread."""
        stream = self.stream
        while stream is not None and not self.stop_event.is_set():
            try:
                samples = self.__read_audio_block(stream)
            except OSError as e:
                if not self.stop_event.is_set():
                    logger.error(f"Audio read failed: {e}")
                break
            if self.stop_event.is_set():
                break
            self.__publish_audio_event(samples)
        logger.debug("Capture loop exited")

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
        )


def _capture_error(error: OSError) -> CaptureError:
    """Map a PortAudio failure onto the capture error taxonomy."""
    if error.errno in (errno.EACCES, errno.EPERM) or "permission" in str(error).lower():
        return PermissionDeniedError(cause=error)
    return DeviceUnavailableError(f"No usable microphone was found: {error}", cause=error)
