"""Session controller that coordinates capture, streaming and the transcript."""

import itertools
import logging
import threading
from datetime import date
from functools import partial
from pathlib import Path
from typing import Optional

from pubsub import pub

from ..audio.capture import AudioCaptureSource, CaptureConstraints, BLOCK_SIZE
from ..audio.encoder import PCMEncoder
from ..config import StreamScribeConfig
from ..exceptions import (
    CaptureError,
    ChannelError,
    MissingCredentialError,
    StreamScribeError,
    TranscriptionConnectionError,
)
from ..models.channel import ChannelConfig
from ..models.events import AudioEvent
from ..models.session import RecordingState
from ..models.transcript import TranscriptSegment
from ..storage.exporter import TranscriptExporter
from ..transcription.aggregator import TranscriptAggregator
from ..transcription.channel import DEFAULT_ENDPOINT, TranscriptionChannel
from ..transcription.publisher import SegmentPublisher
from .ticker import DurationTicker

logger = logging.getLogger(__name__)

_controller_ids = itertools.count(1)


class SessionController:
    """Owns one recording session at a time.

    ``start()`` acquires the microphone and opens the streaming channel; the
    session counts as recording once the channel reports ready. ``stop()``
    tears everything down in a fixed order, each step independently, and is
    safe to call at any point, including repeatedly.

    Errors never propagate out of ``start()`` or ``stop()``. They are
    surfaced as a message in ``state.error``, with the exception itself kept
    in ``last_error``.
    """

    def __init__(self,
                 credential: Optional[str],
                 channel_config: ChannelConfig = ChannelConfig(),
                 endpoint: str = DEFAULT_ENDPOINT,
                 constraints: CaptureConstraints = CaptureConstraints(),
                 chunk_size: int = BLOCK_SIZE,
                 device_index: Optional[int] = None,
                 tick_interval: float = 1.0,
                 connect_timeout: float = 10.0,
                 audio_topic: str = "audio.frame",
                 segment_topic: str = "transcript.segment",
                 export_directory: str = ".",
                 capture_factory=AudioCaptureSource,
                 channel_factory=TranscriptionChannel,
                 ticker_factory=DurationTicker):
        """Initialize the controller.

        Args:
            credential: Recognition API token resolved at startup, None if absent
            channel_config: Recognition parameters for every connection
            endpoint: WebSocket URL of the recognition service
            constraints: Microphone capture constraints
            chunk_size: Samples per captured block and per outbound frame
            device_index: PortAudio input device, None for the default
            tick_interval: Seconds between duration ticks
            connect_timeout: Seconds allowed for the channel handshake
            audio_topic: Base pub/sub topic for captured blocks
            segment_topic: Base pub/sub topic for recognized segments
            export_directory: Where transcript files are written
            capture_factory: Builds the capture source for each session
            channel_factory: Builds the channel for each session
            ticker_factory: Builds the duration ticker for each session
        """
        self.credential = credential or None
        self.channel_config = channel_config
        self.endpoint = endpoint
        self.constraints = constraints
        self.chunk_size = chunk_size
        self.device_index = device_index
        self.tick_interval = tick_interval
        self.connect_timeout = connect_timeout

        self._capture_factory = capture_factory
        self._channel_factory = channel_factory
        self._ticker_factory = ticker_factory

        # Each controller publishes on its own subtopics so transcripts and
        # audio never cross between instances. Listeners on the base topics
        # still receive every controller's messages.
        self.instance_id = next(_controller_ids)
        self.audio_topic = f"{audio_topic}.controller_{self.instance_id}"
        self.segment_topic = f"{segment_topic}.controller_{self.instance_id}"

        self.encoder = PCMEncoder(block_size=chunk_size)
        self.segment_publisher = SegmentPublisher(self.segment_topic)
        self.aggregator = TranscriptAggregator()
        self.aggregator.attach(self.segment_topic)
        self.exporter = TranscriptExporter(export_directory)

        # Session state, guarded by one lock
        self._lock = threading.RLock()
        self._state = RecordingState()
        self.last_error: Optional[StreamScribeError] = None
        self._generation = 0
        self._capture = None
        self._channel = None
        self._ticker = None
        self._audio_wired = False

        pub.subscribe(self._on_audio_event, self.audio_topic)
        logger.info("SessionController ready")

    @classmethod
    def from_config(cls, config: StreamScribeConfig, credential: Optional[str], **overrides) -> "SessionController":
        """Create a controller from the loaded configuration."""
        channel_config = ChannelConfig(
            model=config.get('deepgram.model', 'nova-2'),
            language=config.get('deepgram.language', 'en'),
            sample_rate=config.get('audio.sample_rate', 16000),
            channels=config.get('audio.channels', 1),
            smart_format=config.get('deepgram.smart_format', True),
            punctuate=config.get('deepgram.punctuate', True),
            interim_results=config.get('deepgram.interim_results', True),
        )
        kwargs = dict(
            channel_config=channel_config,
            endpoint=config.get('deepgram.endpoint', DEFAULT_ENDPOINT),
            constraints=CaptureConstraints(
                sample_rate=channel_config.sample_rate,
                channels=channel_config.channels,
            ),
            chunk_size=config.get('audio.chunk_size', BLOCK_SIZE),
            device_index=config.get('audio.device_index'),
            tick_interval=config.get('session.tick_interval_seconds', 1.0),
            connect_timeout=config.get('deepgram.connect_timeout_seconds', 10.0),
            audio_topic=config.get('pubsub.audio_topic', 'audio.frame'),
            segment_topic=config.get('pubsub.segment_topic', 'transcript.segment'),
            export_directory=config.get_export_directory(),
        )
        kwargs.update(overrides)
        return cls(credential, **kwargs)

    @property
    def state(self) -> RecordingState:
        with self._lock:
            return self._state.snapshot()

    @property
    def is_recording(self) -> bool:
        with self._lock:
            return self._state.is_recording

    @property
    def is_active(self) -> bool:
        """True from start() until the session is torn down."""
        with self._lock:
            return self._channel is not None or self._capture is not None

    def start(self) -> bool:
        """Start a new session.

        Returns:
            True if the microphone was acquired and the channel is connecting
        """
        with self._lock:
            if self._channel is not None or self._capture is not None:
                logger.warning("Session already active")
                return False

            self._state.error = None
            self._state.duration = 0
            self._state.is_paused = False
            self.last_error = None

            if not self.credential:
                self._record_error(MissingCredentialError())
                return False

            self._generation += 1
            generation = self._generation

            capture = self._capture_factory(
                callback=self._publish_audio,
                constraints=self.constraints,
                chunk_size=self.chunk_size,
                device_index=self.device_index,
            )
            try:
                capture.acquire()
            except CaptureError as e:
                self._record_error(e)
                self._safely("release capture", capture.release)
                return False
            self._capture = capture

            channel = self._channel_factory(
                self.channel_config,
                self.credential,
                endpoint=self.endpoint,
                on_ready=partial(self._on_channel_ready, generation),
                on_segment=partial(self._on_channel_segment, generation),
                on_error=partial(self._on_channel_error, generation),
                on_closed=partial(self._on_channel_closed, generation),
                connect_timeout=self.connect_timeout,
            )
            self._channel = channel
            try:
                channel.connect()
            except Exception as e:
                self._record_error(TranscriptionConnectionError(cause=e))
                failed = True
            else:
                failed = False

        if failed:
            self.stop()
            return False

        logger.info(f"Session {generation} starting")
        return True

    def stop(self) -> None:
        """Tear down the session. Each step runs even if another fails."""
        with self._lock:
            capture, channel, ticker = self._capture, self._channel, self._ticker
            self._capture = self._channel = self._ticker = None
            self._audio_wired = False  # disconnect audio processing
            self._state.is_recording = False
            self._state.is_paused = False

        if capture is not None:
            self._safely("release capture", capture.release)
        if channel is not None:
            self._safely("close channel", channel.close, "Recording stopped")
        if ticker is not None:
            self._safely("stop duration tick", ticker.stop)

        if capture or channel or ticker:
            logger.info("Recording stopped")

    def shutdown(self) -> None:
        """Stop and detach from all topics."""
        self.stop()
        try:
            pub.unsubscribe(self._on_audio_event, self.audio_topic)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")
        self.aggregator.detach()

    def clear(self) -> None:
        """Empty the transcript. Recording state is unaffected."""
        self.aggregator.clear()

    def export(self, directory: Optional[str] = None, on_date: Optional[date] = None) -> Optional[Path]:
        """Write the finalized transcript to a dated text file.

        Returns:
            Path of the written file, or None when there is nothing to export
        """
        return self.exporter.export(self.aggregator.final_text(), directory=directory, on_date=on_date)

    def final_text(self) -> str:
        return self.aggregator.final_text()

    def interim_text(self) -> str:
        return self.aggregator.interim_text()

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and self._channel is not None

    def _on_channel_ready(self, generation: int) -> None:
        with self._lock:
            if not self._is_current(generation):
                return
            self._state.is_recording = True
            self._state.duration = 0
            self._state.error = None

            ticker = self._ticker_factory(partial(self._on_tick, generation), self.tick_interval)
            self._ticker = ticker
            ticker.start()
            self._audio_wired = True

        logger.info("Recording started")

    def _on_channel_segment(self, generation: int, segment: TranscriptSegment) -> None:
        with self._lock:
            if not self._is_current(generation):
                return
        self.segment_publisher.publish_segment(segment)

    def _on_channel_error(self, generation: int, error: ChannelError) -> None:
        with self._lock:
            if not self._is_current(generation):
                return
            self._record_error(error)
        self.stop()

    def _on_channel_closed(self, generation: int, code: Optional[int]) -> None:
        with self._lock:
            if not self._is_current(generation):
                return
        logger.info(f"Service closed the connection (code={code})")
        self.stop()

    def _on_tick(self, generation: int) -> None:
        with self._lock:
            if generation == self._generation and self._state.is_recording:
                self._state.duration += 1

    def _publish_audio(self, event: AudioEvent) -> None:
        pub.sendMessage(self.audio_topic, event=event)

    def _on_audio_event(self, event: AudioEvent) -> None:
        channel = self._channel
        if not self._audio_wired or channel is None:
            return
        for frame in self.encoder.iter_blocks(event.samples):
            channel.send(frame)

    def _record_error(self, error: StreamScribeError) -> None:
        self.last_error = error
        self._state.error = error.message
        logger.error(f"Session error: {error.message}")

    def _safely(self, step: str, func, *args) -> None:
        try:
            func(*args)
        except Exception as e:
            logger.warning(f"Error during {step}: {e}")
