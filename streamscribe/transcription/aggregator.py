"""Transcript aggregator that merges interim and final segments.

Finalized segments are append-only: once a segment is final it is never
changed or removed except by ``clear()``. At most one interim segment is
kept. A new interim result replaces the previous one, and a final result
drops the pending interim before it is appended, so ``interim_text()``
always shows the service's latest guess for the utterance in progress.
"""

import dataclasses
import logging
import threading
from typing import List, Optional
from pubsub import pub
from ..models.transcript import TranscriptSegment

logger = logging.getLogger(__name__)


class TranscriptAggregator:
    """Keeps the ordered transcript for rendering and export."""

    def __init__(self):
        self._segments: List[TranscriptSegment] = []
        self._last_timestamp: Optional[int] = None
        self._topic: Optional[str] = None

        # Thread safety
        self.lock = threading.RLock()

    def attach(self, topic: str) -> None:
        """Subscribe to a segment topic so published segments are applied."""
        if self._topic == topic:
            return
        self.detach()
        pub.subscribe(self._on_segment, topic)
        self._topic = topic
        logger.info(f"TranscriptAggregator subscribed to {topic}")

    def detach(self) -> None:
        """Unsubscribe from the current segment topic, if any."""
        if self._topic is None:
            return
        try:
            pub.unsubscribe(self._on_segment, self._topic)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")
        self._topic = None

    def _on_segment(self, segment: TranscriptSegment) -> None:
        self.apply(segment)

    def apply(self, segment: TranscriptSegment) -> None:
        """Merge one segment into the transcript."""
        with self.lock:
            # Timestamps never go backwards within a session
            if self._last_timestamp is not None and segment.timestamp < self._last_timestamp:
                segment = dataclasses.replace(segment, timestamp=self._last_timestamp)
            self._last_timestamp = segment.timestamp

            self._segments = [s for s in self._segments if s.is_final]
            self._segments.append(segment)

        logger.debug(f"Applied {'final' if segment.is_final else 'interim'} segment: "
                     f"'{segment.text[:50]}'")

    @property
    def segments(self) -> List[TranscriptSegment]:
        with self.lock:
            return list(self._segments)

    def final_segments(self) -> List[TranscriptSegment]:
        with self.lock:
            return [s for s in self._segments if s.is_final]

    def interim_segments(self) -> List[TranscriptSegment]:
        with self.lock:
            return [s for s in self._segments if not s.is_final]

    def final_text(self) -> str:
        """Finalized text joined with single spaces, in arrival order."""
        return " ".join(s.text for s in self.final_segments())

    def interim_text(self) -> str:
        """Text still subject to revision by the service."""
        return " ".join(s.text for s in self.interim_segments())

    def full_text(self) -> str:
        """Final text followed by the in-progress interim text."""
        final_text = self.final_text()
        interim_text = self.interim_text()
        if not interim_text:
            return final_text
        if not final_text:
            return interim_text
        return f"{final_text} {interim_text}"

    def has_interim(self) -> bool:
        with self.lock:
            return any(not s.is_final for s in self._segments)

    def word_count(self) -> int:
        return len(self.final_text().split())

    def character_count(self) -> int:
        return len(self.final_text())

    def clear(self) -> None:
        """Empty the transcript entirely."""
        with self.lock:
            self._segments.clear()
            self._last_timestamp = None
        logger.info("Transcript cleared")
