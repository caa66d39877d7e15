"""Transcript segment publisher for pub/sub event publishing."""

import logging
from pubsub import pub
from ..models.transcript import TranscriptSegment

logger = logging.getLogger(__name__)


class SegmentPublisher:
    """Publishes transcript segments using pubsub.pub for pub/sub architecture."""

    def __init__(self, topic: str = "transcript.segment"):
        """Initialize segment publisher.

        Args:
            topic: Pub/sub topic name for transcript segments
        """
        self.topic = topic
        logger.info(f"SegmentPublisher initialized with topic: {topic}")

    def publish_segment(self, segment: TranscriptSegment) -> None:
        """Publish a transcript segment to the pub/sub topic.

        Args:
            segment: TranscriptSegment to publish
        """
        pub.sendMessage(self.topic, segment=segment)
        logger.debug(f"Published {'final' if segment.is_final else 'interim'} segment: "
                     f"'{segment.text[:50]}' ({segment.confidence:.1%})")
