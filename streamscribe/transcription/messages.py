"""Parsing of inbound recognition result envelopes.

The service sends JSON text frames shaped like::

    {"channel": {"alternatives": [{"transcript": "...", "confidence": 0.9}]},
     "is_final": true}

Only the first alternative is used. Frames without a ``channel`` (metadata,
speech-started notices and similar) carry no transcript and are skipped.
"""

import json
import time
import logging
from typing import Any, Callable, Optional, Union

from ..exceptions import MalformedMessageError
from ..models.transcript import TranscriptSegment

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def parse_result_message(raw: Union[str, bytes],
                         clock: Callable[[], int] = now_ms) -> Optional[TranscriptSegment]:
    """Turn one inbound frame into a segment.

    Args:
        raw: JSON text of the frame
        clock: Source of the segment timestamp in milliseconds

    Returns:
        The segment, or None when the frame carries no usable transcript

    Raises:
        MalformedMessageError: The frame is not a well-formed result envelope
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedMessageError(f"Result message is not valid JSON: {e}", cause=e) from e

    if not isinstance(data, dict):
        raise MalformedMessageError(f"Result message must be an object, got {type(data).__name__}")

    channel = data.get("channel")
    if channel is None:
        logger.debug(f"Skipping message without channel (type={data.get('type')})")
        return None

    alternatives = _expect(channel, dict, "channel").get("alternatives") or []
    alternatives = _expect(alternatives, list, "channel.alternatives")
    if not alternatives:
        return None

    first = _expect(alternatives[0], dict, "channel.alternatives[0]")
    transcript = first.get("transcript") or ""
    transcript = _expect(transcript, str, "transcript").strip()
    if not transcript:
        return None

    confidence = first.get("confidence") or 0
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise MalformedMessageError(f"confidence must be a number, got {confidence!r}")

    try:
        return TranscriptSegment(
            text=transcript,
            timestamp=clock(),
            confidence=float(confidence),
            is_final=bool(data.get("is_final", False)),
        )
    except ValueError as e:
        raise MalformedMessageError(str(e), cause=e) from e


def _expect(value: Any, expected: type, field: str) -> Any:
    if not isinstance(value, expected):
        raise MalformedMessageError(
            f"{field} must be {expected.__name__}, got {type(value).__name__}")
    return value
