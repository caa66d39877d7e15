"""Unit tests for TranscriptAggregator class."""

import uuid
import pytest
from pubsub import pub
from streamscribe.models.transcript import TranscriptSegment
from streamscribe.transcription.aggregator import TranscriptAggregator


def segment(text, timestamp=1000, is_final=False, confidence=0.9):
    return TranscriptSegment(text=text, timestamp=timestamp, confidence=confidence, is_final=is_final)


@pytest.mark.unit
class TestTranscriptAggregator:
    """Test cases for TranscriptAggregator class."""

    def test_initial_state(self):
        """Test a new aggregator is empty."""
        aggregator = TranscriptAggregator()

        assert aggregator.segments == []
        assert aggregator.final_text() == ""
        assert aggregator.interim_text() == ""
        assert aggregator.full_text() == ""
        assert aggregator.has_interim() is False

    def test_finals_join_with_single_space(self):
        """Test final segments in arrival order."""
        aggregator = TranscriptAggregator()

        aggregator.apply(segment("Hello", 1000, is_final=True))
        aggregator.apply(segment("world", 2000, is_final=True))

        assert aggregator.final_text() == "Hello world"
        assert aggregator.interim_text() == ""

    def test_new_interim_replaces_previous(self):
        """Test only the latest interim is kept."""
        aggregator = TranscriptAggregator()

        aggregator.apply(segment("test", 1000))
        aggregator.apply(segment("testing one", 1100))

        assert aggregator.interim_text() == "testing one"
        assert len(aggregator.interim_segments()) == 1

    def test_final_replaces_pending_interim(self):
        """Test a final result drops the interim for the same utterance."""
        aggregator = TranscriptAggregator()

        aggregator.apply(segment("test", 1000))
        aggregator.apply(segment("testing", 1100))
        aggregator.apply(segment("testing one", 1200))
        aggregator.apply(segment("testing one two", 1300, is_final=True))

        assert aggregator.final_text() == "testing one two"
        assert aggregator.interim_text() == ""
        assert [s.is_final for s in aggregator.segments] == [True]

    def test_finals_are_never_rewritten(self):
        """Test earlier finals survive later interims and finals."""
        aggregator = TranscriptAggregator()

        aggregator.apply(segment("first", 1000, is_final=True))
        aggregator.apply(segment("sec", 1100))
        aggregator.apply(segment("second", 1200, is_final=True))
        aggregator.apply(segment("thi", 1300))

        assert [s.text for s in aggregator.final_segments()] == ["first", "second"]
        assert aggregator.full_text() == "first second thi"

    def test_full_text_interim_only(self):
        """Test full text without any finals."""
        aggregator = TranscriptAggregator()

        aggregator.apply(segment("only interim"))

        assert aggregator.full_text() == "only interim"
        assert aggregator.has_interim() is True

    def test_timestamps_never_decrease(self):
        """Test a late timestamp is raised to the previous one."""
        aggregator = TranscriptAggregator()

        aggregator.apply(segment("one", 5000, is_final=True))
        aggregator.apply(segment("two", 4000, is_final=True))

        timestamps = [s.timestamp for s in aggregator.segments]
        assert timestamps == [5000, 5000]

    def test_counts_use_final_text(self):
        """Test word and character counts ignore interim text."""
        aggregator = TranscriptAggregator()

        aggregator.apply(segment("Hello there", 1000, is_final=True))
        aggregator.apply(segment("general", 1100))

        assert aggregator.word_count() == 2
        assert aggregator.character_count() == len("Hello there")

    def test_clear(self):
        """Test clearing empties the transcript and resets ordering."""
        aggregator = TranscriptAggregator()
        aggregator.apply(segment("kept", 9000, is_final=True))
        aggregator.apply(segment("pending", 9100))

        aggregator.clear()
        aggregator.apply(segment("after", 100, is_final=True))

        assert aggregator.final_text() == "after"
        assert aggregator.segments[0].timestamp == 100

    def test_attach_receives_published_segments(self):
        """Test segments published on the attached topic are applied."""
        topic = f"test_segment_{uuid.uuid4().hex}"
        aggregator = TranscriptAggregator()
        aggregator.attach(topic)
        try:
            pub.sendMessage(topic, segment=segment("published", is_final=True))
        finally:
            aggregator.detach()

        assert aggregator.final_text() == "published"

    def test_detach_stops_delivery(self):
        """Test nothing is applied after detaching."""
        topic = f"test_segment_{uuid.uuid4().hex}"
        aggregator = TranscriptAggregator()
        aggregator.attach(topic)
        aggregator.detach()

        pub.sendMessage(topic, segment=segment("ignored", is_final=True))

        assert aggregator.final_text() == ""

    def test_detach_without_attach(self):
        """Test detaching an unattached aggregator is a no-op."""
        TranscriptAggregator().detach()


@pytest.mark.unit
class TestTranscriptSegment:
    """Test cases for TranscriptSegment validation."""

    @pytest.mark.parametrize("text", ["", " padded", "trailing "])
    def test_text_must_be_trimmed_and_non_empty(self, text):
        with pytest.raises(ValueError):
            segment(text)

    @pytest.mark.parametrize("confidence", [-0.1, 1.01])
    def test_confidence_range(self, confidence):
        with pytest.raises(ValueError):
            segment("ok", confidence=confidence)

    def test_segments_are_immutable(self):
        seg = segment("frozen")
        with pytest.raises(AttributeError):
            seg.text = "changed"
