"""Unit tests for result message parsing."""

import json
import pytest
from streamscribe.exceptions import MalformedMessageError
from streamscribe.transcription.messages import parse_result_message


def fixed_clock():
    return 1_700_000_000_000


@pytest.mark.unit
class TestParseResultMessage:
    """Test cases for parse_result_message."""

    def test_interim_result(self, make_result):
        """Test parsing an interim result."""
        segment = parse_result_message(make_result("hello", confidence=0.8), clock=fixed_clock)

        assert segment.text == "hello"
        assert segment.confidence == 0.8
        assert segment.is_final is False
        assert segment.timestamp == 1_700_000_000_000

    def test_final_result(self, make_result):
        """Test parsing a final result."""
        segment = parse_result_message(make_result("hello world", is_final=True))

        assert segment.is_final is True
        assert segment.text == "hello world"

    def test_transcript_is_trimmed(self, make_result):
        """Test surrounding whitespace is removed."""
        segment = parse_result_message(make_result("  padded text \n"))

        assert segment.text == "padded text"

    def test_bytes_input(self, make_result):
        """Test frames delivered as bytes."""
        segment = parse_result_message(make_result("bytes").encode("utf-8"))

        assert segment.text == "bytes"

    @pytest.mark.parametrize("transcript", ["", "   "])
    def test_blank_transcript_is_skipped(self, make_result, transcript):
        """Test empty and whitespace-only transcripts produce nothing."""
        assert parse_result_message(make_result(transcript)) is None

    def test_message_without_channel_is_skipped(self):
        """Test metadata frames are not results."""
        raw = json.dumps({"type": "Metadata", "request_id": "abc"})

        assert parse_result_message(raw) is None

    def test_empty_alternatives_is_skipped(self):
        """Test a channel with no alternatives."""
        raw = json.dumps({"channel": {"alternatives": []}, "is_final": True})

        assert parse_result_message(raw) is None

    def test_only_first_alternative_is_used(self):
        """Test later alternatives are ignored."""
        raw = json.dumps({"channel": {"alternatives": [
            {"transcript": "first", "confidence": 0.6},
            {"transcript": "second", "confidence": 0.9},
        ]}})

        assert parse_result_message(raw).text == "first"

    def test_missing_fields_default(self):
        """Test missing confidence and is_final."""
        raw = json.dumps({"channel": {"alternatives": [{"transcript": "bare"}]}})

        segment = parse_result_message(raw)

        assert segment.confidence == 0.0
        assert segment.is_final is False

    @pytest.mark.parametrize("raw", [
        "not json",
        "[1, 2, 3]",
        json.dumps({"channel": "text"}),
        json.dumps({"channel": {"alternatives": "text"}}),
        json.dumps({"channel": {"alternatives": ["text"]}}),
        json.dumps({"channel": {"alternatives": [{"transcript": 42}]}}),
        json.dumps({"channel": {"alternatives": [{"transcript": "hi", "confidence": "high"}]}}),
        json.dumps({"channel": {"alternatives": [{"transcript": "hi", "confidence": 1.5}]}}),
    ])
    def test_malformed_messages_raise(self, raw):
        """Test frames that are not well-formed result envelopes."""
        with pytest.raises(MalformedMessageError):
            parse_result_message(raw)

    def test_malformed_error_is_value_error(self):
        """Test malformed messages can be caught as ValueError."""
        with pytest.raises(ValueError):
            parse_result_message("{")
