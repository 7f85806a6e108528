"""Tests for the stream payload decoder."""

import json
import logging

from conftest import chunk

from chatbox.stream.decoder import (
    DONE_SENTINEL,
    ContentDelta,
    DeltaDecoder,
    Failed,
    Finished,
    ReasoningDelta,
)


class TestChatCompletionChunks:
    """Tests for chat completion chunk decoding."""

    def test_content_delta(self):
        decoder = DeltaDecoder()
        assert decoder.feed(chunk(content="Hi")) == [ContentDelta(text="Hi")]

    def test_reasoning_is_decoded_before_content(self):
        """A chunk carrying both channels yields reasoning first."""
        decoder = DeltaDecoder()
        events = decoder.feed(chunk(content="answer", reasoning="think"))
        assert events == [ReasoningDelta(text="think"), ContentDelta(text="answer")]

    def test_reasoning_alias_field(self):
        decoder = DeltaDecoder()
        payload = chunk()
        payload["choices"][0]["delta"]["reasoning"] = "via alias"
        assert decoder.feed(payload) == [ReasoningDelta(text="via alias")]

    def test_null_fields_yield_nothing(self):
        decoder = DeltaDecoder()
        assert decoder.feed(chunk(content=None, reasoning=None)) == []

    def test_empty_choices_yield_nothing(self):
        decoder = DeltaDecoder()
        assert decoder.feed({"choices": []}) == []

    def test_legacy_text_chunk(self):
        decoder = DeltaDecoder()
        events = decoder.feed({"choices": [{"text": "legacy", "finish_reason": None}]})
        assert events == [ContentDelta(text="legacy")]

    def test_text_and_bytes_payloads(self):
        decoder = DeltaDecoder()
        assert decoder.feed(json.dumps(chunk(content="a"))) == [ContentDelta(text="a")]
        assert decoder.feed(json.dumps(chunk(content="b")).encode()) == [ContentDelta(text="b")]


class TestTermination:
    """Tests that a turn terminates exactly once."""

    def test_done_sentinel(self):
        decoder = DeltaDecoder()
        assert decoder.feed(DONE_SENTINEL) == [Finished()]
        assert decoder.terminated

    def test_finish_reason_then_sentinel_finishes_once(self):
        decoder = DeltaDecoder()
        events = decoder.feed(chunk(content="end", finish_reason="stop"))
        events += decoder.feed(DONE_SENTINEL)
        assert events == [ContentDelta(text="end"), Finished()]

    def test_sentinel_then_finish_reason_finishes_once(self):
        decoder = DeltaDecoder()
        events = decoder.feed(DONE_SENTINEL)
        events += decoder.feed(chunk(content="late", finish_reason="stop"))
        assert events == [Finished()]

    def test_close_never_synthesizes_events(self):
        decoder = DeltaDecoder()
        decoder.feed(chunk(content="partial"))
        assert decoder.close() == []
        assert not decoder.terminated


class TestErrors:
    """Tests for error payloads and malformed input."""

    def test_malformed_json_is_dropped(self, caplog):
        caplog.set_level(logging.DEBUG, logger="chatbox")
        decoder = DeltaDecoder()

        assert decoder.feed("{not json") == []
        assert "malformed" in caplog.text
        # The stream keeps going after a bad payload
        assert decoder.feed(chunk(content="ok")) == [ContentDelta(text="ok")]

    def test_error_object_is_pretty_printed(self):
        error = {"message": "Rate limit reached", "code": 429}
        decoder = DeltaDecoder()
        events = decoder.feed({"error": error})
        assert events == [Failed(detail=json.dumps(error, indent=2))]
        assert decoder.terminated

    def test_error_string_passes_through(self):
        decoder = DeltaDecoder()
        assert decoder.feed({"error": "UNAUTHORIZED"}) == [Failed(detail="UNAUTHORIZED")]

    def test_nothing_after_failure(self):
        decoder = DeltaDecoder()
        decoder.feed({"error": "boom"})
        assert decoder.feed(chunk(content="more")) == []
        assert decoder.feed(DONE_SENTINEL) == []


class TestAnthropicEvents:
    """Tests for Anthropic message stream events."""

    def test_thinking_and_text_deltas(self):
        decoder = DeltaDecoder()
        thinking = {
            "type": "content_block_delta",
            "index": 0,
            "delta": {"type": "thinking_delta", "thinking": "hmm"},
        }
        text = {
            "type": "content_block_delta",
            "index": 1,
            "delta": {"type": "text_delta", "text": "Hi"},
        }
        assert decoder.feed(thinking) == [ReasoningDelta(text="hmm")]
        assert decoder.feed(text) == [ContentDelta(text="Hi")]

    def test_bookkeeping_events_are_ignored(self):
        decoder = DeltaDecoder()
        assert decoder.feed({"type": "message_start", "message": {}}) == []
        assert decoder.feed({"type": "content_block_start", "index": 0}) == []
        signature = {"type": "content_block_delta", "delta": {"type": "signature_delta"}}
        assert decoder.feed(signature) == []

    def test_message_stop_finishes(self):
        decoder = DeltaDecoder()
        assert decoder.feed({"type": "message_stop"}) == [Finished()]

    def test_error_event(self):
        decoder = DeltaDecoder()
        events = decoder.feed(
            {"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}}
        )
        assert len(events) == 1
        assert isinstance(events[0], Failed)
        assert json.loads(events[0].detail)["type"] == "overloaded_error"
