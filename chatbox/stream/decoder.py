"""Decoder from raw provider stream payloads to typed deltas.

Each payload is either the ``[DONE]`` sentinel or a JSON object (text or an
already-parsed dict) in one of the shapes providers stream:

* chat completion chunks: ``choices[0].delta.content`` plus an optional
  ``reasoning_content`` (or ``reasoning``) field for the thinking channel,
* legacy completion chunks: ``choices[0].text``,
* Anthropic message events: ``content_block_delta`` carrying a
  ``thinking_delta`` or ``text_delta``, ``message_stop`` at the end,
* anything with a top-level ``error`` member, or an event of type ``error``.
"""

import json
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from chatbox.utils.logging import get_logger

logger = get_logger(__name__)

DONE_SENTINEL = "[DONE]"


class ReasoningDelta(BaseModel):
    kind: Literal["reasoning"] = "reasoning"
    text: str


class ContentDelta(BaseModel):
    kind: Literal["content"] = "content"
    text: str


class Finished(BaseModel):
    kind: Literal["finished"] = "finished"


class Failed(BaseModel):
    kind: Literal["failed"] = "failed"
    detail: str


StreamEvent = Annotated[
    Union[ReasoningDelta, ContentDelta, Finished, Failed], Field(discriminator="kind")
]

Payload = Union[str, bytes, Dict[str, Any]]


def _pretty(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, ensure_ascii=False)


class DeltaDecoder:
    """Stateful decoder for one turn.

    Terminal events are reported once: after ``Finished`` or ``Failed`` every
    further payload decodes to nothing.
    """

    def __init__(self):
        self.terminated = False

    def feed(self, payload: Payload) -> List[StreamEvent]:
        """Decode one payload into zero or more events."""
        if self.terminated:
            return []

        if isinstance(payload, bytes):
            payload = payload.decode("utf-8", errors="replace")

        if isinstance(payload, str):
            if payload.strip() == DONE_SENTINEL:
                return self._terminate(Finished())
            try:
                data = json.loads(payload)
            except json.JSONDecodeError as e:
                logger.debug(f"Skipping malformed stream payload: {e}")
                return []
        else:
            data = payload

        if not isinstance(data, dict):
            logger.debug(f"Skipping non-object stream payload: {data!r}")
            return []

        return self._decode(data)

    def close(self) -> List[StreamEvent]:
        """Called when the underlying stream ends. Never synthesizes events."""
        if not self.terminated:
            logger.debug("Stream ended without a terminal event")
        return []

    def _terminate(self, event: StreamEvent) -> List[StreamEvent]:
        self.terminated = True
        return [event]

    def _decode(self, data: Dict[str, Any]) -> List[StreamEvent]:
        if data.get("error"):
            return self._terminate(Failed(detail=_pretty(data["error"])))

        event_type = data.get("type")
        if event_type == "error":
            return self._terminate(Failed(detail=_pretty(data.get("error") or data)))
        if event_type is not None and "choices" not in data:
            return self._decode_message_event(event_type, data)

        return self._decode_choice(data)

    def _decode_message_event(self, event_type: str, data: Dict[str, Any]) -> List[StreamEvent]:
        if event_type == "message_stop":
            return self._terminate(Finished())
        if event_type != "content_block_delta":
            return []

        delta = data.get("delta") or {}
        if delta.get("type") == "thinking_delta" and delta.get("thinking"):
            return [ReasoningDelta(text=delta["thinking"])]
        if delta.get("type") == "text_delta" and delta.get("text"):
            return [ContentDelta(text=delta["text"])]
        return []

    def _decode_choice(self, data: Dict[str, Any]) -> List[StreamEvent]:
        choices = data.get("choices") or []
        if not choices:
            return []
        choice = choices[0] or {}

        events: List[StreamEvent] = []
        delta: Optional[Dict[str, Any]] = choice.get("delta")
        if delta:
            reasoning = delta.get("reasoning_content")
            if reasoning is None:
                reasoning = delta.get("reasoning")
            if reasoning:
                events.append(ReasoningDelta(text=reasoning))
            if delta.get("content"):
                events.append(ContentDelta(text=delta["content"]))
        elif choice.get("text"):
            events.append(ContentDelta(text=choice["text"]))

        if choice.get("finish_reason"):
            self.terminated = True
            events.append(Finished())
        return events
