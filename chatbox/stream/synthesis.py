"""Per-answer synthesis of reasoning and content deltas.

``AnswerSynthesizer`` is the producer side of the message channel: it folds
decoded deltas into the answer's thinking state and posts the messages the
conversation card consumes (``thinking_update``, ``content_update``,
``thinking_progress``, the final ``{done, session}`` and ``{error}``).
"""

import time
from enum import Enum
from typing import Any, Callable, Dict, Optional

from chatbox.conversation.models import Record, Session, ThinkingData
from chatbox.stream.decoder import ContentDelta, Failed, Finished, ReasoningDelta, StreamEvent
from chatbox.utils.logging import get_logger

logger = get_logger(__name__)

PostMessage = Callable[[Dict[str, Any]], None]


class SynthesisState(str, Enum):
    IDLE = "idle"
    REASONING = "reasoning"
    ANSWERING = "answering"
    DONE = "done"
    ERRORED = "errored"


TERMINAL_STATES = (SynthesisState.DONE, SynthesisState.ERRORED)


def quote_reasoning(reasoning: str) -> str:
    """Render reasoning as a markdown block quote, one ``> `` per line."""
    return "> " + "\n> ".join(reasoning.split("\n"))


class AnswerSynthesizer:
    """State machine for a single answer: IDLE, REASONING, ANSWERING, DONE.

    ERRORED is reachable from any non-terminal state. Every delta is
    accumulated; only the emission of reasoning updates is throttled. The
    throttle windows are aligned to the start of the turn: within each
    ``throttle_ms`` window at most one reasoning update goes out, except that
    updates are always sent while the reasoning text is shorter than
    ``eager_chars``.
    """

    def __init__(
        self,
        session: Session,
        question: str,
        post: PostMessage,
        throttle_ms: int = 500,
        eager_chars: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session = session
        self.question = question
        self.post = post
        self.throttle_ms = throttle_ms
        self.eager_chars = eager_chars
        self._clock = clock

        self.state = SynthesisState.IDLE
        self.reasoning_content = ""
        self.actual_content = ""
        self.thinking_time = 0
        self.has_reasoning = False

        self._started_at = clock()
        self._reasoning_started_at: Optional[float] = None
        self._last_window = -1
        self._emitted_len = 0

    @property
    def is_thinking(self) -> bool:
        return self.state == SynthesisState.REASONING

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def visible_text(self) -> str:
        if self.has_reasoning:
            return f"{quote_reasoning(self.reasoning_content)}\n\n{self.actual_content}"
        return self.actual_content

    def _elapsed_ms(self, since: float) -> int:
        return int((self._clock() - since) * 1000)

    def apply(self, event: StreamEvent) -> None:
        if self.finished:
            logger.debug(f"Ignoring {event.kind} after turn ended in {self.state.value}")
            return

        if isinstance(event, ReasoningDelta):
            self._on_reasoning(event.text)
        elif isinstance(event, ContentDelta):
            self._on_content(event.text)
        elif isinstance(event, Finished):
            self.finish()
        elif isinstance(event, Failed):
            self.fail(event.detail)

    def _on_reasoning(self, text: str) -> None:
        if self._reasoning_started_at is None:
            self._reasoning_started_at = self._clock()
        self.reasoning_content += text
        self.has_reasoning = True
        self.state = SynthesisState.REASONING
        self.thinking_time = self._elapsed_ms(self._reasoning_started_at)

        window = self._elapsed_ms(self._started_at) // self.throttle_ms
        if len(self.reasoning_content) >= self.eager_chars and window <= self._last_window:
            return
        self._last_window = window
        self._post_reasoning(is_thinking=True)

    def _post_reasoning(self, is_thinking: bool) -> None:
        self._emitted_len = len(self.reasoning_content)
        self.post(
            {
                "type": "thinking_update",
                "reasoningContent": self.reasoning_content,
                "thinkingTime": self.thinking_time,
                "isThinking": is_thinking,
            }
        )

    def _flush_reasoning(self) -> None:
        """Send reasoning held back by the throttle before the turn ends."""
        if len(self.reasoning_content) > self._emitted_len:
            self._post_reasoning(is_thinking=False)

    def _on_content(self, text: str) -> None:
        if self.state == SynthesisState.REASONING and self._reasoning_started_at is not None:
            self.thinking_time = self._elapsed_ms(self._reasoning_started_at)
        self.state = SynthesisState.ANSWERING
        self.actual_content += text
        self._emitted_len = len(self.reasoning_content)
        self.post(
            {
                "type": "content_update",
                "reasoningContent": self.reasoning_content,
                "actualContent": self.actual_content,
                "thinkingTime": self.thinking_time,
                "isThinking": False,
                "done": False,
                "answer": self.visible_text,
            }
        )

    def tick(self) -> None:
        """Report thinking progress while reasoning is still open."""
        if self.state != SynthesisState.REASONING or self._reasoning_started_at is None:
            return
        self.thinking_time = self._elapsed_ms(self._reasoning_started_at)
        self.post(
            {
                "type": "thinking_progress",
                "thinkingTime": self.thinking_time,
                "isThinking": True,
            }
        )

    def record(self) -> Record:
        """Durable record of this answer as it stands."""
        if not self.has_reasoning:
            return Record(question=self.question, answer=self.visible_text)
        return Record(
            question=self.question,
            answer=self.actual_content,
            thinking_data=ThinkingData(
                reasoning_content=self.reasoning_content,
                actual_content=self.actual_content,
                thinking_time=self.thinking_time,
            ),
        )

    def finish(self) -> None:
        if self.finished:
            return
        self._flush_reasoning()
        self.state = SynthesisState.DONE
        self.session.conversation_records.append(self.record())
        logger.debug(
            f"Turn finished: {len(self.session.conversation_records)} records, "
            f"reasoning={self.has_reasoning}"
        )
        self.post({"answer": None, "done": True, "session": self.session.to_wire()})

    def fail(self, detail: str) -> None:
        if self.finished:
            return
        self._flush_reasoning()
        self.state = SynthesisState.ERRORED
        logger.debug(f"Turn failed: {detail}")
        self.post({"error": detail})
