"""Thinking-state reducer and display clock."""

import time
from typing import Any, Callable, Dict, Optional

from chatbox.conversation.models import ThinkingState

# Inbound message keys mapped onto ThinkingState fields
_PATCH_FIELDS = {
    "reasoningContent": "reasoning_content",
    "actualContent": "actual_content",
    "thinkingTime": "thinking_time",
    "isThinking": "is_thinking",
}


def merge_thinking(state: Optional[ThinkingState], patch: Dict[str, Any]) -> ThinkingState:
    """Fold an inbound thinking patch into ``state`` and return the new state.

    Fields missing from ``patch`` (or sent as ``None``) keep their current
    value. ``has_reasoning`` is sticky: any non-blank reasoning text, or an
    explicit ``hasReasoning: True``, sets it for good; nothing clears it.
    """
    current = state or ThinkingState()
    update: Dict[str, Any] = {}
    for key, field in _PATCH_FIELDS.items():
        value = patch.get(key)
        if value is not None:
            update[field] = value

    has_reasoning = current.has_reasoning
    reasoning = patch.get("reasoningContent")
    if isinstance(reasoning, str) and reasoning.strip():
        has_reasoning = True
    if patch.get("hasReasoning") is True:
        has_reasoning = True
    update["has_reasoning"] = has_reasoning
    if isinstance(reasoning, str) and not reasoning.strip() and not has_reasoning:
        # Whitespace-only reasoning never counts as reasoning
        update["reasoning_content"] = ""

    return current.model_copy(update=update)


class ThinkingClock:
    """Smooths the displayed thinking time between authoritative updates.

    The authoritative value always comes from the stream. While thinking, the
    display adds local elapsed time on top of the last reported value; every
    ``sync`` resets that base. Nothing here is ever persisted.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._base_ms = 0
        self._synced_at = clock()
        self._running = False

    def sync(self, state: ThinkingState) -> None:
        self._base_ms = state.thinking_time
        self._synced_at = self._clock()
        self._running = state.is_thinking

    def display_ms(self) -> int:
        if not self._running:
            return self._base_ms
        return self._base_ms + int((self._clock() - self._synced_at) * 1000)

    def label(self) -> str:
        seconds = self.display_ms() / 1000
        if self._running:
            return f"Thinking ({seconds:.1f}s)"
        return f"Thought for {seconds:.1f}s"
